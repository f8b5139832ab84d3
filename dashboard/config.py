"""
Dashboard Configuration
Fixed constants for the history window and classifier, plus connection
settings for the realtime database and MQTT broker.

Connection settings can be overridden through environment variables;
the core constants cannot.
"""

import os

# === HISTORY WINDOW ===
BUFFER_CAPACITY = 1000      # Max readings held in memory
DEFAULT_WINDOW = 20         # Visible data points in live view
MIN_WINDOW = 5
MAX_WINDOW = 1000
ZOOM_REFERENCE = 1000       # zoom_level = ZOOM_REFERENCE / window_size
PIXELS_PER_PAN_STEP = 15    # Drag distance per data point

# === POSITION CLASSIFIER ===
EMPTY_THRESHOLD = 500       # Total pressure below this = bed empty
DEBOUNCE_SECONDS = 1.0      # Quiet period before logging a position
POSITION_HISTORY_SIZE = 20
CONFIDENCE_CHANGE_THRESHOLD = 20

# === DEVICE PRESENCE ===
DEVICE_LIVE_SECONDS = 5.0
DEVICE_TIMEOUT_SECONDS = 10.0
STARTUP_GRACE_SECONDS = 10.0
LIVE_CLASSIFICATION_SECONDS = 15.0

# === TARE COMMAND ===
TARE_PATH = "commands/tare"
TARE_TIMEOUT_SECONDS = 15.0
TARE_POLL_SECONDS = 0.5     # Status check period while pending

# === REALTIME DATABASE ===
DATABASE_URL = os.environ.get(
    "DASHBOARD_DATABASE_URL", "https://bed-monitor-default-rtdb.firebaseio.com"
)
DATABASE_AUTH = os.environ.get("DASHBOARD_DATABASE_AUTH", "")
READINGS_PATH = "patient/readings"
REQUEST_TIMEOUT = 10

# === LIVE SOURCE ===
# "poll" queries the database for newer keys, "mqtt" subscribes to a topic
LIVE_SOURCE = os.environ.get("DASHBOARD_LIVE_SOURCE", "poll")
MQTT_BROKER = os.environ.get("DASHBOARD_MQTT_BROKER", "broker.hivemq.com")
MQTT_PORT = int(os.environ.get("DASHBOARD_MQTT_PORT", "1883"))
MQTT_TOPIC = os.environ.get("DASHBOARD_MQTT_TOPIC", "bedmonitor/patient/readings")

# === EVENT LOOP ===
LOOP_INTERVAL = 0.1         # 10 Hz tick
POLL_INTERVAL = 1.0         # Live poll period (poll source only)
RENDER_INTERVAL = 1.0       # Console status line period
