"""
MQTT Live Reading Subscriber
Alternative live source: the device (or a bridge) publishes each reading
as JSON on a topic, and the dashboard subscribes to it.

Payload format:
{
  "key": "-Nx3...",               # sortable id; falls back to timestamp
  "timestamp": "2026-02-03T14:30:00",
  "rh": 812.0, "lh": 790.5, "rt": 640.2, "lt": 655.9,
  "total": 2898.6
}

paho runs its network loop on its own thread, so received readings are
queued and handed to the dashboard loop through drain().
"""

import json
import logging
import queue
from typing import List, Optional

import paho.mqtt.client as mqtt

from dashboard import config
from dashboard.data.reading import Reading, parse_reading

logger = logging.getLogger(__name__)


class MQTTError(Exception):
    """Custom exception for MQTT errors"""
    pass


def reading_from_message(payload: bytes) -> Optional[Reading]:
    """
    Decode one MQTT payload.

    Returns:
        Reading, or None for malformed payloads
    """
    try:
        data = json.loads(payload)
    except (ValueError, TypeError):
        return None
    if not isinstance(data, dict):
        return None

    key = data.get("key") or data.get("timestamp")
    if not key:
        return None
    return parse_reading(key, data)


class MQTTReadingSubscriber:
    """
    Subscribes to the readings topic and buffers incoming readings.

    Example:
    >>> sub = MQTTReadingSubscriber("broker.hivemq.com", 1883, "bedmonitor/patient/readings")
    >>> sub.connect()
    >>> for reading in sub.drain():
    ...     store.append(reading)
    >>> sub.disconnect()
    """

    def __init__(self, broker_host: str = config.MQTT_BROKER,
                 broker_port: int = config.MQTT_PORT,
                 topic: str = config.MQTT_TOPIC,
                 qos: int = 1):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.qos = qos

        self.connected = False
        self.dropped = 0
        self._queue: "queue.Queue[Reading]" = queue.Queue()

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

    def connect(self):
        """
        Connect to the broker and start the network loop.

        Raises:
            MQTTError: if the broker cannot be reached
        """
        try:
            self.client.connect(self.broker_host, self.broker_port, 60)
        except OSError as e:
            logger.error(f"MQTT connection failed: {e}")
            raise MQTTError(f"Cannot connect to {self.broker_host}:{self.broker_port}: {e}") from e
        self.client.loop_start()
        logger.info(f"Connecting to MQTT broker {self.broker_host}:{self.broker_port}")

    def disconnect(self):
        self.client.loop_stop()
        self.client.disconnect()
        self.connected = False

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"MQTT connect refused: {reason_code}")
            return
        self.connected = True
        # Subscribe on every (re)connect so the subscription survives reconnects
        client.subscribe(self.topic, qos=self.qos)
        logger.info(f"Subscribed to {self.topic}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self.connected = False
        logger.warning(f"MQTT disconnected: {reason_code}")

    def _on_message(self, client, userdata, message):
        reading = reading_from_message(message.payload)
        if reading is None:
            self.dropped += 1
            return
        self._queue.put(reading)

    def drain(self) -> List[Reading]:
        """Readings received since the last call, in arrival order"""
        readings = []
        while True:
            try:
                readings.append(self._queue.get_nowait())
            except queue.Empty:
                return readings
