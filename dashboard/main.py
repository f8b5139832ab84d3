"""
Bed Pressure Dashboard
Main Entry Point

Streams bed pressure readings from the realtime database, keeps a
pan/zoomable history window, and classifies the occupant's position.

Architecture:
- Realtime database: REST client (history, polling, tare command)
- Live source: database polling or MQTT subscription
- Single-threaded loop: timers, live readings, page loads, presence
- Console output: one status line per render interval
"""

import logging
import signal
import sys
import time

from dashboard import config
from dashboard.communication.mqtt_client import MQTTError, MQTTReadingSubscriber
from dashboard.communication.realtime_client import RealtimeDatabaseClient
from dashboard.data.chart_data import build_chart_frame, suggested_y_max
from dashboard.session import DashboardSession

logger = logging.getLogger(__name__)

_components = {}
_running = True


def setup_logging():
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout), logging.FileHandler("dashboard.log")],
    )


def signal_handler(sig, frame):
    """Handle Ctrl+C for graceful shutdown"""
    global _running
    logger.info("Shutdown signal received...")
    _running = False


def initialize_components():
    """
    Create the database client, session and live source.

    Returns:
        Dictionary with initialized components
    """
    logger.info("=" * 60)
    logger.info("Bed Pressure Dashboard")
    logger.info("=" * 60)

    components = {}

    # 1. Realtime database client
    logger.info("[1/3] Initializing realtime database client...")
    client = RealtimeDatabaseClient(config.DATABASE_URL, auth=config.DATABASE_AUTH)
    if not client.is_configured():
        logger.warning("! Database URL looks like a placeholder. Set DASHBOARD_DATABASE_URL.")
    components["client"] = client
    logger.info(f"✓ Database: {config.DATABASE_URL}/{config.READINGS_PATH}")

    # 2. Session and initial history
    logger.info("[2/3] Loading historical data...")
    session = DashboardSession(client)
    components["session"] = session
    if session.hydrate():
        logger.info(f"✓ {len(session.store)} readings loaded")
    else:
        logger.warning(f"! {session.status_message} (continuing with empty history)")

    # 3. Live source
    logger.info(f"[3/3] Starting live source ({config.LIVE_SOURCE})...")
    if config.LIVE_SOURCE == "mqtt":
        subscriber = MQTTReadingSubscriber()
        try:
            subscriber.connect()
            components["mqtt"] = subscriber
            logger.info(f"✓ MQTT subscriber on {config.MQTT_TOPIC}")
        except MQTTError as e:
            logger.error(f"MQTT unavailable ({e}), falling back to polling")
    else:
        logger.info(f"✓ Polling every {config.POLL_INTERVAL:.1f}s")

    logger.info("=" * 60)
    logger.info("Dashboard Ready - Starting Event Loop")
    logger.info("=" * 60)

    return components


def format_status_line(session: DashboardSession) -> str:
    """Render one console line for the current dashboard state"""
    stats = session.get_stats()
    visible = session.store.visible_slice()
    frame = build_chart_frame(visible)

    if len(frame):
        latest = frame.iloc[-1]
        values = (
            f"RH {latest['rh']:>7.1f} | LH {latest['lh']:>7.1f} | "
            f"RT {latest['rt']:>7.1f} | LT {latest['lt']:>7.1f} | "
            f"TOTAL {latest['total']:>8.1f} | Y-max {suggested_y_max(frame):>8.1f}"
        )
    else:
        values = "no readings in view"

    return (
        f"[{stats['device']}] {values} | {stats['position']} "
        f"({stats['confidence']}%) | {stats['summary']}"
    )


def main_loop(components):
    """
    Main event loop.

    Every tick: deliver live readings, run due timers, apply finished page
    loads, check the tare status and presence. Status printed once per
    render interval.
    """
    global _running

    session = components["session"]
    subscriber = components.get("mqtt")

    last_poll = 0.0
    last_render = 0.0

    while _running:
        try:
            now = time.monotonic()

            # 1. Live readings
            if subscriber is not None:
                session.on_readings(subscriber.drain())
            elif now - last_poll >= config.POLL_INTERVAL:
                session.poll_live()
                last_poll = now

            # 2. Timers, page loads, tare, presence
            session.tick()

            # 3. Display
            if now - last_render >= config.RENDER_INTERVAL:
                print(format_status_line(session))
                if session.tare_message:
                    print(f"  Tare: {session.tare_message}")
                    if not session.tare.pending:
                        session.tare_message = ""
                last_render = now

            time.sleep(config.LOOP_INTERVAL)

        except KeyboardInterrupt:
            logger.info("Keyboard interrupt received")
            break
        except Exception as e:
            logger.error(f"Error in main loop: {e}")
            time.sleep(1)


def shutdown(components):
    """Graceful shutdown and cleanup"""
    logger.info("Shutting down...")

    if "mqtt" in components:
        components["mqtt"].disconnect()
        logger.info("MQTT subscriber stopped")

    if "session" in components:
        logger.info(f"Final dashboard stats: {components['session'].get_stats()}")

    logger.info("Shutdown complete. Goodbye!")


def main():
    """
    Main entry point

    Initializes all components and runs the event loop.
    Handles graceful shutdown on Ctrl+C.
    """
    global _components

    setup_logging()
    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    try:
        _components = initialize_components()
        main_loop(_components)
    except Exception as e:
        logger.error(f"Fatal error: {e}")
        sys.exit(1)
    finally:
        shutdown(_components)


if __name__ == "__main__":
    main()
