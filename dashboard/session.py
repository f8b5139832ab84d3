"""
Dashboard Session
Owns all dashboard state (history store, position tracker, presence
monitor, page loader, tare command) and routes external events to it.

Every method runs on the dashboard loop thread.
"""

import logging
import math
import time
from typing import Callable, Dict, Iterable, Optional

from dashboard import config
from dashboard.communication.realtime_client import RealtimeDatabaseClient, TransientFetchError
from dashboard.communication.tare_command import (
    COMPLETED_MESSAGE, SEND_ERROR_MESSAGE, SENT_MESSAGE, TIMEOUT_MESSAGE,
    CommandSendError, CommandTimeout, TareCommand,
)
from dashboard.data.history_store import HistoryStore
from dashboard.data.page_loader import BUFFER_FULL_MESSAGE, OlderPageLoader, run_in_thread
from dashboard.data.reading import Reading
from dashboard.processing.device_monitor import DeviceMonitor
from dashboard.processing.position_tracker import PositionTracker
from dashboard.processing.timers import TimerQueue

logger = logging.getLogger(__name__)

ZOOM_IN = 0.8
ZOOM_OUT = 1.2
WHEEL_ZOOM_DOWN = 0.9
WHEEL_ZOOM_UP = 1.1


class DashboardSession:
    """
    Event router for one dashboard.

    Inputs:
    - Readings (initial load, live stream, older pages)
    - User view actions (pan, drag, zoom, wheel, live, window size)
    - Tare requests
    - Loop ticks (timers, finished fetches, tare status, presence)
    """

    def __init__(self, client: RealtimeDatabaseClient,
                 clock: Callable[[], float] = time.monotonic,
                 run_task: Callable = run_in_thread):
        """
        Args:
            client: Realtime database client
            clock: Monotonic clock shared by timers, presence and tare
            run_task: Executor for background page fetches
        """
        self.client = client
        self.clock = clock

        self.timers = TimerQueue(clock)
        self.store = HistoryStore()
        self.tracker = PositionTracker(self.timers)
        self.monitor = DeviceMonitor(clock)
        self.loader = OlderPageLoader(self.store, client.fetch_page_before, run_task)
        self.tare = TareCommand(client, clock)

        self.status_message = ""
        self.tare_message = ""
        self.last_seen_key: Optional[str] = None
        self._drag_start_offset: Optional[int] = None

    # ------------------------------------------------------------------
    # Data
    # ------------------------------------------------------------------

    def hydrate(self) -> bool:
        """
        Replace history with the most recent readings from the database.

        Returns:
            True if loaded; on failure the buffer is left untouched
        """
        try:
            readings = self.client.fetch_last(self.store.capacity)
        except TransientFetchError as e:
            self.status_message = f"Error loading data: {e}"
            logger.error(self.status_message)
            return False

        self.store.load_bulk(readings)
        self.last_seen_key = self.store.newest_key()
        self.status_message = self.store.summary()
        return True

    def on_reading(self, reading: Optional[Reading]):
        """Handle one live reading"""
        if reading is None:
            return

        self.monitor.record_arrival()
        self.tracker.observe(reading)
        self.store.append(reading)

        if self.last_seen_key is None or reading.key > self.last_seen_key:
            self.last_seen_key = reading.key

    def on_readings(self, readings: Iterable[Optional[Reading]]) -> int:
        count = 0
        for reading in readings:
            if reading is not None:
                self.on_reading(reading)
                count += 1
        return count

    def poll_live(self) -> int:
        """
        Fetch readings newer than the last one seen (poll live source).

        Returns:
            Number of new readings delivered
        """
        try:
            readings = self.client.fetch_newer_than(self.last_seen_key)
        except TransientFetchError as e:
            logger.warning(f"Live poll failed: {e}")
            return 0
        return self.on_readings(readings)

    def load_older(self) -> bool:
        if self.store.is_full:
            self.status_message = BUFFER_FULL_MESSAGE
            logger.info(self.status_message)
            return False
        return self.loader.request()

    # ------------------------------------------------------------------
    # View actions
    # ------------------------------------------------------------------

    def reset_to_live(self):
        self.loader.invalidate()
        self.store.reset_to_live()

    def set_window_size(self, size: int):
        self.store.set_window_size(size)

    def pan(self, delta: int):
        self.store.pan(delta)

    def view_newer(self):
        self.store.view_newer()

    def zoom_in(self):
        self.store.zoom(ZOOM_IN)

    def zoom_out(self):
        self.store.zoom(ZOOM_OUT)

    def wheel(self, delta_y: float, x: float, width: float):
        """
        Wheel zoom anchored under the cursor.

        Args:
            delta_y: Wheel delta (positive = scroll down = zoom in)
            x: Cursor x relative to the chart's left edge
            width: Chart width in pixels
        """
        self.store.view.live_follow = False
        center = self.store.pixel_to_index(x, width)
        if delta_y > 0:
            self.store.zoom(WHEEL_ZOOM_DOWN, center)
        else:
            self.store.zoom(WHEEL_ZOOM_UP, center)

    def begin_drag(self):
        self.store.view.live_follow = False
        self._drag_start_offset = self.store.view.pan_offset

    def drag_to(self, dx_pixels: float):
        """Pan relative to where the drag started"""
        if self._drag_start_offset is None:
            return
        steps = math.floor(dx_pixels / config.PIXELS_PER_PAN_STEP + 0.5)
        target = self._drag_start_offset + steps
        self.store.pan(target - self.store.view.pan_offset)

    def end_drag(self):
        self._drag_start_offset = None

    # ------------------------------------------------------------------
    # Tare
    # ------------------------------------------------------------------

    def send_tare(self) -> str:
        try:
            if self.tare.send():
                self.tare_message = SENT_MESSAGE
        except CommandSendError:
            self.tare_message = SEND_ERROR_MESSAGE
        return self.tare_message

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    def tick(self):
        """One pass of periodic work; call every loop iteration"""
        self.timers.run_due()

        message = self.loader.process_completed()
        if message:
            self.status_message = message
            logger.error(message)

        try:
            if self.tare.poll():
                self.tare_message = COMPLETED_MESSAGE
        except CommandTimeout:
            self.tare_message = TIMEOUT_MESSAGE

        self.monitor.update()

    def get_stats(self) -> Dict:
        position = self.tracker.current_position
        return {
            "data_points": len(self.store),
            "summary": self.store.summary(),
            "device": self.monitor.status.value,
            "classification_mode": self.monitor.classification_mode(),
            "position": position.value if position else "Unknown",
            "confidence": self.tracker.current_confidence,
            "history_entries": len(self.tracker.history),
            "loading_older": self.loader.is_loading,
            "tare_pending": self.tare.pending,
        }
