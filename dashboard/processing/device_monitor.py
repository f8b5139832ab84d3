"""
Device Presence Monitor
Derives the device online/offline indicator from reading arrival times.
"""

import time
import logging
from enum import Enum
from typing import Callable, Dict, Optional

from dashboard import config

logger = logging.getLogger(__name__)


class DeviceStatus(Enum):
    """Device presence enumeration"""
    CONNECTING = "Waiting for device"
    ONLINE = "Device online"
    STALE = "Device stale"
    OFFLINE = "Device offline"


class DeviceMonitor:
    """
    Presence state machine driven by reading arrivals.

    States:
    1. CONNECTING: no reading yet, still within the startup grace period
    2. ONLINE: last reading less than live_seconds ago
    3. STALE: last reading less than timeout_seconds ago
    4. OFFLINE: older than that, or nothing received after the grace period
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic,
                 live_seconds: float = config.DEVICE_LIVE_SECONDS,
                 timeout_seconds: float = config.DEVICE_TIMEOUT_SECONDS,
                 startup_grace: float = config.STARTUP_GRACE_SECONDS):
        self.clock = clock
        self.live_seconds = live_seconds
        self.timeout_seconds = timeout_seconds
        self.startup_grace = startup_grace

        self.started_at = clock()
        self.last_arrival: Optional[float] = None
        self.status = DeviceStatus.CONNECTING

    def record_arrival(self):
        """Call once per received reading"""
        self.last_arrival = self.clock()

    def seconds_since_last(self) -> Optional[float]:
        if self.last_arrival is None:
            return None
        return self.clock() - self.last_arrival

    def update(self) -> DeviceStatus:
        """
        Re-evaluate presence.

        Returns:
            Current device status
        """
        now = self.clock()

        if self.last_arrival is None:
            if now - self.started_at < self.startup_grace:
                new_status = DeviceStatus.CONNECTING
            else:
                new_status = DeviceStatus.OFFLINE
        else:
            elapsed = now - self.last_arrival
            if elapsed < self.live_seconds:
                new_status = DeviceStatus.ONLINE
            elif elapsed < self.timeout_seconds:
                new_status = DeviceStatus.STALE
            else:
                new_status = DeviceStatus.OFFLINE

        if new_status != self.status:
            logger.info(f"Device status: {self.status.value} -> {new_status.value}")
            self.status = new_status

        return self.status

    def classification_mode(self) -> str:
        """Whether position classification is running on live or old data"""
        elapsed = self.seconds_since_last()
        if elapsed is not None and elapsed < config.LIVE_CLASSIFICATION_SECONDS:
            return "Live classification"
        return "Historical data analysis"

    def get_stats(self) -> Dict:
        return {
            "status": self.status.value,
            "status_code": self.status.name,
            "seconds_since_last": self.seconds_since_last(),
        }
