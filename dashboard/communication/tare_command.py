"""
Tare Command
Asks the bed device to re-zero its load cells through the realtime
database and waits for the device to acknowledge.

Exchange:
1. Dashboard writes {command: "TARE", status: "pending", timestamp} to
   commands/tare
2. Device performs the tare and sets commands/tare/status = "completed"
3. Dashboard polls the status until completed or the timeout expires
"""

import logging
import time
from typing import Callable, Optional

from dashboard import config
from dashboard.communication.realtime_client import RealtimeDatabaseClient, RealtimeDatabaseError

logger = logging.getLogger(__name__)

SENT_MESSAGE = "Tare command sent! Waiting for completion..."
COMPLETED_MESSAGE = "Tare completed successfully!"
TIMEOUT_MESSAGE = "Tare timeout! Please check device connection."
SEND_ERROR_MESSAGE = "Error sending tare command!"


class TareCommandError(Exception):
    """Base exception for tare command errors"""
    pass


class CommandSendError(TareCommandError):
    """The command could not be written"""
    pass


class CommandTimeout(TareCommandError):
    """The device never reported completion"""
    pass


class TareCommand:
    """
    One-shot tare request with completion tracking.

    The pending flag is cleared on every outcome (completed, timeout,
    send failure) so the control is never left disabled.
    """

    def __init__(self, client: RealtimeDatabaseClient,
                 clock: Callable[[], float] = time.monotonic,
                 wall_clock: Callable[[], float] = time.time,
                 path: str = config.TARE_PATH,
                 timeout: float = config.TARE_TIMEOUT_SECONDS,
                 poll_interval: float = config.TARE_POLL_SECONDS):
        self.client = client
        self.clock = clock
        self.wall_clock = wall_clock
        self.path = path
        self.timeout = timeout
        self.poll_interval = poll_interval

        self.pending = False
        self.sent_at: Optional[float] = None
        self._last_check: Optional[float] = None

    def send(self) -> bool:
        """
        Write the tare command.

        Returns:
            True if sent, False if a tare is already pending

        Raises:
            CommandSendError: if the write failed
        """
        if self.pending:
            logger.info("Tare already pending, ignoring request")
            return False

        command = {
            "command": "TARE",
            "status": "pending",
            "timestamp": int(self.wall_clock() * 1000),
        }
        try:
            self.client.set(self.path, command)
        except RealtimeDatabaseError as e:
            logger.error(f"Error sending tare command: {e}")
            raise CommandSendError(str(e)) from e

        self.pending = True
        self.sent_at = self.clock()
        logger.info("Tare command sent")
        return True

    def poll(self) -> bool:
        """
        Check whether the device has completed the tare.

        Returns:
            True once the status reads "completed"

        Raises:
            CommandTimeout: if no completion within the timeout
        """
        if not self.pending:
            return False

        now = self.clock()
        status = None
        if self._last_check is None or now - self._last_check >= self.poll_interval:
            self._last_check = now
            try:
                status = self.client.get(f"{self.path}/status")
            except RealtimeDatabaseError as e:
                # Keep waiting, the timeout still bounds the exchange
                logger.warning(f"Tare status check failed: {e}")

        if status == "completed":
            self._clear()
            logger.info("Tare completed")
            return True

        if now - self.sent_at >= self.timeout:
            self._clear()
            logger.warning(f"Tare not completed within {self.timeout:.0f}s")
            raise CommandTimeout(f"No completion after {self.timeout:.0f}s")

        return False

    def _clear(self):
        self.pending = False
        self.sent_at = None
        self._last_check = None
