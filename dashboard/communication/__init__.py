# Bed Pressure Dashboard - Communication Module
# Realtime database client, MQTT live subscriber and tare command

from .realtime_client import RealtimeDatabaseClient, RealtimeDatabaseError, TransientFetchError
from .tare_command import TareCommand, CommandSendError, CommandTimeout

__all__ = [
    "RealtimeDatabaseClient", "RealtimeDatabaseError", "TransientFetchError",
    "TareCommand", "CommandSendError", "CommandTimeout",
]
