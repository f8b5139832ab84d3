# Bed Pressure Dashboard - Processing Module
# Position classification, debounced position log, presence and timers

from .position_classifier import ClassificationResult, Position, classify
from .position_tracker import PositionTracker
from .device_monitor import DeviceMonitor, DeviceStatus
from .timers import TimerQueue

__all__ = [
    'ClassificationResult', 'Position', 'classify',
    'PositionTracker', 'DeviceMonitor', 'DeviceStatus', 'TimerQueue',
]
