"""
Unit tests for DeviceMonitor
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.processing.device_monitor import DeviceMonitor, DeviceStatus


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class TestDeviceMonitor(unittest.TestCase):
    """Presence state transitions"""

    def setUp(self):
        """Set up test fixtures"""
        self.clock = FakeClock()
        self.monitor = DeviceMonitor(self.clock)

    def test_initial_state(self):
        """Test monitor starts waiting for the device"""
        self.assertEqual(self.monitor.update(), DeviceStatus.CONNECTING)
        self.assertIsNone(self.monitor.seconds_since_last())

    def test_offline_after_grace_without_data(self):
        """Test no data within the startup grace period means offline"""
        self.clock.advance(10.0)
        self.assertEqual(self.monitor.update(), DeviceStatus.OFFLINE)

    def test_online_stale_offline(self):
        """Test status degrades as the last reading ages"""
        self.monitor.record_arrival()
        self.assertEqual(self.monitor.update(), DeviceStatus.ONLINE)

        self.clock.advance(4)
        self.assertEqual(self.monitor.update(), DeviceStatus.ONLINE)

        self.clock.advance(1)
        self.assertEqual(self.monitor.update(), DeviceStatus.STALE)

        self.clock.advance(5.0)
        self.assertEqual(self.monitor.update(), DeviceStatus.OFFLINE)

    def test_recovers_on_new_reading(self):
        """Test a new reading brings the device back online"""
        self.monitor.record_arrival()
        self.clock.advance(30)
        self.monitor.update()

        self.monitor.record_arrival()
        self.assertEqual(self.monitor.update(), DeviceStatus.ONLINE)

    def test_classification_mode(self):
        """Test live classification within 15 s of the last reading"""
        self.assertEqual(self.monitor.classification_mode(), "Historical data analysis")

        self.monitor.record_arrival()
        self.clock.advance(14)
        self.assertEqual(self.monitor.classification_mode(), "Live classification")

        self.clock.advance(1)
        self.assertEqual(self.monitor.classification_mode(), "Historical data analysis")

    def test_get_stats(self):
        """Test statistics retrieval"""
        self.monitor.record_arrival()
        self.clock.advance(2)
        self.monitor.update()

        stats = self.monitor.get_stats()

        self.assertEqual(stats['status'], "Device online")
        self.assertEqual(stats['status_code'], "ONLINE")
        self.assertEqual(stats['seconds_since_last'], 2)


if __name__ == '__main__':
    unittest.main(verbosity=2)
