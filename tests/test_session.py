"""
Integration tests for DashboardSession
Exercises the full event flow with a mocked database client and fake clock
"""

import sys
import unittest
from pathlib import Path
from unittest.mock import Mock

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.communication.realtime_client import TransientFetchError
from dashboard.communication.tare_command import (
    COMPLETED_MESSAGE, SEND_ERROR_MESSAGE, SENT_MESSAGE, TIMEOUT_MESSAGE,
)
from dashboard.data.page_loader import BUFFER_FULL_MESSAGE
from dashboard.data.reading import Reading
from dashboard.main import format_status_line
from dashboard.processing.device_monitor import DeviceStatus
from dashboard.processing.position_classifier import Position
from dashboard.session import DashboardSession


class FakeClock:
    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def make_reading(i: int, rh=250.0, lh=250.0, rt=250.0, lt=250.0) -> Reading:
    return Reading(key=f"k{i:06d}", timestamp=f"t{i}", rh=rh, lh=lh, rt=rt, lt=lt,
                   total=rh + lh + rt + lt)


def make_readings(start: int, stop: int):
    return [make_reading(i) for i in range(start, stop)]


class TestDashboardSession(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.client = Mock()
        self.client.fetch_last.return_value = make_readings(100, 200)
        self.client.fetch_page_before.return_value = make_readings(80, 100)
        self.client.fetch_newer_than.return_value = []
        self.client.get.return_value = "pending"

        self.clock = FakeClock()
        self.session = DashboardSession(self.client, clock=self.clock, run_task=lambda task: task())

    def test_hydrate(self):
        """Test initial load fills the store with the last 1000 readings"""
        self.assertTrue(self.session.hydrate())

        self.client.fetch_last.assert_called_once_with(1000)
        self.assertEqual(len(self.session.store), 100)
        self.assertEqual(self.session.last_seen_key, "k000199")

    def test_hydrate_failure_keeps_buffer(self):
        """Test failed load reports an error and leaves existing data"""
        self.session.hydrate()
        self.client.fetch_last.side_effect = TransientFetchError("HTTP 500")

        self.assertFalse(self.session.hydrate())

        self.assertEqual(self.session.status_message, "Error loading data: HTTP 500")
        self.assertEqual(len(self.session.store), 100)

    def test_live_reading_flow(self):
        """Test a live reading updates store, presence and classification"""
        self.session.hydrate()
        self.session.on_reading(make_reading(200, rh=50, lh=450, rt=50, lt=450))

        self.assertEqual(len(self.session.store), 101)
        self.assertEqual(self.session.store.visible_slice().end, 101)
        self.assertEqual(self.session.tracker.current_position, Position.LEFT)
        self.assertEqual(self.session.last_seen_key, "k000200")

        self.session.tick()
        self.assertEqual(self.session.monitor.status, DeviceStatus.ONLINE)
        self.assertEqual(len(self.session.tracker.history), 0)

        self.clock.advance(1.0)
        self.session.tick()
        self.assertEqual(len(self.session.tracker.history), 1)

    def test_poll_live(self):
        """Test polling asks for readings after the newest key"""
        self.session.hydrate()
        self.client.fetch_newer_than.return_value = make_readings(200, 203)

        self.assertEqual(self.session.poll_live(), 3)

        self.client.fetch_newer_than.assert_called_once_with("k000199")
        self.assertEqual(self.session.last_seen_key, "k000202")

    def test_poll_live_failure(self):
        self.client.fetch_newer_than.side_effect = TransientFetchError("offline")
        self.assertEqual(self.session.poll_live(), 0)

    def test_none_readings_ignored(self):
        self.session.hydrate()
        self.assertEqual(self.session.on_readings([None, make_reading(200), None]), 1)

    def test_load_older(self):
        """Test older page is fetched and applied on the next tick"""
        self.session.hydrate()

        self.assertTrue(self.session.load_older())
        self.session.tick()

        self.client.fetch_page_before.assert_called_once_with("k000100", 20)
        self.assertEqual(len(self.session.store), 120)
        self.assertFalse(self.session.store.view.live_follow)

    def test_load_older_refused_when_buffer_full(self):
        """Test a full buffer refuses before fetching and says why"""
        self.client.fetch_last.return_value = make_readings(1000, 2000)
        self.session.hydrate()

        self.assertFalse(self.session.load_older())
        self.session.tick()

        self.client.fetch_page_before.assert_not_called()
        self.assertEqual(len(self.session.store), 1000)
        self.assertTrue(self.session.store.view.live_follow)
        self.assertEqual(self.session.status_message, BUFFER_FULL_MESSAGE)
        self.assertFalse(self.session.loader.is_loading)

    def test_load_older_page_capped_to_free_space(self):
        """Test a nearly full buffer only asks for what fits"""
        self.client.fetch_last.return_value = make_readings(1000, 1990)
        self.client.fetch_page_before.return_value = make_readings(990, 1000)
        self.session.hydrate()

        self.assertTrue(self.session.load_older())
        self.session.tick()

        self.client.fetch_page_before.assert_called_once_with("k001000", 10)
        self.assertEqual(len(self.session.store), 1000)
        self.assertEqual(self.session.store.oldest_key(), "k000990")

    def test_older_page_dropped_after_reset_to_live(self):
        """Test a fetch finishing after returning to live is discarded"""
        self.session.hydrate()
        self.session.load_older()
        self.session.reset_to_live()
        self.session.tick()

        self.assertEqual(len(self.session.store), 100)
        self.assertTrue(self.session.store.view.live_follow)
        self.assertEqual(self.session.store.view.pan_offset, 0)

    def test_older_page_error(self):
        """Test fetch failure becomes the status message"""
        self.session.hydrate()
        self.client.fetch_page_before.side_effect = TransientFetchError("HTTP 503")

        self.session.load_older()
        self.session.tick()

        self.assertEqual(self.session.status_message, "Error loading older data: HTTP 503")

    def test_zoom_buttons(self):
        """Test zoom in and out factors"""
        self.session.hydrate()

        self.session.zoom_in()
        self.assertEqual(self.session.store.view.window_size, 16)

        self.session.zoom_out()
        self.assertEqual(self.session.store.view.window_size, 19)
        self.assertFalse(self.session.store.view.live_follow)

    def test_wheel_zoom(self):
        """Test wheel down zooms in around the cursor"""
        self.session.hydrate()

        self.session.wheel(delta_y=120, x=250, width=500)

        visible = self.session.store.visible_slice()
        self.assertEqual(self.session.store.view.window_size, 18)
        self.assertEqual((visible.start, visible.end), (81, 99))

        self.session.wheel(delta_y=-120, x=250, width=500)
        visible = self.session.store.visible_slice()
        self.assertEqual(self.session.store.view.window_size, 20)
        self.assertEqual((visible.start, visible.end), (80, 100))

    def test_wheel_zoom_full_buffer_stays_in_view(self):
        """Test wheel zoom on a full live buffer stays on the newest readings"""
        self.client.fetch_last.return_value = make_readings(0, 1000)
        self.session.hydrate()
        visible = self.session.store.visible_slice()
        self.assertEqual((visible.start, visible.end), (980, 1000))

        self.session.wheel(delta_y=120, x=250, width=500)

        visible = self.session.store.visible_slice()
        self.assertEqual((visible.start, visible.end), (981, 999))

    def test_wheel_zoom_anchored_under_cursor(self):
        """Test the reading under the cursor stays in view after zooming"""
        self.session.hydrate()
        under_cursor = self.session.store.pixel_to_index(100, 500)  # index 84

        self.session.wheel(delta_y=120, x=100, width=500)

        visible = self.session.store.visible_slice()
        self.assertEqual(under_cursor, 84)
        self.assertTrue(visible.start <= under_cursor < visible.end)

    def test_drag(self):
        """Test dragging right by 15 px per step shows older data"""
        self.session.hydrate()

        self.session.begin_drag()
        self.session.drag_to(45)
        self.assertEqual(self.session.store.view.pan_offset, 3)
        self.session.drag_to(150)
        self.assertEqual(self.session.store.view.pan_offset, 10)
        self.session.drag_to(-200)
        self.assertEqual(self.session.store.view.pan_offset, 0)
        self.session.end_drag()

        self.session.drag_to(300)
        self.assertEqual(self.session.store.view.pan_offset, 0)

    def test_window_size_and_view_newer(self):
        self.session.hydrate()
        self.session.pan(40)
        self.session.view_newer()
        self.assertEqual(self.session.store.view.pan_offset, 20)

        self.session.set_window_size(50)
        self.assertTrue(self.session.store.view.live_follow)
        self.assertEqual(self.session.store.view.window_size, 50)

    def test_tare_completed(self):
        """Test tare sent then completed on a later tick"""
        self.assertEqual(self.session.send_tare(), SENT_MESSAGE)
        self.session.tick()
        self.assertEqual(self.session.tare_message, SENT_MESSAGE)

        self.client.get.return_value = "completed"
        self.clock.advance(1)
        self.session.tick()

        self.assertEqual(self.session.tare_message, COMPLETED_MESSAGE)
        self.assertFalse(self.session.tare.pending)

    def test_tare_timeout(self):
        self.session.send_tare()
        self.clock.advance(15)
        self.session.tick()

        self.assertEqual(self.session.tare_message, TIMEOUT_MESSAGE)
        self.assertFalse(self.session.tare.pending)

    def test_tare_send_error(self):
        self.client.set.side_effect = TransientFetchError("HTTP 401")
        self.assertEqual(self.session.send_tare(), SEND_ERROR_MESSAGE)
        self.assertFalse(self.session.tare.pending)

    def test_stats_and_status_line(self):
        """Test statistics and console rendering"""
        self.session.hydrate()
        self.session.on_reading(make_reading(200))
        self.session.tick()

        stats = self.session.get_stats()
        self.assertEqual(stats['data_points'], 101)
        self.assertEqual(stats['position'], "Center")
        self.assertEqual(stats['confidence'], 100)
        self.assertEqual(stats['classification_mode'], "Live classification")

        line = format_status_line(self.session)
        self.assertIn("Device online", line)
        self.assertIn("Center (100%)", line)
        self.assertIn("(Live)", line)

    def test_status_line_without_data(self):
        line = format_status_line(self.session)
        self.assertIn("no readings in view", line)
        self.assertIn("Waiting for data...", line)


if __name__ == '__main__':
    unittest.main(verbosity=2)
