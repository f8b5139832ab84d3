"""
Unit tests for chart series preparation
"""

import sys
import unittest
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from dashboard.data.chart_data import SERIES_LABELS, build_chart_frame, suggested_y_max
from dashboard.data.history_store import HistoryStore, VisibleSlice
from dashboard.data.reading import Reading


class TestChartData(unittest.TestCase):

    def setUp(self):
        """Set up test fixtures"""
        self.store = HistoryStore()
        self.store.load_bulk([
            Reading(f"k{i:03d}", f"12:00:{i:02d}", rh=i, lh=2 * i, rt=3 * i, lt=4 * i, total=10 * i)
            for i in range(30)
        ])

    def test_frame_matches_visible_slice(self):
        """Test one row per visible reading, columns in series order"""
        frame = build_chart_frame(self.store.visible_slice())

        self.assertEqual(list(frame.columns), list(SERIES_LABELS))
        self.assertEqual(len(frame), 20)
        self.assertEqual(frame.index[0], "12:00:10")
        self.assertEqual(frame.index.name, "timestamp")
        self.assertEqual(frame.iloc[-1]["total"], 290.0)
        self.assertEqual(frame.iloc[-1]["lt"], 116.0)

    def test_empty_slice(self):
        """Test empty view gives an empty frame with all series"""
        frame = build_chart_frame(VisibleSlice())

        self.assertTrue(frame.empty)
        self.assertEqual(list(frame.columns), list(SERIES_LABELS))

    def test_series_labels(self):
        self.assertEqual(list(SERIES_LABELS.values()),
                         ["Total Weight", "Right Head", "Left Head", "Right Tail", "Left Tail"])

    def test_suggested_y_max(self):
        """Test 10% headroom over the peak value"""
        frame = build_chart_frame(self.store.visible_slice())
        self.assertAlmostEqual(suggested_y_max(frame), 319.0)

    def test_suggested_y_max_floor(self):
        """Test small or empty data keeps a minimum scale"""
        store = HistoryStore()
        store.load_bulk([Reading("k1", "t1", total=2.0)])

        self.assertAlmostEqual(suggested_y_max(build_chart_frame(store.visible_slice())), 11.0)
        self.assertAlmostEqual(suggested_y_max(build_chart_frame(VisibleSlice())), 11.0)


if __name__ == '__main__':
    unittest.main(verbosity=2)
