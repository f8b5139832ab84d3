"""
Windowed History Store
Bounded, key-ordered buffer of sensor readings plus the pan/zoom/live-follow
view state that selects the slice the chart renders.

The buffer is only mutated by load_bulk, append and prepend_older_page.
View operations never touch the buffer.
"""

import logging
import math
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Iterable, List, Optional

from dashboard import config
from dashboard.data.reading import Reading

logger = logging.getLogger(__name__)

_by_key = attrgetter("key")


def _clamp(value, low, high):
    # Upper bound may be below the lower one for short buffers; low wins
    return max(low, min(high, value))


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


@dataclass
class ViewState:
    """Pan/zoom state of the visible window"""
    window_size: int = config.DEFAULT_WINDOW
    pan_offset: int = 0
    live_follow: bool = True
    zoom_level: float = 1.0


@dataclass
class VisibleSlice:
    """Readings currently in view, with their [start, end) buffer indices"""
    readings: List[Reading] = field(default_factory=list)
    start: int = 0
    end: int = 0

    def __len__(self) -> int:
        return len(self.readings)


class HistoryStore:
    """
    Owns the reading buffer and its visible window.

    Features:
    - Sorted by key at all times (out-of-order delivery is corrected)
    - Capacity-bounded: overflow evicts the oldest readings only
    - Live-follow keeps the window pinned to the newest reading
    - Pan and zoom keep the window anchored while browsing history
    - Older pages are spliced in front without moving the visible slice
    """

    CAPACITY = config.BUFFER_CAPACITY

    def __init__(self, capacity: int = CAPACITY):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._readings: List[Reading] = []
        self.view = ViewState()

    # ------------------------------------------------------------------
    # Buffer mutation
    # ------------------------------------------------------------------

    def load_bulk(self, readings: Iterable[Optional[Reading]]):
        """
        Replace the buffer wholesale (initial hydration).

        Args:
            readings: Readings in any order; None entries are skipped
        """
        loaded = sorted((r for r in readings if r is not None), key=_by_key)
        self._readings = loaded[-self.capacity:]
        if self.view.live_follow:
            self.view.pan_offset = 0
        logger.info(f"Loaded {len(self._readings)} readings into history")

    def append(self, reading: Optional[Reading]):
        """
        Insert a live reading, re-sort, and trim to capacity.

        A reading whose key is already buffered replaces the stored copy.
        Truncation always slices from the end, so the newest readings
        survive regardless of where the insert landed.
        """
        if reading is None:
            return

        for i, existing in enumerate(self._readings):
            if existing.key == reading.key:
                self._readings[i] = reading
                break
        else:
            self._readings.append(reading)
            self._readings.sort(key=_by_key)

        if len(self._readings) > self.capacity:
            self._readings = self._readings[-self.capacity:]

        if self.view.live_follow:
            self.view.pan_offset = 0

    def prepend_older_page(self, readings: List[Reading]) -> int:
        """
        Splice a page of strictly older readings in front of the buffer.

        The page comes from a "key < oldest key" query and is not re-sorted
        across the join. pan_offset grows by the applied page length, so a
        historical view keeps its distance from the oldest buffered reading.

        Args:
            readings: Page ascending by key

        Returns:
            Number of readings actually prepended
        """
        if not readings:
            return 0

        free = self.capacity - len(self._readings)
        if free <= 0:
            logger.info("History buffer full, older page not applied")
            return 0

        page = list(readings)[-free:]
        self._readings = page + self._readings
        self.view.pan_offset += len(page)
        logger.info(f"Prepended {len(page)} older readings")
        return len(page)

    def clear(self):
        self._readings = []
        self.view = ViewState()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._readings)

    @property
    def readings(self) -> List[Reading]:
        return list(self._readings)

    @property
    def free_capacity(self) -> int:
        return self.capacity - len(self._readings)

    @property
    def is_full(self) -> bool:
        return len(self._readings) >= self.capacity

    def oldest_key(self) -> Optional[str]:
        return self._readings[0].key if self._readings else None

    def newest_key(self) -> Optional[str]:
        return self._readings[-1].key if self._readings else None

    # ------------------------------------------------------------------
    # View
    # ------------------------------------------------------------------

    def visible_slice(self) -> VisibleSlice:
        """Slice of the buffer selected by the current view state"""
        length = len(self._readings)
        window = self.view.window_size

        start = max(0, length - window - self.view.pan_offset)
        end = min(length, start + window)
        if end - start < window:
            start = max(0, end - window)

        return VisibleSlice(self._readings[start:end], start, end)

    def summary(self) -> str:
        """One-line description of the visible window for the status bar"""
        if not self._readings:
            return "Waiting for data..."

        visible = self.visible_slice()
        mode = "(Live)" if self.view.live_follow else "(Historical)"
        return (
            f"Showing {len(visible)} data points ({visible.start}-{visible.end}) "
            f"{mode} | Zoom: {self.view.zoom_level:.1f}x"
        )

    def reset_to_live(self):
        self.view.live_follow = True
        self.view.pan_offset = 0
        self.view.window_size = config.DEFAULT_WINDOW
        self.view.zoom_level = 1.0

    def set_window_size(self, size: int):
        """Window size typed by the user: jumps back to live view"""
        self.view.window_size = _clamp(int(size), config.MIN_WINDOW, config.MAX_WINDOW)
        self.view.pan_offset = 0
        self.view.live_follow = True
        self.view.zoom_level = 1.0

    def pan(self, delta: int):
        """
        Shift the window by delta data points (positive = older).

        Args:
            delta: Data points to move; clamped to the buffer bounds
        """
        self.view.live_follow = False
        length = len(self._readings)
        self.view.pan_offset = _clamp(
            self.view.pan_offset + int(delta), 0, length - self.view.window_size
        )

    def view_newer(self):
        """Step one full window towards the newest reading"""
        self.view.live_follow = False
        self.view.pan_offset = max(0, self.view.pan_offset - self.view.window_size)

    def zoom(self, scale_factor: float, center_index: Optional[float] = None):
        """
        Resize the window around an anchor point.

        The anchor is the midpoint of the current window unless an explicit
        buffer index is given (e.g. derived from the cursor position), so
        wheel zoom stays under the cursor.

        Args:
            scale_factor: < 1 zooms in, > 1 zooms out
            center_index: Optional buffer index to keep in place
        """
        self.view.live_follow = False

        length = len(self._readings)
        old_window = self.view.window_size
        new_window = _clamp(
            _round_half_up(old_window * scale_factor), config.MIN_WINDOW, config.MAX_WINDOW
        )

        if center_index is None:
            center_index = length - self.view.pan_offset - old_window / 2

        self.view.pan_offset = _clamp(
            _round_half_up(length - center_index - new_window / 2), 0, length - new_window
        )
        self.view.window_size = new_window
        self.view.zoom_level = config.ZOOM_REFERENCE / new_window

    def pixel_to_index(self, x: float, width: float) -> int:
        """
        Map a horizontal pixel position on the chart to a buffer index.

        The chart only draws the visible slice, so the pixel is mapped
        inside [start, end), not across the whole buffer.
        """
        visible = self.visible_slice()
        if width <= 0 or not visible.readings:
            return 0
        x = _clamp(x, 0, width)
        offset = min(len(visible) - 1, int(math.floor(x * len(visible) / width)))
        return visible.start + offset
