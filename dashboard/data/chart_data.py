"""
Chart Series Preparation
Turns the visible slice into the five series the chart draws.
"""

from typing import Dict

import pandas as pd

from dashboard.data.history_store import VisibleSlice

SERIES_LABELS: Dict[str, str] = {
    "total": "Total Weight",
    "rh": "Right Head",
    "lh": "Left Head",
    "rt": "Right Tail",
    "lt": "Left Tail",
}

# Floor for the y axis so an empty bed still gets a readable scale
MIN_Y_MAX = 10


def build_chart_frame(visible: VisibleSlice) -> pd.DataFrame:
    """
    Build a frame with one column per series, one row per reading.

    Args:
        visible: Slice returned by HistoryStore.visible_slice()

    Returns:
        DataFrame indexed by timestamp, columns in SERIES_LABELS order
    """
    columns = list(SERIES_LABELS)
    if not visible.readings:
        return pd.DataFrame(columns=columns, index=pd.Index([], name="timestamp"))

    frame = pd.DataFrame(
        [r.to_dict() for r in visible.readings],
        columns=["timestamp"] + columns,
    )
    return frame.set_index("timestamp")


def suggested_y_max(frame: pd.DataFrame) -> float:
    """Upper y-axis bound: 10% headroom over the largest plotted value"""
    if frame.empty:
        return MIN_Y_MAX * 1.1
    peak = float(frame.to_numpy().max())
    return max(peak, MIN_Y_MAX) * 1.1
