# Bed Pressure Dashboard - Data Module
# Reading model, windowed history buffer and chart series

from .reading import Reading, parse_reading
from .history_store import HistoryStore, ViewState, VisibleSlice

__all__ = ["Reading", "parse_reading", "HistoryStore", "ViewState", "VisibleSlice"]
