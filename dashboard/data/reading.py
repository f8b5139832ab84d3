"""
Sensor Reading Model
One timestamped sample of the four bed pressure channels and their total.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional, Tuple

CHANNELS = ("rh", "lh", "rt", "lt")


@dataclass(frozen=True)
class Reading:
    """
    Single pressure sample.

    key orders readings chronologically (string comparison), so it must be
    a lexically sortable id such as a push id or a zero-padded timestamp.
    total is taken as reported by the device and is not recomputed.
    """
    key: str
    timestamp: str
    rh: float = 0.0
    lh: float = 0.0
    rt: float = 0.0
    lt: float = 0.0
    total: float = 0.0

    def channels(self) -> Tuple[float, float, float, float]:
        """Channel values in (rh, lh, rt, lt) order"""
        return (self.rh, self.lh, self.rt, self.lt)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _channel_value(data: Dict[str, Any], name: str) -> float:
    # Missing, None and zero-ish values all ingest as 0
    value = data.get(name)
    if not value:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def parse_reading(key: str, data: Optional[Dict[str, Any]]) -> Optional[Reading]:
    """
    Build a Reading from a raw database payload.

    Args:
        key: Database key of the record
        data: Payload dictionary (may be None for deleted/empty nodes)

    Returns:
        Reading, or None when the payload is null or not a mapping
    """
    if not data or not isinstance(data, dict):
        return None

    return Reading(
        key=str(key),
        timestamp=str(data.get("timestamp") or "Unknown"),
        rh=_channel_value(data, "rh"),
        lh=_channel_value(data, "lh"),
        rt=_channel_value(data, "rt"),
        lt=_channel_value(data, "lt"),
        total=_channel_value(data, "total"),
    )
