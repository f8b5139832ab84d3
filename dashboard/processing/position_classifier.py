"""
Sleep Position Classifier
Rule-based classification of body position from the pressure distribution
across the four bed sensors (right/left head, right/left tail).

The thresholds are hand-tuned against the physical bed and the rule order
matters: the first matching rule decides the position.
"""

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, NamedTuple

import numpy as np

from dashboard import config

logger = logging.getLogger(__name__)


class Position(Enum):
    """Body position labels"""
    CENTER = "Center"
    LEFT = "Left"
    RIGHT = "Right"
    DIAGONAL_LEFT = "DiagonalLeft"
    DIAGONAL_RIGHT = "DiagonalRight"
    EMPTY = "Empty"

    @property
    def is_diagonal(self) -> bool:
        return self in (Position.DIAGONAL_LEFT, Position.DIAGONAL_RIGHT)


class Pattern(NamedTuple):
    """Expected percent of total per channel, and the deviation tolerance"""
    lh: float
    rh: float
    lt: float
    rt: float
    tolerance: float


REFERENCE_PATTERNS: Dict[Position, Pattern] = {
    Position.CENTER: Pattern(lh=25, rh=25, lt=25, rt=25, tolerance=12),
    Position.LEFT: Pattern(lh=35, rh=15, lt=35, rt=15, tolerance=15),
    Position.RIGHT: Pattern(lh=15, rh=35, lt=15, rt=35, tolerance=15),
    Position.DIAGONAL_LEFT: Pattern(lh=32, rh=18, lt=28, rt=22, tolerance=18),
    Position.DIAGONAL_RIGHT: Pattern(lh=18, rh=32, lt=22, rt=28, tolerance=18),
}

EMPTY_CONFIDENCE = 95
FALLBACK_CONFIDENCE = 40
MIN_CONFIDENCE = 30
MAX_CONFIDENCE = 100
DIAGONAL_BONUS = 10
DIAGONAL_BONUS_DOMINANCE = 10


@dataclass(frozen=True)
class ClassificationResult:
    position: Position
    confidence: int
    debug_trace: str = ""


@dataclass(frozen=True)
class Distribution:
    """Channel percentages and the aggregates the rules look at"""
    rh: float
    lh: float
    rt: float
    lt: float

    @property
    def left(self) -> float:
        return self.lh + self.lt

    @property
    def right(self) -> float:
        return self.rh + self.rt

    @property
    def head(self) -> float:
        return self.rh + self.lh

    @property
    def tail(self) -> float:
        return self.rt + self.lt

    @property
    def left_right_ratio(self) -> float:
        if self.right == 0:
            # nan matches none of the ratio rules
            return math.inf if self.left > 0 else math.nan
        return self.left / self.right

    @property
    def left_right_diff(self) -> float:
        return abs(self.left - self.right)

    @property
    def head_dominance(self) -> float:
        return abs(self.rh - self.lh)

    def describe(self) -> str:
        return (
            f"rh={self.rh:.1f}% lh={self.lh:.1f}% rt={self.rt:.1f}% lt={self.lt:.1f}% | "
            f"left={self.left:.1f}% right={self.right:.1f}% "
            f"head={self.head:.1f}% tail={self.tail:.1f}% | "
            f"ratio={self.left_right_ratio:.2f} diff={self.left_right_diff:.1f} "
            f"headDom={self.head_dominance:.1f}"
        )


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize(rh: float, lh: float, rt: float, lt: float, total: float) -> Distribution:
    """Convert raw channel values to percent of total"""
    return Distribution(
        rh=rh / total * 100,
        lh=lh / total * 100,
        rt=rt / total * 100,
        lt=lt / total * 100,
    )


def _diagonal_toward_heavier_head(dist: Distribution) -> Position:
    return Position.DIAGONAL_RIGHT if dist.rh > dist.lh else Position.DIAGONAL_LEFT


def match_rules(dist: Distribution):
    """
    Run the rule cascade.

    Returns:
        (position, rule_name), or (None, "fallback") when nothing matched
    """
    ratio = dist.left_right_ratio
    diff = dist.left_right_diff
    dominance = dist.head_dominance

    # a/b: clearly on one side
    if ratio > 2.0 and diff > 30:
        return Position.LEFT, "a:strong-left"
    if ratio < 0.5 and diff > 30:
        return Position.RIGHT, "b:strong-right"

    # c/d: one head sensor carries noticeably more weight
    if dominance > 8 and dist.rh > dist.lh + 8 and 0.6 <= ratio <= 1.4:
        return Position.DIAGONAL_RIGHT, "c:head-right"
    if dominance > 8 and dist.lh > dist.rh + 8 and 0.7 <= ratio <= 1.67:
        return Position.DIAGONAL_LEFT, "d:head-left"

    # e/f/g: moderate lean, head imbalance decides diagonal vs. straight
    if 1.2 < ratio <= 2.0:
        if dominance > 5:
            return _diagonal_toward_heavier_head(dist), "e:lean-left-diagonal"
        return Position.LEFT, "e:lean-left"
    if 0.5 <= ratio < 0.8:
        if dominance > 5:
            return _diagonal_toward_heavier_head(dist), "f:lean-right-diagonal"
        return Position.RIGHT, "f:lean-right"
    if 0.8 <= ratio <= 1.2:
        if dominance > 6:
            return _diagonal_toward_heavier_head(dist), "g:balanced-diagonal"
        return Position.CENTER, "g:balanced"

    return None, "fallback"


def pattern_confidence(dist: Distribution, position: Position) -> int:
    """
    Score how closely the distribution matches the position's reference
    pattern.

    Args:
        dist: Channel percentages
        position: Resolved position (must have a reference pattern)

    Returns:
        Confidence 30-100
    """
    pattern = REFERENCE_PATTERNS[position]
    actual = np.array([dist.lh, dist.rh, dist.lt, dist.rt])
    expected = np.array([pattern.lh, pattern.rh, pattern.lt, pattern.rt])
    mean_deviation = float(np.mean(np.abs(actual - expected)))

    score = 100 - mean_deviation * 100 / pattern.tolerance
    confidence = _round_half_up(min(MAX_CONFIDENCE, max(MIN_CONFIDENCE, score)))

    if position.is_diagonal and dist.head_dominance > DIAGONAL_BONUS_DOMINANCE:
        confidence = min(MAX_CONFIDENCE, confidence + DIAGONAL_BONUS)

    return confidence


def classify(rh: float, lh: float, rt: float, lt: float, total: float) -> ClassificationResult:
    """
    Classify body position from one reading.

    Pure function: the same inputs always give the same result.

    Args:
        rh, lh, rt, lt: Right-head, left-head, right-tail, left-tail pressure
        total: Total pressure as reported by the device

    Returns:
        ClassificationResult with position, confidence and a debug trace
    """
    if total < config.EMPTY_THRESHOLD:
        return ClassificationResult(
            Position.EMPTY,
            EMPTY_CONFIDENCE,
            f"total={total:.1f} < {config.EMPTY_THRESHOLD} -> Empty",
        )

    dist = normalize(rh, lh, rt, lt, total)
    position, rule = match_rules(dist)

    if position is None:
        return ClassificationResult(
            Position.CENTER,
            FALLBACK_CONFIDENCE,
            f"{dist.describe()} | no rule matched -> Center",
        )

    confidence = pattern_confidence(dist, position)
    trace = f"{dist.describe()} | rule {rule} -> {position.value} ({confidence}%)"
    logger.debug(trace)
    return ClassificationResult(position, confidence, trace)
