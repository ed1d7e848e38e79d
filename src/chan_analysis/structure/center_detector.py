"""
Center detection from strokes.

A center is a run of at least three consecutive strokes whose price ranges
share an overlap band. Two boundary-tracking strategies are available behind
one interface:

- ``fixed`` (FixedWindowCenterStrategy): the band is the overlap of the first
  three strokes, ``upper = min(highs)`` and ``lower = max(lows)``. Later
  strokes join while they intersect that unchanged band, up to a cap.
- ``dynamic`` (DynamicBoundaryCenterStrategy): the band is tightened one
  stroke at a time and formation stops at the first stroke that would make
  the boundaries cross.

Both scan left to right, skip past the strokes of a formed center and advance
by one stroke when no center starts at the current position. A center never
shares a stroke with another center.
"""

import logging
from abc import ABC, abstractmethod
from typing import Dict, List, NamedTuple, Optional, Sequence, Type

import numpy as np

from ..chan_config import CenterConfig
from ..constants import (
    STRENGTH_STROKE_WEIGHT,
    STRENGTH_DURATION_WEIGHT,
    STRENGTH_AMPLITUDE_WEIGHT,
    STRENGTH_FULL_STROKES,
    STRENGTH_FULL_DURATION_BARS,
    STRENGTH_ZERO_AMPLITUDE_PCT,
)
from .center import Center
from .stroke import Stroke

logger = logging.getLogger(__name__)


class CenterCandidate(NamedTuple):
    """Outcome of a successful formation attempt, before scoring."""
    strokes: List[Stroke]
    upper: float
    lower: float
    is_completed: bool


def calculate_center_strength(strokes: Sequence[Stroke], duration_bars: int) -> float:
    """
    Score a center 0-100.

    40 points for member count (full at 9 strokes), 30 for duration (full at
    50 bars) and 30 for calm member strokes (zero at 15% average amplitude).
    """
    stroke_score = min(len(strokes) / STRENGTH_FULL_STROKES, 1.0) * STRENGTH_STROKE_WEIGHT
    duration_score = min(duration_bars / STRENGTH_FULL_DURATION_BARS, 1.0) * STRENGTH_DURATION_WEIGHT
    avg_amplitude = float(np.mean([s.amplitude_pct for s in strokes]))
    amplitude_score = max(1.0 - avg_amplitude / STRENGTH_ZERO_AMPLITUDE_PCT, 0.0) * STRENGTH_AMPLITUDE_WEIGHT
    return min(stroke_score + duration_score + amplitude_score, 100.0)


def calculate_volume_trend(strokes: Sequence[Stroke], threshold: float) -> str:
    """Compare mean stroke volume of the second half against the first half."""
    half = len(strokes) // 2
    if half == 0:
        return 'stable'
    first = float(np.mean([s.avg_volume for s in strokes[:half]]))
    second = float(np.mean([s.avg_volume for s in strokes[half:]]))
    if first <= 0:
        return 'stable'
    change = (second - first) / first
    if change > threshold:
        return 'increasing'
    if change < -threshold:
        return 'decreasing'
    return 'stable'


class CenterStrategy(ABC):
    """
    Boundary tracking strategy for center detection.

    Subclasses implement ``try_build`` for a single start position; the scan
    loop, scoring and validity rules are shared. Instances hold only their
    configuration, so one instance can serve concurrent calls.
    """

    name: str = ""

    def __init__(self, config: CenterConfig = None):
        self.config = config or CenterConfig(strategy=self.name)

    @abstractmethod
    def try_build(self, strokes: Sequence[Stroke], start: int) -> Optional[CenterCandidate]:
        """Try to form a center whose first stroke is ``strokes[start]``."""

    def detect(self, strokes: Sequence[Stroke]) -> List[Center]:
        """
        Detect all centers in a stroke sequence.

        Returns valid and invalid centers alike; callers filter on is_valid.
        """
        min_strokes = self.config.min_strokes
        if len(strokes) < min_strokes:
            return []

        centers: List[Center] = []
        i = 0
        while i <= len(strokes) - min_strokes:
            candidate = self.try_build(strokes, i)
            if candidate is None:
                i += 1
                continue

            center = self.create_center(candidate)
            centers.append(center)
            logger.debug(
                f"[{self.name}] Center at strokes {i}-{i + center.stroke_count - 1}, "
                f"band [{center.low:.2f}, {center.high:.2f}], {center.stroke_count} strokes"
            )
            i += center.stroke_count

        logger.debug(f"[{self.name}] {len(strokes)} strokes -> {len(centers)} centers")
        return centers

    def create_center(self, candidate: CenterCandidate) -> Center:
        """Assemble, score and validate a center from a formation outcome."""
        strokes = candidate.strokes
        high, low = candidate.upper, candidate.lower
        middle = (high + low) / 2
        height = high - low
        height_pct = height / middle * 100 if middle else 0.0

        start_index = strokes[0].start_index
        end_index = strokes[-1].end_index
        duration_bars = end_index - start_index

        invalid_reasons = []
        if height_pct < self.config.min_height_pct:
            invalid_reasons.append(
                f"height {height_pct:.2f}% < {self.config.min_height_pct}%"
            )
        if duration_bars > self.config.max_duration_bars:
            invalid_reasons.append(
                f"duration {duration_bars} bars > {self.config.max_duration_bars} bars"
            )
        if invalid_reasons:
            logger.debug(f"[{self.name}] Center at bar {start_index} invalid: {', '.join(invalid_reasons)}")

        return Center(
            id=Center.make_id(start_index),
            high=high,
            low=low,
            middle=middle,
            height=height,
            height_pct=height_pct,
            strokes=tuple(strokes),
            start_index=start_index,
            end_index=end_index,
            start_time=strokes[0].start_time,
            end_time=strokes[-1].end_time,
            duration_bars=duration_bars,
            strength=calculate_center_strength(strokes, duration_bars),
            peak_high=max(s.high for s in strokes),
            trough_low=min(s.low for s in strokes),
            avg_volume=float(np.mean([s.avg_volume for s in strokes])),
            extension_count=len(strokes) - 3,
            volume_trend=calculate_volume_trend(strokes, self.config.volume_trend_threshold),
            strategy=self.name,
            invalid_reasons=tuple(invalid_reasons),
            is_valid=not invalid_reasons,
            is_completed=candidate.is_completed,
        )


def intersects_band(stroke: Stroke, lower: float, upper: float) -> bool:
    """True if the stroke's high or low lies in [lower, upper] or it spans the band."""
    high_in_band = lower <= stroke.high <= upper
    low_in_band = lower <= stroke.low <= upper
    spans_band = stroke.high >= upper and stroke.low <= lower
    return high_in_band or low_in_band or spans_band


class FixedWindowCenterStrategy(CenterStrategy):
    """
    Band fixed by the first three strokes.

    upper = min of the three highs, lower = max of the three lows; requires
    upper > lower and every initial stroke to intersect the band. Extension
    appends following strokes while they intersect the same band, stopping at
    the first one that does not or at ``max_strokes`` members. The center is
    completed once any stroke follows its last member.
    """

    name = 'fixed'

    def try_build(self, strokes: Sequence[Stroke], start: int) -> Optional[CenterCandidate]:
        if start + 3 > len(strokes):
            return None

        members = list(strokes[start:start + 3])
        upper = min(s.high for s in members)
        lower = max(s.low for s in members)
        if upper <= lower:
            logger.debug(f"[fixed] Strokes {start}-{start + 2}: upper {upper:.2f} <= lower {lower:.2f}")
            return None
        if not all(intersects_band(s, lower, upper) for s in members):
            return None

        next_idx = start + 3
        while next_idx < len(strokes) and len(members) < self.config.max_strokes:
            if not intersects_band(strokes[next_idx], lower, upper):
                break
            members.append(strokes[next_idx])
            next_idx += 1

        if len(members) < self.config.min_strokes:
            return None

        # Formation stops on a breakout or at the cap; a later stroke closes the zone in both cases
        is_completed = next_idx < len(strokes)
        return CenterCandidate(strokes=members, upper=upper, lower=lower, is_completed=is_completed)


class DynamicBoundaryCenterStrategy(CenterStrategy):
    """
    Band tightened stroke by stroke.

    Note the naming: ``zg`` is raised by the lows of UP strokes and ``zd`` is
    lowered by the highs of DOWN strokes, so in this strategy ``zd`` is the
    numerically upper boundary and ``zg`` the lower one. The two must never
    cross (``zg <= zd``). The stored Center always has high = zd, low = zg.
    """

    name = 'dynamic'

    def try_build(self, strokes: Sequence[Stroke], start: int) -> Optional[CenterCandidate]:
        zg: Optional[float] = None
        zd: Optional[float] = None
        members: List[Stroke] = []
        is_completed = False

        for stroke in strokes[start:]:
            if stroke.is_up:
                if zg is None:
                    zg = stroke.low
                else:
                    tentative = max(zg, stroke.low)
                    if zd is not None and tentative > zd:
                        is_completed = True
                        break
                    zg = tentative
            else:
                if zd is None:
                    zd = stroke.high
                else:
                    tentative = min(zd, stroke.high)
                    if zg is not None and tentative < zg:
                        is_completed = True
                        break
                    zd = tentative
            members.append(stroke)

        if len(members) < self.config.min_strokes or zg is None or zd is None or zd < zg:
            return None
        return CenterCandidate(strokes=members, upper=zd, lower=zg, is_completed=is_completed)


CENTER_STRATEGIES: Dict[str, Type[CenterStrategy]] = {
    FixedWindowCenterStrategy.name: FixedWindowCenterStrategy,
    DynamicBoundaryCenterStrategy.name: DynamicBoundaryCenterStrategy,
}


def get_center_strategy(config: CenterConfig = None) -> CenterStrategy:
    """Instantiate the strategy named by ``config.strategy``."""
    config = config or CenterConfig()
    try:
        strategy_cls = CENTER_STRATEGIES[config.strategy]
    except KeyError:
        raise ValueError(f"Unknown center strategy '{config.strategy}'")
    return strategy_cls(config)


def detect_centers(strokes: Sequence[Stroke], config: CenterConfig = None) -> List[Center]:
    """
    Detect centers with the configured strategy (dynamic by default).

    Example:
        >>> centers = detect_centers(strokes)
        >>> fixed = detect_centers(strokes, CenterConfig(strategy='fixed'))
    """
    return get_center_strategy(config).detect(strokes)
