"""
Center data structure.

A center (consolidation zone) is a run of at least three consecutive strokes
whose price ranges share an overlap band. ``high`` and ``low`` are the band's
upper and lower boundaries and always satisfy ``high >= low``, whichever
strategy produced them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Literal, Tuple

from .stroke import Stroke


@dataclass(frozen=True)
class Center:
    """
    Consolidation zone formed by overlapping strokes.

    Attributes:
        id: Deterministic ID "center_{start_index}"
        high: Upper boundary of the overlap band
        low: Lower boundary of the overlap band
        middle: (high + low) / 2
        height: high - low
        height_pct: height as a percentage of middle
        strokes: Member strokes, a contiguous run of the stroke sequence
        start_index: Merged bar index where the first member stroke starts
        end_index: Merged bar index where the last member stroke ends
        start_time, end_time: Matching timestamps (epoch ms)
        duration_bars: end_index - start_index
        strength: 0-100 score from member count, duration and calmness
        peak_high: Highest member stroke high (GG)
        trough_low: Lowest member stroke low (DD)
        avg_volume: Mean of the member strokes' avg_volume
        extension_count: Members beyond the initial three
        volume_trend: Member volume trend across the center
        strategy: Name of the boundary strategy that produced it
        invalid_reasons: Why the center failed validity, empty when valid
        is_valid: Height and duration within limits
        is_completed: Price has left the zone (a later stroke broke out)
    """
    id: str
    high: float
    low: float
    middle: float
    height: float
    height_pct: float
    strokes: Tuple[Stroke, ...]
    start_index: int
    end_index: int
    start_time: int
    end_time: int
    duration_bars: int
    strength: float
    peak_high: float
    trough_low: float
    avg_volume: float
    extension_count: int
    volume_trend: Literal['increasing', 'decreasing', 'stable']
    strategy: str
    invalid_reasons: Tuple[str, ...] = ()
    is_valid: bool = True
    is_completed: bool = False

    @staticmethod
    def make_id(start_index: int) -> str:
        return f"center_{start_index}"

    @property
    def stroke_count(self) -> int:
        return len(self.strokes)

    def contains_price(self, price: float) -> bool:
        return self.low <= price <= self.high

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "high": self.high,
            "low": self.low,
            "middle": self.middle,
            "height": self.height,
            "height_pct": self.height_pct,
            "stroke_ids": [s.id for s in self.strokes],
            "stroke_count": self.stroke_count,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "duration_bars": self.duration_bars,
            "strength": self.strength,
            "peak_high": self.peak_high,
            "trough_low": self.trough_low,
            "avg_volume": self.avg_volume,
            "extension_count": self.extension_count,
            "volume_trend": self.volume_trend,
            "strategy": self.strategy,
            "invalid_reasons": list(self.invalid_reasons),
            "is_valid": self.is_valid,
            "is_completed": self.is_completed,
        }
