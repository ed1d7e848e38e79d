"""
Stroke data structure.

A stroke is a directional leg between two alternating fractals:
UP runs from a bottom fractal to a higher top fractal, DOWN from a top
fractal to a lower bottom fractal.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from .fractal import Fractal


class StrokeDirection(Enum):
    UP = "up"
    DOWN = "down"


@dataclass(frozen=True)
class Stroke:
    """
    A monotonic price leg connecting two fractals.

    Attributes:
        id: Deterministic ID "stroke_{start_index}_{end_index}"
        direction: UP or DOWN
        start_fractal: Fractal where the leg starts
        end_fractal: Fractal where the leg ends
        amplitude: |end price - start price|
        amplitude_pct: amplitude as a percentage of the start price
        duration_bars: Merged bars spanned, both endpoints included
        max_retracement: Largest adverse excursion as a fraction of the move
            (0 = perfectly monotonic)
        avg_volume: Mean volume of the spanned bars
        is_valid: False when an optional quality gate flagged the stroke
        invalid_reason: Which gate flagged it, if any
    """
    id: str
    direction: StrokeDirection
    start_fractal: Fractal
    end_fractal: Fractal
    amplitude: float
    amplitude_pct: float
    duration_bars: int
    max_retracement: float
    avg_volume: float
    is_valid: bool = True
    invalid_reason: Optional[str] = None

    @staticmethod
    def make_id(start_index: int, end_index: int) -> str:
        return f"stroke_{start_index}_{end_index}"

    @property
    def start_index(self) -> int:
        return self.start_fractal.bar_index

    @property
    def end_index(self) -> int:
        return self.end_fractal.bar_index

    @property
    def start_time(self) -> int:
        return self.start_fractal.time

    @property
    def end_time(self) -> int:
        return self.end_fractal.time

    @property
    def high(self) -> float:
        """Higher of the two endpoint prices."""
        return max(self.start_fractal.price, self.end_fractal.price)

    @property
    def low(self) -> float:
        """Lower of the two endpoint prices."""
        return min(self.start_fractal.price, self.end_fractal.price)

    @property
    def is_up(self) -> bool:
        return self.direction is StrokeDirection.UP

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "direction": self.direction.value,
            "start_fractal": self.start_fractal.to_dict(),
            "end_fractal": self.end_fractal.to_dict(),
            "amplitude": self.amplitude,
            "amplitude_pct": self.amplitude_pct,
            "duration_bars": self.duration_bars,
            "start_index": self.start_index,
            "end_index": self.end_index,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "max_retracement": self.max_retracement,
            "avg_volume": self.avg_volume,
            "is_valid": self.is_valid,
            "invalid_reason": self.invalid_reason,
        }
