"""
Fractal data structure.

A fractal is the middle bar of three consecutive merged bars whose high and
low are both strictly above (top) or strictly below (bottom) its neighbours.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict


class FractalType(Enum):
    """Top fractal pivots on a high, bottom fractal on a low."""
    TOP = "top"
    BOTTOM = "bottom"


@dataclass(frozen=True)
class Fractal:
    """
    A local 3-bar price extremum on the merged bar sequence.

    Attributes:
        type: TOP or BOTTOM
        price: High of the pivot bar (TOP) or low of the pivot bar (BOTTOM)
        bar_index: Index of the pivot bar in the merged sequence
        time: open_time of the pivot bar (epoch ms)
        open, high, low, close: OHLC of the pivot bar
        strength: 0-1, how far the pivot stands out from its neighbours
        gap_percent: Price distance to the previous fractal, in percent
        is_confirmed: No later bar has broken the fractal's extreme
        confirmed_bars: Bars elapsed since the fractal at confirmation time
    """
    type: FractalType
    price: float
    bar_index: int
    time: int
    open: float
    high: float
    low: float
    close: float
    strength: float
    gap_percent: float = 0.0
    is_confirmed: bool = False
    confirmed_bars: int = 0

    @property
    def is_top(self) -> bool:
        return self.type is FractalType.TOP

    def contains(self, other: "Fractal") -> bool:
        """True if this fractal's pivot bar range encloses the other's."""
        return self.high >= other.high and self.low <= other.low

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "price": self.price,
            "bar_index": self.bar_index,
            "time": self.time,
            "open": self.open,
            "high": self.high,
            "low": self.low,
            "close": self.close,
            "strength": self.strength,
            "gap_percent": self.gap_percent,
            "is_confirmed": self.is_confirmed,
            "confirmed_bars": self.confirmed_bars,
        }
