"""Core data types for Chan structure analysis."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal, Optional


@dataclass(frozen=True)
class Bar:
    """
    Single OHLCV candlestick.

    Timestamps are epoch milliseconds. ``merged_count`` and ``direction`` are
    only meaningful on bars produced by the inclusion merger: the number of
    raw bars absorbed, and the trend direction used when merging.
    """
    open_time: int
    close_time: int
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0
    trade_count: int = 0
    symbol: str = ""
    interval: str = ""
    is_final: bool = True
    merged_count: int = 1
    direction: Optional[Literal['up', 'down']] = None

    @property
    def date(self) -> datetime:
        return datetime.fromtimestamp(self.open_time / 1000, tz=timezone.utc)

    def contains(self, other: "Bar") -> bool:
        """True if this bar's [low, high] range encloses the other's."""
        return self.high >= other.high and self.low <= other.low
