"""
Shared test utilities for Chan structure tests.

These are plain utility functions, not pytest fixtures.
"""

import random
from typing import List, Optional, Sequence

from src.chan_analysis.types import Bar
from src.chan_analysis.structure import Fractal, FractalType, Stroke, StrokeDirection

BASE_TIME_MS = 1700000000000
BAR_MS = 60_000


def make_bar(
    high: float,
    low: float,
    index: int = 0,
    open_: Optional[float] = None,
    close: Optional[float] = None,
    volume: float = 1.0,
    symbol: str = "",
    interval: str = "",
) -> Bar:
    """Helper to create Bar objects for testing.

    Args:
        high: High price
        low: Low price
        index: Position in the sequence; sets open_time one minute apart
        open_: Opening price (defaults to low, a bullish candle)
        close: Closing price (defaults to high)
        volume: Bar volume
        symbol, interval: Labels stamped on the bar

    Returns:
        Bar object for use in pipeline tests
    """
    open_time = BASE_TIME_MS + index * BAR_MS
    return Bar(
        open_time=open_time,
        close_time=open_time + BAR_MS - 1,
        open=low if open_ is None else open_,
        high=high,
        low=low,
        close=high if close is None else close,
        volume=volume,
        symbol=symbol,
        interval=interval,
    )


def bars_from_ranges(ranges: Sequence[tuple]) -> List[Bar]:
    """Bars from (high, low) pairs, volume = 10 + index."""
    return [make_bar(h, l, index=i, volume=10 + i) for i, (h, l) in enumerate(ranges)]


def zigzag_bars(
    pivots: Sequence[float],
    spacing: int = 4,
    symbol: str = "",
    interval: str = "",
) -> List[Bar]:
    """
    Build a zigzag whose turning points are exactly the given pivots.

    Bar centres are interpolated linearly between pivots placed ``spacing``
    bars apart, starting at index 1; every bar is one price unit tall
    (centre +/- 0.5), so consecutive bars never contain each other. One
    lead-in and one trailing bar make the first and last pivots fractals.
    The first pivot is a bottom when pivots[1] > pivots[0].

    Volume is 10 + index.
    """
    centres = [pivots[0] + (pivots[1] - pivots[0]) / spacing]
    for a, b in zip(pivots, pivots[1:]):
        centres.extend(a + (b - a) * j / spacing for j in range(spacing))
    centres.append(pivots[-1])
    centres.append(pivots[-1] + (pivots[-2] - pivots[-1]) / spacing)

    return [
        make_bar(c + 0.5, c - 0.5, index=i, volume=10 + i, symbol=symbol, interval=interval)
        for i, c in enumerate(centres)
    ]


def random_walk_bars(count: int, seed: int = 42, start: float = 100.0) -> List[Bar]:
    """Deterministic random-walk bars, including inside and outside bars."""
    rng = random.Random(seed)
    bars = []
    price = start
    for i in range(count):
        price = max(1.0, price + rng.uniform(-2.0, 2.0))
        high = price + rng.uniform(0.1, 1.5)
        low = price - rng.uniform(0.1, 1.5)
        open_ = rng.uniform(low, high)
        close = rng.uniform(low, high)
        bars.append(make_bar(high, low, index=i, open_=open_, close=close, volume=rng.uniform(1, 100)))
    return bars


def make_fractal(fractal_type: FractalType, bar_index: int, price: float, height: float = 1.0) -> Fractal:
    """
    Fractal whose pivot bar spans ``height`` away from its price.

    A top's bar is [price - height, price]; a bottom's is [price, price + height].
    """
    if fractal_type is FractalType.TOP:
        high, low = price, price - height
    else:
        high, low = price + height, price
    return Fractal(
        type=fractal_type,
        price=price,
        bar_index=bar_index,
        time=BASE_TIME_MS + bar_index * BAR_MS,
        open=low,
        high=high,
        low=low,
        close=high,
        strength=1.0,
    )


def make_stroke(
    start_price: float,
    end_price: float,
    start_index: int,
    end_index: int,
    avg_volume: float = 1.0,
) -> Stroke:
    """Stroke between two synthetic fractals; direction follows the prices."""
    direction = StrokeDirection.UP if end_price > start_price else StrokeDirection.DOWN
    if direction is StrokeDirection.UP:
        start = make_fractal(FractalType.BOTTOM, start_index, start_price)
        end = make_fractal(FractalType.TOP, end_index, end_price)
    else:
        start = make_fractal(FractalType.TOP, start_index, start_price)
        end = make_fractal(FractalType.BOTTOM, end_index, end_price)
    amplitude = abs(end_price - start_price)
    return Stroke(
        id=Stroke.make_id(start_index, end_index),
        direction=direction,
        start_fractal=start,
        end_fractal=end,
        amplitude=amplitude,
        amplitude_pct=amplitude / start_price * 100,
        duration_bars=end_index - start_index + 1,
        max_retracement=0.0,
        avg_volume=avg_volume,
    )


def chain_strokes(prices: Sequence[float], bars_per_stroke: int = 5, volumes: Sequence[float] = None) -> List[Stroke]:
    """
    Contiguous strokes through the given turning prices.

    Stroke k runs from prices[k] to prices[k + 1] over bars
    k * bars_per_stroke .. (k + 1) * bars_per_stroke.
    """
    strokes = []
    for k, (a, b) in enumerate(zip(prices, prices[1:])):
        volume = volumes[k] if volumes else 1.0
        strokes.append(make_stroke(a, b, k * bars_per_stroke, (k + 1) * bars_per_stroke, volume))
    return strokes
