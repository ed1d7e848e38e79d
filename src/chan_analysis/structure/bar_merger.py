"""
Inclusion merging for raw bars.

Two consecutive bars are in an inclusion (containment) relation when one
bar's [low, high] range encloses the other's. Fractal detection assumes no
such pair exists, so contained bars are folded together first:

- Up trend: keep the higher high and the higher low.
- Down trend: keep the lower high and the lower low.

The trend is read from the last two merged bars (higher high = up, lower
high = down, equal = keep the previous direction).
"""

import logging
from dataclasses import replace
from typing import List, Literal, Optional, Sequence

from ..types import Bar

logger = logging.getLogger(__name__)


def _trend_direction(prev: Optional[Bar], last: Bar) -> Literal['up', 'down']:
    if prev is None:
        return last.direction or 'up'
    if prev.high < last.high:
        return 'up'
    if prev.high > last.high:
        return 'down'
    return last.direction or 'up'


def _merge_pair(last: Bar, incoming: Bar, direction: Literal['up', 'down']) -> Bar:
    """Fold ``incoming`` into ``last`` according to the trend direction."""
    if direction == 'up':
        high = max(last.high, incoming.high)
        low = max(last.low, incoming.low)
        open_time = last.open_time if last.high > incoming.high else incoming.open_time
    else:
        high = min(last.high, incoming.high)
        low = min(last.low, incoming.low)
        open_time = last.open_time if last.low < incoming.low else incoming.open_time

    # Candle colour follows the incoming bar
    bearish = incoming.open > incoming.close
    return Bar(
        open_time=open_time,
        close_time=max(last.close_time, incoming.close_time),
        open=high if bearish else low,
        high=high,
        low=low,
        close=low if bearish else high,
        volume=last.volume + incoming.volume,
        trade_count=last.trade_count + incoming.trade_count,
        symbol=incoming.symbol,
        interval=incoming.interval,
        is_final=True,
        merged_count=last.merged_count + 1,
        direction=direction,
    )


def merge_inclusion(bars: Sequence[Bar]) -> List[Bar]:
    """
    Remove inclusion relations between consecutive bars.

    Args:
        bars: Raw bars in ascending time order.

    Returns:
        New list of bars in which no bar contains its neighbour. The input is
        not modified. The first bar always seeds the output.

    Example:
        >>> merged = merge_inclusion(raw_bars)
        >>> all(not (a.contains(b) or b.contains(a)) for a, b in zip(merged, merged[1:]))
        True
    """
    if len(bars) < 2:
        return [replace(bar, merged_count=1, is_final=True) for bar in bars]

    merged: List[Bar] = [replace(bars[0], merged_count=1, is_final=True)]

    for bar in bars[1:]:
        last = merged[-1]
        prev = merged[-2] if len(merged) >= 2 else None
        direction = _trend_direction(prev, last)

        if last.contains(bar) or bar.contains(last):
            merged[-1] = _merge_pair(last, bar, direction)
        else:
            merged.append(replace(bar, merged_count=1, direction=direction, is_final=True))

    logger.debug(f"Inclusion merge: {len(bars)} raw bars -> {len(merged)} merged bars")
    return merged
