"""
Fractal detection on merged bars.

Rules:
1. Top fractal: middle high and middle low both strictly above the
   neighbours' highs and lows.
2. Bottom fractal: middle high and middle low both strictly below the
   neighbours' highs and lows.
3. Fractals alternate. A fractal of the same type as the previously emitted
   one is dropped; the earlier one is kept.
"""

import logging
from dataclasses import replace
from typing import List, Optional, Sequence

from ..constants import FRACTAL_STRENGTH_SCALE
from ..types import Bar
from .fractal import Fractal, FractalType

logger = logging.getLogger(__name__)


def _relative_gap(numerator: float, denominator: float) -> float:
    if denominator <= 0:
        return 0.0
    return numerator / denominator


def _calculate_strength(left: Bar, middle: Bar, right: Bar, fractal_type: FractalType) -> float:
    """Smaller of the two relative gaps to the neighbours, scaled to 0-1."""
    if fractal_type is FractalType.TOP:
        gap_left = _relative_gap(middle.high - left.high, left.high)
        gap_right = _relative_gap(middle.high - right.high, right.high)
    else:
        gap_left = _relative_gap(left.low - middle.low, middle.low)
        gap_right = _relative_gap(right.low - middle.low, middle.low)
    return min(min(gap_left, gap_right) * FRACTAL_STRENGTH_SCALE, 1.0)


def _classify(left: Bar, middle: Bar, right: Bar) -> Optional[FractalType]:
    if (left.high < middle.high > right.high) and (left.low < middle.low > right.low):
        return FractalType.TOP
    if (left.high > middle.high < right.high) and (left.low > middle.low < right.low):
        return FractalType.BOTTOM
    return None


def detect_fractals(bars: Sequence[Bar]) -> List[Fractal]:
    """
    Detect alternating top/bottom fractals.

    Args:
        bars: Merged bars (no inclusion relations), ascending time order.

    Returns:
        Fractals in bar order, never two consecutive of the same type.
        Empty when fewer than 3 bars are given.
    """
    if len(bars) < 3:
        return []

    fractals: List[Fractal] = []

    for i in range(1, len(bars) - 1):
        left, middle, right = bars[i - 1], bars[i], bars[i + 1]
        fractal_type = _classify(left, middle, right)
        if fractal_type is None:
            continue

        if fractals and fractals[-1].type is fractal_type:
            logger.debug(f"Consecutive {fractal_type.value} fractal at index {i} skipped")
            continue

        price = middle.high if fractal_type is FractalType.TOP else middle.low
        gap_percent = 0.0
        if fractals:
            gap_percent = _relative_gap(abs(price - fractals[-1].price), fractals[-1].price) * 100

        fractals.append(Fractal(
            type=fractal_type,
            price=price,
            bar_index=i,
            time=middle.open_time,
            open=middle.open,
            high=middle.high,
            low=middle.low,
            close=middle.close,
            strength=_calculate_strength(left, middle, right, fractal_type),
            gap_percent=gap_percent,
        ))

    logger.debug(f"Fractal detection: {len(bars)} bars -> {len(fractals)} fractals")
    return fractals


def confirm_fractals(fractals: Sequence[Fractal], bars: Sequence[Bar]) -> List[Fractal]:
    """
    Mark fractals whose extreme has not been broken by any later bar.

    A top is broken when a later high exceeds its price; a bottom when a
    later low undercuts it. Returns new Fractal objects; inputs are untouched.
    """
    confirmed = []
    last_index = len(bars) - 1

    for fractal in fractals:
        later = bars[fractal.bar_index + 1:]
        if fractal.type is FractalType.TOP:
            is_broken = any(bar.high > fractal.price for bar in later)
        else:
            is_broken = any(bar.low < fractal.price for bar in later)

        confirmed.append(replace(
            fractal,
            is_confirmed=not is_broken,
            confirmed_bars=last_index - fractal.bar_index,
        ))

    return confirmed
