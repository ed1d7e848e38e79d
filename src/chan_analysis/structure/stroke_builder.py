"""
Stroke building from alternating fractals.

A stroke from fractal A to fractal B requires:
1. Price breakout: UP needs B.price > A.price, DOWN needs B.price < A.price
2. No inclusion between the pivot bar ranges of A and B
3. Length: B.bar_index - A.bar_index + 1 >= min_bars

Among all later fractals satisfying these, the most extreme one is chosen
(highest high for UP, lowest low for DOWN), not the nearest. The chosen
fractal becomes the origin of the next stroke; fractals skipped over are
never revisited as origins.
"""

import logging
from typing import List, NamedTuple, Optional, Sequence

import numpy as np

from ..chan_config import StrokeConfig
from ..types import Bar
from .fractal import Fractal, FractalType
from .stroke import Stroke, StrokeDirection

logger = logging.getLogger(__name__)


class _Candidate(NamedTuple):
    fractal: Fractal
    position: int  # Position in the fractal sequence


def _stroke_direction(origin: Fractal) -> StrokeDirection:
    return StrokeDirection.UP if origin.type is FractalType.BOTTOM else StrokeDirection.DOWN


def _is_candidate(origin: Fractal, target: Fractal, direction: StrokeDirection, min_bars: int) -> bool:
    if target.type is origin.type:
        return False

    if direction is StrokeDirection.UP:
        breaks_out = target.price > origin.price
    else:
        breaks_out = target.price < origin.price
    if not breaks_out:
        return False

    if origin.contains(target) or target.contains(origin):
        logger.debug(f"Stroke {origin.bar_index}-{target.bar_index}: inclusion, skipped")
        return False

    length = target.bar_index - origin.bar_index + 1
    if length < min_bars:
        logger.debug(f"Stroke {origin.bar_index}-{target.bar_index}: {length} bars < {min_bars}, skipped")
        return False

    return True


def _select_extreme(candidates: List[_Candidate], direction: StrokeDirection) -> _Candidate:
    # max/min return the first of equal keys, so ties keep the earliest candidate
    if direction is StrokeDirection.UP:
        return max(candidates, key=lambda c: c.fractal.high)
    return min(candidates, key=lambda c: c.fractal.low)


def calculate_max_retracement(
    bars: Sequence[Bar],
    direction: StrokeDirection,
    start_price: float,
    end_price: float,
) -> float:
    """
    Largest adverse excursion as a fraction of the total move.

    For an UP stroke this is the deepest drop from the running high; for a
    DOWN stroke the largest bounce from the running low. 0 for a flat move.
    """
    total_move = abs(end_price - start_price)
    if total_move == 0 or not bars:
        return 0.0

    highs = np.array([bar.high for bar in bars], dtype=float)
    lows = np.array([bar.low for bar in bars], dtype=float)

    if direction is StrokeDirection.UP:
        running_high = np.maximum.accumulate(np.maximum(highs, start_price))
        excursions = (running_high - lows) / total_move
    else:
        running_low = np.minimum.accumulate(np.minimum(lows, start_price))
        excursions = (highs - running_low) / total_move

    return max(0.0, float(excursions.max()))


def _create_stroke(
    origin: Fractal,
    target: Fractal,
    bars: Sequence[Bar],
    direction: StrokeDirection,
    config: StrokeConfig,
) -> Stroke:
    amplitude = abs(target.price - origin.price)
    amplitude_pct = amplitude / origin.price * 100 if origin.price else 0.0
    duration_bars = target.bar_index - origin.bar_index + 1

    spanned = bars[origin.bar_index:target.bar_index + 1]
    avg_volume = float(np.mean([bar.volume for bar in spanned])) if spanned else 0.0
    max_retracement = calculate_max_retracement(spanned, direction, origin.price, target.price)

    invalid_reason: Optional[str] = None
    if config.min_amplitude_pct > 0 and amplitude_pct < config.min_amplitude_pct:
        invalid_reason = "amplitude_too_small"
    elif config.max_retracement > 0 and max_retracement > config.max_retracement:
        invalid_reason = "too_many_retracement"

    return Stroke(
        id=Stroke.make_id(origin.bar_index, target.bar_index),
        direction=direction,
        start_fractal=origin,
        end_fractal=target,
        amplitude=amplitude,
        amplitude_pct=amplitude_pct,
        duration_bars=duration_bars,
        max_retracement=max_retracement,
        avg_volume=avg_volume,
        is_valid=invalid_reason is None,
        invalid_reason=invalid_reason,
    )


def _find_next_stroke(
    fractals: Sequence[Fractal],
    origin_position: int,
    bars: Sequence[Bar],
    config: StrokeConfig,
) -> Optional[_Candidate]:
    """
    Find the end fractal of the stroke starting at ``fractals[origin_position]``.

    Collects every legal candidate first, then reduces to the most extreme.
    Returns None when no later fractal qualifies.
    """
    origin = fractals[origin_position]
    direction = _stroke_direction(origin)

    candidates = [
        _Candidate(fractal=target, position=position)
        for position, target in enumerate(fractals[origin_position + 1:], start=origin_position + 1)
        if _is_candidate(origin, target, direction, config.min_bars)
    ]
    if not candidates:
        return None

    best = _select_extreme(candidates, direction)
    if len(candidates) > 1:
        logger.debug(
            f"Greedy selection from {len(candidates)} candidates: "
            f"{origin.bar_index} -> {best.fractal.bar_index} ({direction.value})"
        )
    return best


def build_strokes(
    fractals: Sequence[Fractal],
    bars: Sequence[Bar],
    config: StrokeConfig = None,
) -> List[Stroke]:
    """
    Build strokes from an alternating fractal sequence.

    Args:
        fractals: Alternating fractals, ascending bar order.
        bars: The merged bars the fractals were detected on (volume and
            retracement statistics are read from them).
        config: Stroke parameters (defaults to StrokeConfig()).

    Returns:
        Strokes in order. A stroke starts at the fractal where the previous
        one ended unless no stroke could be built from there.
    """
    config = config or StrokeConfig()
    if len(fractals) < 2:
        return []

    strokes: List[Stroke] = []
    position = 0

    while position < len(fractals) - 1:
        best = _find_next_stroke(fractals, position, bars, config)
        if best is None:
            position += 1
            continue

        origin = fractals[position]
        direction = _stroke_direction(origin)
        strokes.append(_create_stroke(origin, best.fractal, bars, direction, config))
        position = best.position

    logger.debug(f"Stroke building: {len(fractals)} fractals -> {len(strokes)} strokes")
    return strokes
