"""Structure layer: bars -> fractals -> strokes -> centers.

Each stage is a pure function of its inputs; none mutates what it receives.

Key Components:
- merge_inclusion: Folds bars in an inclusion relation together
- detect_fractals / confirm_fractals: Alternating 3-bar extrema
- build_strokes: Greedy extremal legs between fractals
- detect_centers: Overlap zones of 3+ strokes, via a CenterStrategy

Example:
    >>> from src.chan_analysis.structure import (
    ...     merge_inclusion, detect_fractals, build_strokes, detect_centers)
    >>> merged = merge_inclusion(bars)
    >>> strokes = build_strokes(detect_fractals(merged), merged)
    >>> centers = detect_centers(strokes)
"""

from .fractal import Fractal, FractalType
from .stroke import Stroke, StrokeDirection
from .center import Center
from .bar_merger import merge_inclusion
from .fractal_detector import detect_fractals, confirm_fractals
from .stroke_builder import build_strokes, calculate_max_retracement
from .center_detector import (
    CenterStrategy,
    CenterCandidate,
    FixedWindowCenterStrategy,
    DynamicBoundaryCenterStrategy,
    CENTER_STRATEGIES,
    get_center_strategy,
    detect_centers,
    intersects_band,
)

__all__ = [
    # Data structures
    "Fractal",
    "FractalType",
    "Stroke",
    "StrokeDirection",
    "Center",
    # Stages
    "merge_inclusion",
    "detect_fractals",
    "confirm_fractals",
    "build_strokes",
    "calculate_max_retracement",
    "detect_centers",
    # Center strategies
    "CenterStrategy",
    "CenterCandidate",
    "FixedWindowCenterStrategy",
    "DynamicBoundaryCenterStrategy",
    "CENTER_STRATEGIES",
    "get_center_strategy",
    "intersects_band",
]
