# Chan Analysis Module
#
# Fractal -> stroke -> center structure detection on candlestick series.

from .types import Bar
from .chan_config import ChanConfig, StrokeConfig, CenterConfig

from .structure import (
    Fractal,
    FractalType,
    Stroke,
    StrokeDirection,
    Center,
    merge_inclusion,
    detect_fractals,
    confirm_fractals,
    build_strokes,
    detect_centers,
    CenterStrategy,
    FixedWindowCenterStrategy,
    DynamicBoundaryCenterStrategy,
    get_center_strategy,
)

# Pipeline orchestration
from .analyzer import (
    ChanAnalyzer,
    ChanAnalysisResult,
    analyze,
    analyze_many,
    analyze_dataframe,
    dataframe_to_bars,
)
