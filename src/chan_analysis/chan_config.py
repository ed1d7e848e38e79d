"""
Chan Analysis Configuration

Centralized configuration for the fractal -> stroke -> center pipeline.
The thresholds are empirically chosen and kept as defaults rather than
derived; override them here instead of touching the detectors.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Dict

from .constants import (
    MIN_STROKE_BARS,
    MIN_CENTER_STROKES,
    MAX_CENTER_STROKES,
    MIN_CENTER_HEIGHT_PCT,
    MAX_CENTER_DURATION_BARS,
    VOLUME_TREND_THRESHOLD,
)

# Known center boundary strategies. Kept here (not imported from the
# detector) so config validation has no dependency on the structure package.
CENTER_STRATEGY_NAMES = ('fixed', 'dynamic')


@dataclass(frozen=True)
class StrokeConfig:
    """
    Parameters for stroke building.

    Attributes:
        min_bars: Minimum stroke length in merged bars, counting both
            endpoint bars. Default 5.
        min_amplitude_pct: Strokes whose amplitude (percent of start price)
            is below this are flagged invalid with reason
            ``amplitude_too_small``. 0 disables the check.
        max_retracement: Strokes whose max retracement (fraction of the total
            move) exceeds this are flagged invalid with reason
            ``too_many_retracement``. 0 disables the check.

    Flagged strokes are still returned and still take part in center
    detection; only ``is_valid`` and ``invalid_reason`` change.
    """
    min_bars: int = MIN_STROKE_BARS
    min_amplitude_pct: float = 0.0
    max_retracement: float = 0.0

    def __post_init__(self) -> None:
        if self.min_bars < 1:
            raise ValueError(f"min_bars must be >= 1, got {self.min_bars}")
        if self.min_amplitude_pct < 0:
            raise ValueError(f"min_amplitude_pct must be >= 0, got {self.min_amplitude_pct}")
        if self.max_retracement < 0:
            raise ValueError(f"max_retracement must be >= 0, got {self.max_retracement}")


@dataclass(frozen=True)
class CenterConfig:
    """
    Parameters for center detection.

    Attributes:
        strategy: Boundary tracking strategy. 'dynamic' (default) tightens the
            overlap band one stroke at a time; 'fixed' takes the band from the
            first three strokes and extends while strokes intersect it.
        min_strokes: Strokes required to form a center. Default 3.
        max_strokes: Extension cap for the fixed strategy. Default 12.
        min_height_pct: Centers thinner than this (percent of middle) are
            marked invalid. Default 0.3.
        max_duration_bars: Centers spanning more bars than this are marked
            invalid. Default 150.
        volume_trend_threshold: Relative change of mean stroke volume between
            the two halves of a center that counts as increasing/decreasing.
    """
    strategy: str = 'dynamic'
    min_strokes: int = MIN_CENTER_STROKES
    max_strokes: int = MAX_CENTER_STROKES
    min_height_pct: float = MIN_CENTER_HEIGHT_PCT
    max_duration_bars: int = MAX_CENTER_DURATION_BARS
    volume_trend_threshold: float = VOLUME_TREND_THRESHOLD

    def __post_init__(self) -> None:
        if self.strategy not in CENTER_STRATEGY_NAMES:
            raise ValueError(
                f"Unknown center strategy '{self.strategy}'. "
                f"Expected one of: {', '.join(CENTER_STRATEGY_NAMES)}"
            )
        if self.min_strokes < MIN_CENTER_STROKES:
            raise ValueError(
                f"min_strokes must be >= {MIN_CENTER_STROKES}, got {self.min_strokes}"
            )
        if self.max_strokes < self.min_strokes:
            raise ValueError(
                f"max_strokes ({self.max_strokes}) must be >= min_strokes ({self.min_strokes})"
            )
        if self.min_height_pct < 0:
            raise ValueError(f"min_height_pct must be >= 0, got {self.min_height_pct}")
        if self.max_duration_bars < 0:
            raise ValueError(f"max_duration_bars must be >= 0, got {self.max_duration_bars}")


@dataclass(frozen=True)
class ChanConfig:
    """
    All configurable parameters for Chan structure analysis.

    Example:
        >>> config = ChanConfig.default()
        >>> config.center.strategy
        'dynamic'
        >>> config.with_strategy('fixed').center.strategy
        'fixed'
    """
    stroke: StrokeConfig = field(default_factory=StrokeConfig)
    center: CenterConfig = field(default_factory=CenterConfig)

    @classmethod
    def default(cls) -> "ChanConfig":
        """Create a config with default values."""
        return cls()

    def with_stroke(self, **kwargs: Any) -> "ChanConfig":
        """
        Create a new config with modified stroke parameters.

        Since ChanConfig is frozen, this creates a new instance.

        Example:
            >>> ChanConfig.default().with_stroke(min_bars=7).stroke.min_bars
            7
        """
        stroke_dict = asdict(self.stroke)
        stroke_dict.update(kwargs)
        return ChanConfig(stroke=StrokeConfig(**stroke_dict), center=self.center)

    def with_center(self, **kwargs: Any) -> "ChanConfig":
        """
        Create a new config with modified center parameters.

        Since ChanConfig is frozen, this creates a new instance.
        """
        center_dict = asdict(self.center)
        center_dict.update(kwargs)
        return ChanConfig(stroke=self.stroke, center=CenterConfig(**center_dict))

    def with_strategy(self, strategy: str) -> "ChanConfig":
        """Create a new config using the named center strategy."""
        return self.with_center(strategy=strategy)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a nested dictionary for JSON serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChanConfig":
        """
        Create config from a (possibly partial) dictionary.

        Missing sections and keys fall back to defaults; unknown keys raise
        ValueError so typos in config files are not silently ignored.
        """
        unknown = set(data) - {'stroke', 'center'}
        if unknown:
            raise ValueError(f"Unknown config section(s): {', '.join(sorted(unknown))}")
        try:
            return cls(
                stroke=StrokeConfig(**data.get('stroke', {})),
                center=CenterConfig(**data.get('center', {})),
            )
        except TypeError as e:
            raise ValueError(f"Invalid config: {e}")
