"""
Chan Analyzer (pipeline orchestrator)

Runs the full structure pipeline on an ordered bar slice:

    raw bars -> inclusion merge -> fractals -> confirmation -> strokes -> centers

and assembles the result with summary counts. Each call is a pure function
of the bar slice and the static configuration: the analyzer keeps no state
between calls, so one instance can serve many symbols, including from
several threads at once.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Hashable, List, Mapping, Optional, Sequence

import pandas as pd

from .chan_config import ChanConfig
from .types import Bar
from .structure import (
    Center,
    Fractal,
    Stroke,
    merge_inclusion,
    detect_fractals,
    confirm_fractals,
    build_strokes,
    get_center_strategy,
)

logger = logging.getLogger(__name__)

MIN_BARS = 3


@dataclass(frozen=True)
class ChanAnalysisResult:
    """
    Fractals, strokes and centers for one bar slice.

    Attributes:
        symbol, interval: Taken from the first bar ('UNKNOWN'/'unknown' if blank)
        fractals: All fractals, with confirmation flags resolved
        strokes: All strokes
        centers: Valid centers only
        current_center: Last valid center that price has not left yet
        last_stroke, last_fractal: Most recent stroke and fractal
        kline_count: Raw bars analyzed
        merged_kline_count: Bars left after inclusion merging
        total_center_count: Centers found before the validity filter
        valid_fractal_count: Confirmed fractals
        valid_stroke_count: Strokes with is_valid set
        valid_center_count: len(centers)
    """
    symbol: str
    interval: str
    fractals: List[Fractal] = field(default_factory=list)
    strokes: List[Stroke] = field(default_factory=list)
    centers: List[Center] = field(default_factory=list)
    current_center: Optional[Center] = None
    last_stroke: Optional[Stroke] = None
    last_fractal: Optional[Fractal] = None
    kline_count: int = 0
    merged_kline_count: int = 0
    total_center_count: int = 0
    valid_fractal_count: int = 0
    valid_stroke_count: int = 0
    valid_center_count: int = 0

    @property
    def in_center(self) -> bool:
        return self.current_center is not None

    @property
    def is_empty(self) -> bool:
        return not (self.fractals or self.strokes or self.centers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "symbol": self.symbol,
            "interval": self.interval,
            "kline_count": self.kline_count,
            "merged_kline_count": self.merged_kline_count,
            "fractals": [f.to_dict() for f in self.fractals],
            "strokes": [s.to_dict() for s in self.strokes],
            "centers": [c.to_dict() for c in self.centers],
            "current_state": {
                "in_center": self.in_center,
                "center_id": self.current_center.id if self.current_center else None,
                "last_stroke_direction": self.last_stroke.direction.value if self.last_stroke else None,
                "last_fractal_type": self.last_fractal.type.value if self.last_fractal else None,
            },
            "statistics": {
                "total_fractals": len(self.fractals),
                "valid_fractals": self.valid_fractal_count,
                "total_strokes": len(self.strokes),
                "valid_strokes": self.valid_stroke_count,
                "total_centers": self.total_center_count,
                "valid_centers": self.valid_center_count,
            },
        }

    def summary(self) -> str:
        """Human-readable report of the pipeline's data flow."""
        merge_rate = 0.0
        if self.kline_count:
            merge_rate = (1 - self.merged_kline_count / self.kline_count) * 100

        lines = [
            "=" * 44,
            f"Chan analysis: {self.symbol}:{self.interval}",
            f"  Raw bars:      {self.kline_count}",
            f"  Merged bars:   {self.merged_kline_count} (merge rate {merge_rate:.1f}%)",
            f"  Fractals:      {len(self.fractals)} ({self.valid_fractal_count} confirmed)",
            f"  Strokes:       {len(self.strokes)} ({self.valid_stroke_count} valid)",
            f"  Centers:       {self.total_center_count} ({self.valid_center_count} valid)",
        ]
        if self.current_center is not None:
            c = self.current_center
            lines.append(
                f"  In center:     {c.id} [{c.low:.4f}, {c.high:.4f}], "
                f"{c.stroke_count} strokes, strength {c.strength:.1f}"
            )
        else:
            lines.append("  In center:     no")
        if self.last_stroke is not None:
            s = self.last_stroke
            lines.append(
                f"  Last stroke:   {s.direction.value} bars {s.start_index}-{s.end_index} "
                f"({s.amplitude_pct:.2f}%)"
            )
        lines.append("=" * 44)
        return "\n".join(lines)


class ChanAnalyzer:
    """
    Orchestrates the structure pipeline.

    The center strategy is chosen once, from ``config.center.strategy``
    ('dynamic' unless configured otherwise).

    Example:
        >>> analyzer = ChanAnalyzer()
        >>> result = analyzer.analyze(bars)
        >>> print(result.summary())

        >>> fixed = ChanAnalyzer(ChanConfig.default().with_strategy('fixed'))
    """

    def __init__(self, config: ChanConfig = None):
        self.config = config or ChanConfig.default()
        self.center_strategy = get_center_strategy(self.config.center)

    def analyze(self, bars: Sequence[Bar]) -> ChanAnalysisResult:
        """
        Analyze an ordered bar slice.

        Args:
            bars: Raw bars in ascending open_time order.

        Returns:
            ChanAnalysisResult. Fewer than 3 bars gives an empty result.
        """
        bars = list(bars or [])
        symbol = (bars[0].symbol if bars else "") or "UNKNOWN"
        interval = (bars[0].interval if bars else "") or "unknown"

        if len(bars) < MIN_BARS:
            logger.debug(f"{symbol}:{interval}: {len(bars)} bars, nothing to analyze")
            return ChanAnalysisResult(symbol=symbol, interval=interval, kline_count=len(bars))

        started = time.perf_counter()

        merged = merge_inclusion(bars)
        fractals = confirm_fractals(detect_fractals(merged), merged)
        strokes = build_strokes(fractals, merged, self.config.stroke)
        all_centers = self.center_strategy.detect(strokes)
        centers = [c for c in all_centers if c.is_valid]

        open_centers = [c for c in centers if not c.is_completed]

        result = ChanAnalysisResult(
            symbol=symbol,
            interval=interval,
            fractals=fractals,
            strokes=strokes,
            centers=centers,
            current_center=open_centers[-1] if open_centers else None,
            last_stroke=strokes[-1] if strokes else None,
            last_fractal=fractals[-1] if fractals else None,
            kline_count=len(bars),
            merged_kline_count=len(merged),
            total_center_count=len(all_centers),
            valid_fractal_count=sum(1 for f in fractals if f.is_confirmed),
            valid_stroke_count=sum(1 for s in strokes if s.is_valid),
            valid_center_count=len(centers),
        )

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            f"{symbol}:{interval} [{self.center_strategy.name}] {len(bars)} bars -> "
            f"{len(merged)} merged, {len(fractals)} fractals, {len(strokes)} strokes, "
            f"{len(centers)}/{len(all_centers)} valid centers ({elapsed_ms:.1f}ms)"
        )
        return result

    def analyze_many(
        self,
        series: Mapping[Hashable, Sequence[Bar]],
        max_workers: Optional[int] = None,
    ) -> Dict[Hashable, ChanAnalysisResult]:
        """
        Analyze several independent bar series in parallel.

        Args:
            series: Bar slices keyed by anything hashable, typically
                (symbol, interval).
            max_workers: Thread pool size (ThreadPoolExecutor default if None).

        Returns:
            Results keyed like the input, in the input's key order.
        """
        if not series:
            return {}
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {key: executor.submit(self.analyze, bars) for key, bars in series.items()}
            return {key: future.result() for key, future in futures.items()}


def analyze(bars: Sequence[Bar], config: ChanConfig = None) -> ChanAnalysisResult:
    """Run the full pipeline with the given (or default) configuration."""
    return ChanAnalyzer(config).analyze(bars)


def analyze_many(
    series: Mapping[Hashable, Sequence[Bar]],
    config: ChanConfig = None,
    max_workers: Optional[int] = None,
) -> Dict[Hashable, ChanAnalysisResult]:
    """Analyze several bar series in parallel; see ChanAnalyzer.analyze_many."""
    return ChanAnalyzer(config).analyze_many(series, max_workers=max_workers)


def dataframe_to_bars(df: pd.DataFrame, symbol: str = "", interval: str = "") -> List[Bar]:
    """
    Convert DataFrame with OHLCV columns to Bar list.

    Handles the column naming used by the kline loader and common exports.

    Args:
        df: DataFrame with open/high/low/close columns (any case). Optional:
            volume, trade_count, close_time, and a timestamp taken from a
            DatetimeIndex or an open_time/timestamp/time/date column.
        symbol: Symbol stamped on every bar.
        interval: Interval stamped on every bar.

    Returns:
        List of Bar objects in the DataFrame's row order.

    Example:
        >>> df, gaps = load_klines("BTCUSDT-15m.csv")
        >>> result = analyze(dataframe_to_bars(df, "BTCUSDT", "15m"))
    """
    bars: List[Bar] = []

    # Normalize column names to lowercase for consistent access
    col_map = {str(c).lower(): c for c in df.columns}

    for idx, row in df.iterrows():
        open_time = None
        for ts_col in ["open_time", "timestamp", "time", "date", "datetime"]:
            if ts_col in col_map:
                open_time = _to_epoch_ms(row[col_map[ts_col]])
                break
        if open_time is None and isinstance(idx, pd.Timestamp):
            open_time = _to_epoch_ms(idx)
        if open_time is None:
            open_time = (1700000000 + len(bars) * 60) * 1000  # Sequential fallback

        close_time = open_time
        if "close_time" in col_map:
            close_time = _to_epoch_ms(row[col_map["close_time"]])

        bars.append(Bar(
            open_time=open_time,
            close_time=close_time,
            open=float(row[col_map.get("open", "open")]),
            high=float(row[col_map.get("high", "high")]),
            low=float(row[col_map.get("low", "low")]),
            close=float(row[col_map.get("close", "close")]),
            volume=float(row[col_map["volume"]]) if "volume" in col_map else 0.0,
            trade_count=int(row[col_map["trade_count"]]) if "trade_count" in col_map else 0,
            symbol=symbol,
            interval=interval,
        ))

    return bars


def _to_epoch_ms(value: Any) -> int:
    """Epoch milliseconds from a Timestamp, datetime or date, a date string or a number (s or ms)."""
    # Naive datetimes and dates are read as UTC
    if isinstance(value, (str, date)):
        value = pd.Timestamp(value)
    if hasattr(value, "timestamp"):
        return int(round(value.timestamp() * 1000))
    number = float(value)
    # Values below 1e11 are epoch seconds (1e11 s is year 5138)
    return int(number * 1000) if number < 1e11 else int(number)


def analyze_dataframe(
    df: pd.DataFrame,
    config: ChanConfig = None,
    symbol: str = "",
    interval: str = "",
) -> ChanAnalysisResult:
    """
    Convenience wrapper for DataFrame input.

    Example:
        >>> df, gaps = load_klines("ETHUSDT-1h.json")
        >>> result = analyze_dataframe(df, symbol="ETHUSDT", interval="1h")
    """
    return analyze(dataframe_to_bars(df, symbol, interval), config)
