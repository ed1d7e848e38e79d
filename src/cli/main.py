"""
Main CLI Module for Chan Structure Analysis

Provides a command-line interface for running the fractal -> stroke -> center
pipeline on kline files.

Commands:
- analyze: Load a kline file, run the analysis and print a summary,
  per-stage tables or a JSON dump.

Usage:
    python -m src.cli.main analyze data/BTCUSDT-15m.csv --symbol BTCUSDT --interval 15m
    python -m src.cli.main analyze bnb-15.json --last 500 --show strokes,centers
    python -m src.cli.main analyze bnb-15.json --strategy fixed --json
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from src.chan_analysis.analyzer import ChanAnalyzer, ChanAnalysisResult, dataframe_to_bars
from src.chan_analysis.chan_config import ChanConfig, CENTER_STRATEGY_NAMES
from src.data.kline_loader import load_klines

SHOW_CHOICES = ('fractals', 'strokes', 'centers')


def load_config(args) -> ChanConfig:
    """Build the config from an optional JSON file and CLI overrides."""
    config = ChanConfig.default()
    if args.config:
        with open(args.config, 'r') as f:
            config = ChanConfig.from_dict(json.load(f))
    if args.strategy:
        config = config.with_strategy(args.strategy)
    return config


def format_fractals(result: ChanAnalysisResult, limit: int) -> List[str]:
    lines = [f"Last {min(limit, len(result.fractals))} of {len(result.fractals)} fractals:"]
    for f in result.fractals[-limit:]:
        status = "confirmed" if f.is_confirmed else "broken"
        lines.append(
            f"  #{f.bar_index:<6} {f.type.value:<6} price={f.price:.4f} "
            f"strength={f.strength:.2f} {status}"
        )
    return lines


def format_strokes(result: ChanAnalysisResult, limit: int) -> List[str]:
    lines = [f"Last {min(limit, len(result.strokes))} of {len(result.strokes)} strokes:"]
    for s in result.strokes[-limit:]:
        lines.append(
            f"  {s.id:<20} {s.direction.value:<4} {s.start_fractal.price:.4f} -> "
            f"{s.end_fractal.price:.4f} ({s.amplitude_pct:.2f}%, {s.duration_bars} bars, "
            f"retracement {s.max_retracement:.2f})"
        )
    return lines


def format_centers(result: ChanAnalysisResult, limit: int) -> List[str]:
    lines = [f"Last {min(limit, len(result.centers))} of {len(result.centers)} valid centers:"]
    for c in result.centers[-limit:]:
        state = "completed" if c.is_completed else "open"
        lines.append(
            f"  {c.id:<14} [{c.low:.4f}, {c.high:.4f}] height={c.height_pct:.2f}% "
            f"strokes={c.stroke_count} bars={c.duration_bars} strength={c.strength:.1f} {state}"
        )
    return lines


FORMATTERS = {
    'fractals': format_fractals,
    'strokes': format_strokes,
    'centers': format_centers,
}


def parse_show(value: str) -> List[str]:
    sections = [s.strip() for s in value.split(',') if s.strip()]
    unknown = [s for s in sections if s not in SHOW_CHOICES]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"Unknown section(s): {', '.join(unknown)}. Choose from {', '.join(SHOW_CHOICES)}"
        )
    return sections


def run_analyze_command(args) -> bool:
    """Run the analysis on a kline file."""
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    if args.last < 0:
        print(f"Error: --last must be zero or a positive bar count, got {args.last}")
        return False

    try:
        config = load_config(args)
        df, gaps = load_klines(args.file)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        print(f"Error: {e}")
        return False

    if gaps:
        logger.info(f"{len(gaps)} gap(s) in {args.file}; analysis continues across them")

    if args.last:
        df = df.iloc[-args.last:]

    bars = dataframe_to_bars(df, symbol=args.symbol, interval=args.interval)
    result = ChanAnalyzer(config).analyze(bars)

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
        return True

    print(result.summary())
    for section in args.show or []:
        print()
        print("\n".join(FORMATTERS[section](result, args.limit)))
    return True


def create_parser():
    """Create argument parser with subcommands."""
    parser = argparse.ArgumentParser(
        description="Chan structure analysis CLI (fractals, strokes, centers)",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    analyze_parser = subparsers.add_parser(
        'analyze',
        help='Analyze a kline file (CSV or JSON export)'
    )
    analyze_parser.add_argument('file', help='Path to the kline file')
    analyze_parser.add_argument('--symbol', default='', help='Symbol label for the report')
    analyze_parser.add_argument('--interval', default='', help='Interval label for the report')
    analyze_parser.add_argument(
        '--strategy',
        choices=CENTER_STRATEGY_NAMES,
        help='Center boundary strategy (default: dynamic, or as set in --config)'
    )
    analyze_parser.add_argument('--config', help='JSON file with stroke/center parameters')
    analyze_parser.add_argument(
        '--last',
        type=int,
        default=0,
        help='Only analyze the last N bars (default: all)'
    )
    analyze_parser.add_argument(
        '--show',
        type=parse_show,
        help='Comma-separated detail tables: fractals,strokes,centers'
    )
    analyze_parser.add_argument(
        '--limit',
        type=int,
        default=10,
        help='Rows per detail table (default: 10)'
    )
    analyze_parser.add_argument('--json', action='store_true', help='Print the full result as JSON')
    analyze_parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = create_parser()
    argv = sys.argv[1:] if argv is None else argv

    # If no command specified, show help
    if not argv:
        parser.print_help()
        return 0

    args = parser.parse_args(argv)

    if args.command == 'analyze':
        return 0 if run_analyze_command(args) else 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
