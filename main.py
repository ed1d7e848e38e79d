#!/usr/bin/env python3
"""
Chan Structure Analysis - Main Entry Point

Runs the fractal -> stroke -> center pipeline on kline files.

Usage:
    python main.py analyze BTCUSDT-15m.csv --symbol BTCUSDT --interval 15m
    python main.py analyze bnb-15.json --last 500 --show strokes,centers
    python main.py analyze bnb-15.json --strategy fixed --json
"""

if __name__ == "__main__":
    import sys
    from src.cli.main import main
    sys.exit(main())
