import json
import logging
import os
from typing import List, Tuple

import pandas as pd

logger = logging.getLogger(__name__)

KLINE_COLUMNS = ['open', 'high', 'low', 'close', 'volume', 'trade_count']

Gap = Tuple[pd.Timestamp, pd.Timestamp, float]


def detect_format(filepath: str) -> str:
    """
    Detects the format of a kline file.

    Args:
        filepath: Path to the file.

    Returns:
        "format_a" for semicolon-separated historical data
            (DD/MM/YYYY;HH:MM:SS;Open;High;Low;Close;Volume, no header).
        "format_b" for comma-separated data with a header row containing a
            time/open_time column and OHLC columns.
        "json" for database exports ({"RECORDS": [...]}) or a JSON list of
            kline objects.

    Raises:
        FileNotFoundError, PermissionError, ValueError.
    """
    try:
        with open(filepath, 'r') as f:
            lines = [f.readline() for _ in range(10)]
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {filepath}")
    except PermissionError:
        raise PermissionError(f"Permission denied: {filepath}")

    lines = [line.strip() for line in lines if line.strip()]
    if not lines:
        raise ValueError("File is empty")

    first_line = lines[0]

    if first_line.startswith('{') or first_line.startswith('['):
        return "json"

    if ';' in first_line:
        return "format_a"

    if ',' in first_line:
        lowered = first_line.lower()
        if "time" in lowered and "open" in lowered:
            return "format_b"

    raise ValueError(
        "Could not detect kline format. Expected semicolon-separated historical "
        "format, comma-separated format with header, or JSON export."
    )


def _read_format_a(filepath: str) -> pd.DataFrame:
    df = pd.read_csv(
        filepath,
        sep=';',
        header=None,
        names=['date', 'time', 'open', 'high', 'low', 'close', 'volume'],
        dtype={
            'date': str, 'time': str,
            'open': 'float64', 'high': 'float64', 'low': 'float64', 'close': 'float64',
            'volume': 'float64'
        },
        engine='c'
    )
    datetime_str = df['date'] + ' ' + df['time']
    df['timestamp'] = pd.to_datetime(datetime_str, format='%d/%m/%Y %H:%M:%S', utc=True)
    df.drop(columns=['date', 'time'], inplace=True)
    return df


def _parse_epoch(series: pd.Series, unit: str) -> pd.Series:
    return pd.to_datetime(series.astype('int64'), unit=unit, utc=True)


def _read_tabular(df: pd.DataFrame) -> pd.DataFrame:
    """Normalize a header-bearing table (CSV with header or JSON records)."""
    df.columns = df.columns.str.lower()

    required = {'open', 'high', 'low', 'close'}
    if not required.issubset(df.columns):
        raise ValueError(f"Missing required columns. Found: {df.columns.tolist()}")

    # open_time is epoch milliseconds (exchange/database exports),
    # time is epoch seconds (TradingView exports)
    if 'open_time' in df.columns:
        if pd.api.types.is_numeric_dtype(df['open_time']):
            df['timestamp'] = _parse_epoch(df['open_time'], 'ms')
        else:
            df['timestamp'] = pd.to_datetime(df['open_time'], utc=True)
    elif 'time' in df.columns:
        df['timestamp'] = _parse_epoch(df['time'], 's')
    else:
        raise ValueError(f"Missing time column. Found: {df.columns.tolist()}")

    for c in ['open', 'high', 'low', 'close']:
        df[c] = df[c].astype('float64')
    return df


def load_klines(filepath: str) -> Tuple[pd.DataFrame, List[Gap]]:
    """
    Loads kline data into a standardized DataFrame.

    Rows are sorted ascending by time whatever the source order (database
    exports are newest first).

    Args:
        filepath: Path to the CSV or JSON file.

    Returns:
        Tuple containing:
            - DataFrame indexed by UTC timestamp with columns:
              open, high, low, close, volume, trade_count.
            - List of gaps (start, end, duration_minutes), detected at
              1.5x the median bar interval.

    Raises:
        FileNotFoundError, PermissionError, ValueError.
    """
    if not os.path.exists(filepath):
        raise FileNotFoundError(f"File not found: {filepath}")

    if os.path.getsize(filepath) == 0:
        raise ValueError("File is empty")

    fmt = detect_format(filepath)

    try:
        if fmt == "format_a":
            df = _read_format_a(filepath)
        elif fmt == "format_b":
            df = _read_tabular(pd.read_csv(filepath, sep=',', engine='c'))
        else:
            with open(filepath, 'r') as f:
                payload = json.load(f)
            records = payload.get('RECORDS', []) if isinstance(payload, dict) else payload
            if not records:
                raise ValueError("No kline records found")
            df = _read_tabular(pd.DataFrame.from_records(records))
    except (KeyError, ValueError, TypeError, json.JSONDecodeError, pd.errors.ParserError) as e:
        raise ValueError(f"Error parsing file: {e}")

    for c in ['volume', 'trade_count']:
        if c not in df.columns:
            df[c] = 0
        df[c] = df[c].fillna(0)
    df['volume'] = df['volume'].astype('float64')
    df['trade_count'] = df['trade_count'].astype('int64')

    df = df[['timestamp'] + KLINE_COLUMNS]
    df = df.set_index('timestamp').sort_index(kind='mergesort')

    # Overlapping exports repeat bars; the last occurrence is the freshest
    duplicate_timestamps = df.index.duplicated(keep='last')
    if duplicate_timestamps.any():
        logger.debug(
            f"Duplicate timestamps in {os.path.basename(filepath)}: "
            f"{duplicate_timestamps.sum()} removed (kept last occurrence)"
        )
        df = df[~duplicate_timestamps]

    # low <= open, close <= high and volume >= 0
    valid_ohlc = (
        (df['low'] <= df['open']) & (df['open'] <= df['high']) &
        (df['low'] <= df['close']) & (df['close'] <= df['high'])
    )
    valid_mask = valid_ohlc & (df['volume'] >= 0)

    if not valid_mask.all():
        invalid_count = int((~valid_mask).sum())
        total_count = len(df)
        if invalid_count / total_count > 0.01:
            raise ValueError(f"Too many invalid rows: {invalid_count}/{total_count} ({invalid_count/total_count:.2%})")
        logger.warning(f"Dropping {invalid_count} invalid OHLC row(s) from {filepath}")
        df = df[valid_mask]

    return df, detect_gaps(df.index)


def detect_gaps(index: pd.DatetimeIndex) -> List[Gap]:
    """
    Find gaps longer than 1.5x the median bar interval.

    Gaps are reported, not filled; the structure pipeline tolerates them.
    """
    gaps: List[Gap] = []
    if len(index) < 3:
        return gaps

    time_diff = index.to_series().diff()
    threshold = time_diff.median() * 1.5

    for loc in range(1, len(index)):
        if time_diff.iloc[loc] > threshold:
            start_time, end_time = index[loc - 1], index[loc]
            gaps.append((start_time, end_time, (end_time - start_time).total_seconds() / 60.0))

    if gaps:
        logger.debug(f"Detected {len(gaps)} gap(s) longer than {threshold}")
    return gaps
