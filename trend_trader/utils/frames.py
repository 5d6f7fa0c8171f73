"""OHLCV DataFrame helpers: conversion to/from Bar and CSV loading."""

from __future__ import annotations
from pathlib import Path
from typing import Iterable, List

import pandas as pd

from trend_trader.core.types import Bar

OHLCV_COLUMNS = ["time", "open", "high", "low", "close", "volume"]


def bars_to_frame(bars: Iterable[Bar]) -> pd.DataFrame:
    """Bar sequence -> OHLCV DataFrame (columns: time, open, high, low, close, volume)."""
    rows = [(b.time, b.open, b.high, b.low, b.close, b.volume) for b in bars]
    df = pd.DataFrame(rows, columns=OHLCV_COLUMNS)
    df[OHLCV_COLUMNS[1:]] = df[OHLCV_COLUMNS[1:]].astype(float)
    return df


def frame_to_bars(df: pd.DataFrame) -> List[Bar]:
    return [
        Bar(
            time=pd.Timestamp(row.time).to_pydatetime(),
            open=float(row.open),
            high=float(row.high),
            low=float(row.low),
            close=float(row.close),
            volume=float(row.volume),
        )
        for row in df.itertuples(index=False)
    ]


def load_csv(path: Path) -> pd.DataFrame:
    """
    Load OHLCV bars from CSV. Accepts a `time` column (ISO string or epoch ms)
    or a `timestamp` column. Sorted ascending, duplicates dropped.
    """
    df = pd.read_csv(path)
    df.columns = [c.strip().lower() for c in df.columns]
    if "time" not in df.columns and "timestamp" in df.columns:
        df = df.rename(columns={"timestamp": "time"})
    missing = [c for c in OHLCV_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"CSV {path} missing columns: {missing}")
    if pd.api.types.is_numeric_dtype(df["time"]):
        df["time"] = pd.to_datetime(df["time"], unit="ms")
    else:
        df["time"] = pd.to_datetime(df["time"])
    df[OHLCV_COLUMNS[1:]] = df[OHLCV_COLUMNS[1:]].astype(float)
    df = df.sort_values("time").drop_duplicates(subset="time").reset_index(drop=True)
    return df[OHLCV_COLUMNS]
