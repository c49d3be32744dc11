"""Fixed-width OHLC bar construction from irregular price ticks."""

from __future__ import annotations

from typing import Iterable

import numpy as np
import pandas as pd

from src.signals.models import PricePoint

OHLC_COLUMNS = ["open", "high", "low", "close"]


def price_series(points: Iterable[PricePoint]) -> pd.Series:
    """Finite prices indexed by UTC timestamp, in chronological order."""
    frame = pd.DataFrame(
        [(p.price, p.timestamp) for p in points],
        columns=["price", "timestamp"],
        dtype=float,
    )
    frame = frame[np.isfinite(frame["price"]) & np.isfinite(frame["timestamp"])]
    index = pd.to_datetime(frame["timestamp"], unit="s", utc=True)
    series = pd.Series(frame["price"].to_numpy(), index=index, name="price")
    return series.sort_index(kind="stable")


def build_ohlc_bars(series: pd.Series, interval_minutes: int) -> pd.DataFrame:
    """Resample ticks into epoch-aligned ``interval_minutes`` bars.

    A bucket with no ticks becomes a doji at the previous close so that
    indicator windows stay aligned with wall-clock time.
    """
    if series.empty:
        return pd.DataFrame(columns=OHLC_COLUMNS, dtype=float)
    bars = series.resample(f"{interval_minutes}min", origin="epoch").ohlc()
    close = bars["close"].ffill()
    for column in ("open", "high", "low"):
        bars[column] = bars[column].fillna(close)
    bars["close"] = close
    return bars[OHLC_COLUMNS]
