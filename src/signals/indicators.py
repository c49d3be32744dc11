"""Trend indicators over bar arrays: Wilder ADX and EMA-based MACD."""

from __future__ import annotations

import numpy as np
import pandas as pd


def _wilder_smooth(values: np.ndarray, period: int) -> np.ndarray:
    # first value is the plain sum of the first `period` inputs
    out = np.empty(len(values) - period + 1)
    running = values[:period].sum()
    out[0] = running
    for i, value in enumerate(values[period:], start=1):
        running = running - running / period + value
        out[i] = running
    return out


def adx(high, low, close, period: int) -> np.ndarray:
    """Average directional index series.

    Returns an empty array when there are not enough bars for a single
    value (``2 * period`` bars are needed). Bars without any directional
    movement contribute a DX of 0.
    """
    high = np.asarray(high, dtype=float)
    low = np.asarray(low, dtype=float)
    close = np.asarray(close, dtype=float)
    if period < 1 or len(close) < 2 * period:
        return np.empty(0)

    prev_close = close[:-1]
    true_range = np.maximum.reduce([
        high[1:] - low[1:],
        np.abs(high[1:] - prev_close),
        np.abs(low[1:] - prev_close),
    ])
    up_move = high[1:] - high[:-1]
    down_move = low[:-1] - low[1:]
    plus_dm = np.where((up_move > down_move) & (up_move > 0), up_move, 0.0)
    minus_dm = np.where((down_move > up_move) & (down_move > 0), down_move, 0.0)

    tr_s = _wilder_smooth(true_range, period)
    plus_s = _wilder_smooth(plus_dm, period)
    minus_s = _wilder_smooth(minus_dm, period)

    with np.errstate(divide="ignore", invalid="ignore"):
        plus_di = np.where(tr_s > 0, 100.0 * plus_s / tr_s, 0.0)
        minus_di = np.where(tr_s > 0, 100.0 * minus_s / tr_s, 0.0)
        di_sum = plus_di + minus_di
        dx = np.where(di_sum > 0, 100.0 * np.abs(plus_di - minus_di) / di_sum, 0.0)

    if len(dx) < period:
        return np.empty(0)
    out = np.empty(len(dx) - period + 1)
    out[0] = dx[:period].mean()
    for i, value in enumerate(dx[period:], start=1):
        out[i] = (out[i - 1] * (period - 1) + value) / period
    return out


def macd(close, fast: int, slow: int, signal: int) -> tuple[pd.Series, pd.Series]:
    """MACD line (fast EMA minus slow EMA) and its EMA signal line."""
    closes = pd.Series(np.asarray(close, dtype=float))
    fast_ema = closes.ewm(span=fast, adjust=False).mean()
    slow_ema = closes.ewm(span=slow, adjust=False).mean()
    line = fast_ema - slow_ema
    return line, line.ewm(span=signal, adjust=False).mean()
