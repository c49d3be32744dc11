import numpy as np
import pytest

from src.signals.bars import build_ohlc_bars, price_series
from src.signals.indicators import adx, macd
from src.signals.medium_term import MediumTermConfig, medium_term_momentum
from src.signals.models import DOWNWARD, NEUTRAL, UPWARD, PricePoint

START = 1_700_000_400.0  # multiple of 600
BAR = 600.0


def _trend(step: float, bars: int = 200, base: float = 2000.0) -> list[PricePoint]:
    return [PricePoint(base + step * k, START + k * BAR) for k in range(bars)]


def test_required_bars_default():
    assert MediumTermConfig().required_bars == 150


def test_gap_buckets_become_doji_at_last_close():
    series = price_series([
        PricePoint(100.0, START),
        PricePoint(101.0, START + 60),
        PricePoint(99.0, START + 1800),
    ])
    bars = build_ohlc_bars(series, 10)
    assert len(bars) == 4
    assert bars.iloc[0].tolist() == [100.0, 101.0, 100.0, 101.0]
    assert bars.iloc[1].tolist() == [101.0, 101.0, 101.0, 101.0]
    assert bars.iloc[2].tolist() == [101.0, 101.0, 101.0, 101.0]
    assert bars.iloc[3]["close"] == 99.0


def test_non_finite_ticks_are_dropped():
    series = price_series([
        PricePoint(float("nan"), START),
        PricePoint(100.0, START + 1),
        PricePoint(float("inf"), START + 2),
    ])
    assert series.tolist() == [100.0]


def test_adx_needs_two_periods_of_bars():
    assert len(adx([1, 2, 3], [1, 2, 3], [1, 2, 3], period=5)) == 0


def test_adx_of_monotonic_trend_is_maximal():
    closes = np.arange(100.0, 200.0)
    values = adx(closes, closes, closes, period=10)
    assert values[-1] == pytest.approx(100.0)


def test_adx_of_flat_series_is_zero():
    closes = np.full(60, 100.0)
    values = adx(closes, closes, closes, period=10)
    assert values[-1] == 0.0


def test_macd_of_constant_series_is_zero():
    line, signal = macd(np.full(50, 5.0), 16, 34, 13)
    assert line.iloc[-1] == pytest.approx(0.0)
    assert signal.iloc[-1] == pytest.approx(0.0)


def test_rising_trend_is_upward():
    assert medium_term_momentum(_trend(+1.0)).main == UPWARD


def test_falling_trend_is_downward():
    assert medium_term_momentum(_trend(-1.0)).main == DOWNWARD


def test_flat_market_fails_adx_gate():
    state = medium_term_momentum(_trend(0.0))
    assert state.main == NEUTRAL
    assert state.derivative is None


def test_too_few_bars_is_neutral():
    state = medium_term_momentum(_trend(+1.0, bars=100))
    assert state.main == NEUTRAL


def test_single_point_is_neutral():
    assert medium_term_momentum([PricePoint(100.0, START)]).main == NEUTRAL
