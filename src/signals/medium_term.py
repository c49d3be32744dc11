"""Medium-term trend signal: ADX-gated MACD on resampled OHLC bars."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from src.signals.bars import build_ohlc_bars, price_series
from src.signals.indicators import adx, macd
from src.signals.models import (
    ACCELERATING,
    DECELERATING,
    DOWNWARD,
    NEUTRAL_MOMENTUM,
    UPWARD,
    MomentumState,
    PricePoint,
)

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class MediumTermConfig:
    bar_minutes: int = 10
    adx_period: int = 50
    adx_min: float = 15.0
    macd_fast: int = 16
    macd_slow: int = 34
    macd_signal: int = 13
    min_bars: int = 60

    @property
    def required_bars(self) -> int:
        return max(self.min_bars, 3 * self.adx_period, self.macd_slow + self.macd_signal + 5)

    @classmethod
    def from_settings(cls, settings=None) -> MediumTermConfig:
        if settings is None:
            from config.settings import settings
        return cls(
            bar_minutes=settings.MEDIUM_BAR_MINUTES,
            adx_period=settings.MEDIUM_ADX_PERIOD,
            adx_min=settings.MEDIUM_ADX_MIN,
            macd_fast=settings.MEDIUM_MACD_FAST,
            macd_slow=settings.MEDIUM_MACD_SLOW,
            macd_signal=settings.MEDIUM_MACD_SIGNAL,
            min_bars=settings.MEDIUM_MIN_BARS,
        )


def medium_term_momentum(
    points: Sequence[PricePoint],
    config: Optional[MediumTermConfig] = None,
) -> MomentumState:
    cfg = config or MediumTermConfig()
    series = price_series(points)
    if len(series) < 2:
        logger.debug("medium_term_neutral", reason="insufficient_points", points=len(series))
        return NEUTRAL_MOMENTUM

    bars = build_ohlc_bars(series, cfg.bar_minutes)
    if len(bars) < cfg.required_bars:
        logger.debug(
            "medium_term_neutral",
            reason="insufficient_bars",
            bars=len(bars),
            required=cfg.required_bars,
        )
        return NEUTRAL_MOMENTUM

    adx_series = adx(bars["high"], bars["low"], bars["close"], cfg.adx_period)
    if not len(adx_series):
        logger.debug("medium_term_neutral", reason="adx_unavailable")
        return NEUTRAL_MOMENTUM
    last_adx = float(adx_series[-1])
    # hard gate: a weak trend is neutral whatever MACD says
    if not last_adx > cfg.adx_min:
        logger.debug("medium_term_neutral", reason="adx_weak", adx=round(last_adx, 2))
        return NEUTRAL_MOMENTUM

    line, signal = macd(bars["close"], cfg.macd_fast, cfg.macd_slow, cfg.macd_signal)
    m, s = float(line.iloc[-1]), float(signal.iloc[-1])
    if not (math.isfinite(m) and math.isfinite(s)):
        logger.debug("medium_term_neutral", reason="macd_invalid")
        return NEUTRAL_MOMENTUM

    diff = m - s
    if m > 0 and s > 0:
        state = MomentumState(UPWARD, ACCELERATING if diff > 0 else DECELERATING)
    elif m < 0 and s < 0:
        state = MomentumState(DOWNWARD, ACCELERATING if diff < 0 else DECELERATING)
    else:
        state = NEUTRAL_MOMENTUM
    logger.debug(
        "medium_term_momentum",
        main=state.main,
        derivative=state.derivative,
        adx=round(last_adx, 2),
        macd_diff=diff,
    )
    return state
