"""Short-term direction, move shape and multi-timeframe breakout spikes."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import structlog

from src.signals.models import (
    DOWNWARD,
    FLAT,
    MOVING,
    NEUTRAL,
    NEUTRAL_MOMENTUM,
    SLANTED,
    STEEP,
    UPWARD,
    MomentumState,
    PricePoint,
    ShortDerivative,
)

logger = structlog.get_logger()

MINUTE = 60.0
HOUR = 60 * MINUTE
DAY = 24 * HOUR


@dataclass(frozen=True, slots=True)
class ShortTermConfig:
    window_minutes: int = 15
    neutral_band_pct: float = 0.1
    flat_pct: float = 0.2
    moving_pct: float = 0.8
    slanted_pct: float = 1.6
    spike_tolerance: float = 0.001
    spike_7d_up_tolerance: float = 0.01

    @classmethod
    def from_settings(cls, settings=None) -> ShortTermConfig:
        if settings is None:
            from config.settings import settings
        return cls(
            window_minutes=settings.SHORT_WINDOW_MINUTES,
            neutral_band_pct=settings.SHORT_NEUTRAL_BAND_PCT,
            flat_pct=settings.SHORT_SHAPE_FLAT_PCT,
            moving_pct=settings.SHORT_SHAPE_MOVING_PCT,
            slanted_pct=settings.SHORT_SHAPE_SLANTED_PCT,
            spike_tolerance=settings.SPIKE_TOLERANCE,
            spike_7d_up_tolerance=settings.SPIKE_7D_UP_TOLERANCE,
        )

    def shape_for(self, abs_change_pct: float) -> str:
        if abs_change_pct <= self.flat_pct:
            return FLAT
        if abs_change_pct <= self.moving_pct:
            return MOVING
        if abs_change_pct <= self.slanted_pct:
            return SLANTED
        return STEEP


@dataclass(frozen=True, slots=True)
class ShortTermResult:
    momentum: MomentumState = NEUTRAL_MOMENTUM
    change_pct: Optional[float] = None
    three_day_high: Optional[float] = None
    three_day_low: Optional[float] = None
    seven_day_high: Optional[float] = None
    seven_day_low: Optional[float] = None


@dataclass(frozen=True, slots=True)
class _Extremes:
    high: float
    low: float


def _extremes(prices: np.ndarray) -> Optional[_Extremes]:
    if not prices.size:
        return None
    return _Extremes(high=float(prices.max()), low=float(prices.min()))


def _as_arrays(points: Sequence[PricePoint]) -> tuple[np.ndarray, np.ndarray]:
    ts = np.fromiter((p.timestamp for p in points), dtype=float, count=len(points))
    prices = np.fromiter((p.price for p in points), dtype=float, count=len(points))
    valid = np.isfinite(ts) & np.isfinite(prices)
    return ts[valid], prices[valid]


def short_term_momentum(
    points: Sequence[PricePoint],
    now: float,
    config: Optional[ShortTermConfig] = None,
) -> ShortTermResult:
    cfg = config or ShortTermConfig()
    ts, prices = _as_arrays(points)
    window = cfg.window_minutes * MINUTE

    last = prices[ts >= now - window]
    prev = prices[(ts >= now - 2 * window) & (ts < now - window)]
    if not last.size or not prev.size:
        logger.debug("short_term_neutral", last_window=int(last.size), prev_window=int(prev.size))
        return ShortTermResult()

    prev_avg = float(prev.mean())
    if prev_avg <= 0:
        return ShortTermResult()
    change_pct = (float(last.mean()) - prev_avg) / prev_avg * 100.0
    if abs(change_pct) < cfg.neutral_band_pct:
        main = NEUTRAL
    else:
        main = UPWARD if change_pct > 0 else DOWNWARD
    shape = cfg.shape_for(abs(change_pct))

    # (tag, lookback, trailing slice, up tolerance, down tolerance)
    trailing_30 = 30 * MINUTE
    checks = (
        ("1h", HOUR, 10 * MINUTE, cfg.spike_tolerance, cfg.spike_tolerance),
        ("1d", DAY, trailing_30, cfg.spike_tolerance, cfg.spike_tolerance),
        ("3d", 3 * DAY, trailing_30, cfg.spike_tolerance, cfg.spike_tolerance),
        ("7d", 7 * DAY, trailing_30, cfg.spike_7d_up_tolerance, cfg.spike_tolerance),
    )
    spikes: set[str] = set()
    extremes: dict[str, Optional[_Extremes]] = {}
    for tag, lookback, trailing, up_tol, down_tol in checks:
        recent = _extremes(prices[ts >= now - trailing])
        reference = _extremes(prices[(ts >= now - lookback) & (ts < now - trailing)])
        extremes[tag] = reference
        if recent is None or reference is None:
            continue
        if recent.high > reference.high * (1 + up_tol):
            spikes.add(f"{tag}_up")
        elif recent.low < reference.low * (1 - down_tol):
            spikes.add(f"{tag}_down")

    momentum = MomentumState(main, ShortDerivative(shape=shape, spikes=frozenset(spikes)))
    logger.debug(
        "short_term_momentum",
        main=main,
        shape=shape,
        spikes=sorted(spikes),
        change_15m_pct=round(change_pct, 4),
    )
    three_day, seven_day = extremes.get("3d"), extremes.get("7d")
    return ShortTermResult(
        momentum=momentum,
        change_pct=change_pct,
        three_day_high=three_day.high if three_day else None,
        three_day_low=three_day.low if three_day else None,
        seven_day_high=seven_day.high if seven_day else None,
        seven_day_low=seven_day.low if seven_day else None,
    )
