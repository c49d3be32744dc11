"""Entry point of the signal engine: both momentum classifications for a tick."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import structlog

from src.signals.medium_term import MediumTermConfig, medium_term_momentum
from src.signals.models import NEUTRAL_MOMENTUM, MomentumState, PricePoint
from src.signals.short_term import ShortTermConfig, ShortTermResult, short_term_momentum

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class MomentumAnalysis:
    medium: MomentumState = NEUTRAL_MOMENTUM
    short: MomentumState = NEUTRAL_MOMENTUM
    three_day_high: Optional[float] = None
    three_day_low: Optional[float] = None
    seven_day_high: Optional[float] = None
    seven_day_low: Optional[float] = None

    @property
    def any_downward(self) -> bool:
        return "downward" in (self.medium.main, self.short.main)


def analyze_momentum(
    points: Sequence[PricePoint],
    now: float,
    *,
    medium_config: Optional[MediumTermConfig] = None,
    short_config: Optional[ShortTermConfig] = None,
) -> MomentumAnalysis:
    """Classify medium- and short-term momentum from the price history.

    Best effort: malformed or insufficient data degrades the affected
    signal to neutral instead of raising.
    """
    if not points:
        return MomentumAnalysis()

    try:
        medium = medium_term_momentum(points, medium_config)
    except (ValueError, ArithmeticError) as exc:
        logger.warning("medium_term_failed", error=str(exc))
        medium = NEUTRAL_MOMENTUM

    try:
        short = short_term_momentum(points, now, short_config)
    except (ValueError, ArithmeticError) as exc:
        logger.warning("short_term_failed", error=str(exc))
        short = ShortTermResult()

    return MomentumAnalysis(
        medium=medium,
        short=short.momentum,
        three_day_high=short.three_day_high,
        three_day_low=short.three_day_low,
        seven_day_high=short.seven_day_high,
        seven_day_low=short.seven_day_low,
    )
