"""Explicit bot state threaded through every tick."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from src.budget.cycle import LegState
from src.signals.models import NEUTRAL_MOMENTUM, MomentumState


@dataclass(slots=True)
class BotState:
    """Momentum from the last tick plus the per-leg budget state.

    Momentum is overwritten, never merged, on each tick.
    """

    medium: MomentumState = NEUTRAL_MOMENTUM
    short: MomentumState = NEUTRAL_MOMENTUM
    legs: dict[str, LegState] = field(default_factory=dict)
    last_tick_at: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "medium": self.medium.to_dict(),
            "short": self.short.to_dict(),
            "legs": {leg: state.to_dict() for leg, state in self.legs.items()},
            "last_tick_at": self.last_tick_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BotState:
        return cls(
            medium=MomentumState.from_raw(data.get("medium")),
            short=MomentumState.from_raw(data.get("short")),
            legs={leg: LegState.from_dict(raw) for leg, raw in (data.get("legs") or {}).items()},
            last_tick_at=data.get("last_tick_at"),
        )
