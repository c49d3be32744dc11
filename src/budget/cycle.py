"""Rolling per-leg spend ceiling.

Each leg (puts, calls) has a base limit per cycle. ``net_committed`` moves
only with reconciled fills: opening fills add their notional, closing fills
(put sellbacks, call buybacks) subtract it. When a cycle ends, whatever
capacity is left over carries into the next cycle.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from decimal import ROUND_FLOOR, Decimal, InvalidOperation
from typing import Any, Optional, Protocol

import structlog

logger = structlog.get_logger()

DAY_SECONDS = 86400.0


@dataclass(slots=True)
class LegState:
    leg: str
    cycle_start: Optional[float] = None
    net_committed: float = 0.0
    unspent_carry: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LegState:
        return cls(
            leg=data["leg"],
            cycle_start=data.get("cycle_start"),
            net_committed=float(data.get("net_committed") or 0.0),
            unspent_carry=float(data.get("unspent_carry") or 0.0),
        )


class LegStateSink(Protocol):
    async def save_leg_state(self, state: LegState) -> None: ...


def quantize_down(quantity: float, step: float) -> float:
    """Round ``quantity`` down to a multiple of ``step`` (never negative)."""
    if not (math.isfinite(quantity) and math.isfinite(step)) or step <= 0 or quantity <= 0:
        return 0.0
    try:
        q = Decimal(str(quantity))
        s = Decimal(str(step))
    except InvalidOperation:
        return 0.0
    return float((q / s).to_integral_value(rounding=ROUND_FLOOR) * s)


class BudgetCycleManager:
    """Owns one leg's ``LegState``; every mutation is persisted immediately."""

    def __init__(
        self,
        state: LegState,
        *,
        base_limit: float,
        period_days: float = 10.0,
        min_trade_usd: float = 10.0,
        store: Optional[LegStateSink] = None,
    ) -> None:
        self.state = state
        self.base_limit = base_limit
        self.period_seconds = period_days * DAY_SECONDS
        self.min_trade_usd = min_trade_usd
        self._store = store

    @property
    def leg(self) -> str:
        return self.state.leg

    @property
    def capacity(self) -> float:
        return self.base_limit + self.state.unspent_carry - self.state.net_committed

    def can_trade(self) -> bool:
        return self.capacity > self.min_trade_usd

    async def _persist(self) -> None:
        if self._store is not None:
            await self._store.save_leg_state(self.state)

    async def ensure_started(self, now: float) -> bool:
        """Open the first cycle. Returns True if the state changed."""
        if self.state.cycle_start is not None:
            return False
        self.state.cycle_start = now
        logger.info("budget_cycle_started", leg=self.leg, cycle_start=now)
        await self._persist()
        return True

    async def roll_if_due(self, now: float) -> bool:
        """Close the cycle once the period has elapsed, carrying leftover capacity."""
        start = self.state.cycle_start
        if start is None or now - start < self.period_seconds:
            return False
        carry = max(0.0, self.capacity)
        logger.info(
            "budget_cycle_rolled",
            leg=self.leg,
            net_committed=round(self.state.net_committed, 4),
            carry=round(carry, 4),
        )
        self.state.unspent_carry = carry
        self.state.net_committed = 0.0
        self.state.cycle_start = now
        await self._persist()
        return True

    def size_order(
        self,
        price: float,
        book_size: float,
        step: float,
        hard_cap: Optional[float] = None,
    ) -> float:
        """Largest quantity within capacity, book size and cap; 0 means skip."""
        if not self.can_trade():
            return 0.0
        if not (math.isfinite(price) and price > 0):
            return 0.0
        limits = [self.capacity / price, book_size]
        if hard_cap is not None:
            limits.append(hard_cap)
        return quantize_down(max(0.0, min(limits)), step)

    async def apply_fill(self, signed_notional: float) -> None:
        """Book a reconciled fill; positive opens exposure, negative closes it."""
        self.state.net_committed += signed_notional
        logger.info(
            "budget_fill_applied",
            leg=self.leg,
            notional=round(signed_notional, 6),
            net_committed=round(self.state.net_committed, 6),
            capacity=round(self.capacity, 6),
        )
        await self._persist()
