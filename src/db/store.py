"""Durable state for the bot: leg budgets, price history, tick log, order journal."""

from __future__ import annotations

import time
from typing import Any, Iterable, Optional

import structlog
from sqlalchemy import delete as sa_delete, select
from sqlalchemy.exc import SQLAlchemyError

from src.budget.cycle import LegState
from src.db.database import DEFAULT_ASYNC_DATABASE_URL, get_session, init_db_async
from src.db.models import LegStateRow, OptionSnapshot, OrderRecord, SpotPrice, TickSummary
from src.exceptions import PersistenceError
from src.signals.models import PricePoint
from src.signals.momentum import MomentumAnalysis
from src.strategy.candidates import Candidate
from src.utils.parsing import parse_json_dict

logger = structlog.get_logger()

ORDER_FIELDS = frozenset(c.name for c in OrderRecord.__table__.columns) - {"id"}


class StateStore:
    """Async persistence facade; SQLAlchemy errors surface as PersistenceError."""

    def __init__(self, db_url: str = DEFAULT_ASYNC_DATABASE_URL) -> None:
        self.db_url = db_url

    async def init(self) -> None:
        try:
            await init_db_async(self.db_url)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"init failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Leg state
    # ------------------------------------------------------------------

    async def load_leg_state(self, leg: str) -> Optional[LegState]:
        try:
            async with get_session(self.db_url) as s:
                row = await s.get(LegStateRow, leg)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"load_leg_state failed: {exc}") from exc
        if row is None:
            return None
        return LegState(
            leg=row.leg,
            cycle_start=row.cycle_start,
            net_committed=row.net_committed or 0.0,
            unspent_carry=row.unspent_carry or 0.0,
        )

    async def load_leg_states(self, legs: Iterable[str]) -> dict[str, LegState]:
        """Stored state per leg, or a fresh state for legs never saved."""
        states: dict[str, LegState] = {}
        for leg in legs:
            states[leg] = await self.load_leg_state(leg) or LegState(leg=leg)
        return states

    async def save_leg_state(self, state: LegState) -> None:
        try:
            async with get_session(self.db_url) as s:
                await s.merge(LegStateRow(
                    leg=state.leg,
                    cycle_start=state.cycle_start,
                    net_committed=state.net_committed,
                    unspent_carry=state.unspent_carry,
                ))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"save_leg_state failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Price history
    # ------------------------------------------------------------------

    async def append_price_point(
        self,
        point: PricePoint,
        momentum: Optional[MomentumAnalysis] = None,
    ) -> None:
        row = SpotPrice(timestamp=point.timestamp, price=point.price)
        if momentum is not None:
            row.medium_momentum = momentum.medium.to_dict()
            row.short_momentum = momentum.short.to_dict()
            row.three_day_high = momentum.three_day_high
            row.three_day_low = momentum.three_day_low
            row.seven_day_high = momentum.seven_day_high
            row.seven_day_low = momentum.seven_day_low
        try:
            async with get_session(self.db_url) as s:
                s.add(row)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"append_price_point failed: {exc}") from exc

    async def load_recent_prices(self, window_seconds: float, now: Optional[float] = None) -> list[PricePoint]:
        """Prices newer than ``now - window_seconds``, oldest first."""
        cutoff = (now if now is not None else time.time()) - window_seconds
        try:
            async with get_session(self.db_url) as s:
                result = await s.execute(
                    select(SpotPrice.price, SpotPrice.timestamp)
                    .where(SpotPrice.timestamp >= cutoff)
                    .order_by(SpotPrice.timestamp)
                )
                rows = result.all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"load_recent_prices failed: {exc}") from exc
        return [PricePoint(price=price, timestamp=ts) for price, ts in rows]

    async def prune_prices(self, older_than: float) -> int:
        try:
            async with get_session(self.db_url) as s:
                result = await s.execute(sa_delete(SpotPrice).where(SpotPrice.timestamp < older_than))
                return result.rowcount or 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"prune_prices failed: {exc}") from exc

    # ------------------------------------------------------------------
    # Tick summaries
    # ------------------------------------------------------------------

    async def append_tick_summary(self, summary: dict[str, Any], timestamp: Optional[float] = None) -> None:
        ts = timestamp if timestamp is not None else summary.get("timestamp", time.time())
        try:
            async with get_session(self.db_url) as s:
                s.add(TickSummary(timestamp=ts, summary={**summary, "timestamp": ts}))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"append_tick_summary failed: {exc}") from exc

    async def load_recent_tick_summaries(
        self, limit: int, since: Optional[float] = None,
    ) -> list[dict[str, Any]]:
        """Most recent summaries first, optionally only those newer than ``since``.

        ``limit`` is a safety bound; ``since`` defines the window.
        """
        query = select(TickSummary.timestamp, TickSummary.summary)
        if since is not None:
            query = query.where(TickSummary.timestamp > since)
        try:
            async with get_session(self.db_url) as s:
                result = await s.execute(
                    query
                    .order_by(TickSummary.timestamp.desc(), TickSummary.id.desc())
                    .limit(limit)
                )
                rows = result.all()
        except SQLAlchemyError as exc:
            raise PersistenceError(f"load_recent_tick_summaries failed: {exc}") from exc
        # older rows stored the summary as a JSON string
        return [{**parse_json_dict(summary), "timestamp": ts} for ts, summary in rows]

    # ------------------------------------------------------------------
    # Orders and snapshots
    # ------------------------------------------------------------------

    async def record_order(self, **fields: Any) -> None:
        values = {k: v for k, v in fields.items() if k in ORDER_FIELDS}
        values.setdefault("timestamp", time.time())
        try:
            async with get_session(self.db_url) as s:
                s.add(OrderRecord(**values))
        except SQLAlchemyError as exc:
            raise PersistenceError(f"record_order failed: {exc}") from exc

    async def save_options_snapshot(
        self,
        leg: str,
        candidates: Iterable[Candidate],
        timestamp: Optional[float] = None,
    ) -> int:
        ts = timestamp if timestamp is not None else time.time()
        rows = [
            OptionSnapshot(
                timestamp=ts,
                leg=leg,
                instrument_name=c.instrument_name,
                strike=c.strike,
                expiry=c.expiry,
                delta=c.delta,
                ask_price=c.ask_price,
                ask_size=c.ask_size,
                bid_price=c.bid_price,
                bid_size=c.bid_size,
                mark_price=c.mark_price,
                index_price=c.index_price,
                implied_vol=c.implied_vol,
                open_interest=c.open_interest,
                score=c.score,
            )
            for c in candidates
        ]
        if not rows:
            return 0
        try:
            async with get_session(self.db_url) as s:
                s.add_all(rows)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"save_options_snapshot failed: {exc}") from exc
        return len(rows)
