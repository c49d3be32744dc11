"""One pass of the trading loop.

fetch -> momentum -> candidates -> scores -> exits -> entries -> summary.
Reads run concurrently; everything that can move the budget runs strictly
in sequence so each order is sized against the budget left by the previous
one.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field, replace
from typing import Any, Awaitable, Callable, Optional, TypeVar

import structlog

from src.budget.cycle import BudgetCycleManager, LegState
from src.exceptions import FeedError
from src.engine.state import BotState
from src.engine.summary import build_tick_summary
from src.execution.executor import OrderExecutor
from src.signals.medium_term import MediumTermConfig
from src.signals.models import PricePoint
from src.signals.momentum import MomentumAnalysis, analyze_momentum
from src.signals.short_term import ShortTermConfig
from src.strategy.candidates import (
    CALLS,
    LEGS,
    PUTS,
    Candidate,
    LegFilter,
    candidate_from_ticker,
    expiry_date_of,
    filter_instruments,
    score_candidates,
)
from src.strategy.decision import (
    HistoricalBest,
    historical_best_scores,
    next_delay,
    select_entries,
    select_exits,
)
from src.strategy.positions import positions_from_raw

logger = structlog.get_logger()
T = TypeVar("T")

DAY_SECONDS = 86400.0


@dataclass(slots=True)
class TickOutcome:
    state: BotState
    delay: float
    summary: dict[str, Any] = field(default_factory=dict)


class TickRunner:
    """Wires feeds, strategy, budget and execution for a single tick."""

    def __init__(
        self,
        *,
        spot_feed: Any,
        exchange: Any,
        store: Any,
        executor: OrderExecutor,
        settings: Any = None,
        fetch_positions: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if settings is None:
            from config.settings import settings
        self.spot_feed = spot_feed
        self.exchange = exchange
        self.store = store
        self.executor = executor
        self.settings = settings
        self.fetch_positions = fetch_positions
        self._clock = clock
        self.medium_config = MediumTermConfig.from_settings(settings)
        self.short_config = ShortTermConfig.from_settings(settings)
        self.filters = {leg: LegFilter.from_settings(leg, settings) for leg in LEGS}
        self.base_limits = {
            PUTS: settings.PUT_BASE_LIMIT_USD,
            CALLS: settings.CALL_BASE_LIMIT_USD,
        }
        self.hard_caps = {PUTS: None, CALLS: settings.CALL_MAX_ORDER_AMOUNT}

    async def load_state(self) -> BotState:
        legs = await self.store.load_leg_states(LEGS)
        logger.info(
            "state_loaded",
            **{f"{leg}_net_committed": round(s.net_committed, 2) for leg, s in legs.items()},
        )
        return BotState(legs=legs)

    # ------------------------------------------------------------------
    # Fetch helpers
    # ------------------------------------------------------------------

    async def _or_default(self, coro: Awaitable[T], default: T, op: str) -> T:
        try:
            return await coro
        except FeedError as exc:
            logger.warning("feed_unavailable", op=op, error=str(exc))
            return default

    async def _positions(self) -> list[dict]:
        if not self.fetch_positions:
            return []
        return await self._or_default(self.exchange.get_positions(), [], "get_positions")

    async def _tickers(self, expiry_dates: set[str]) -> dict[str, dict]:
        ordered = sorted(expiry_dates)
        results = await asyncio.gather(*(
            self._or_default(self.exchange.get_tickers(e), {}, f"get_tickers:{e}")
            for e in ordered
        ))
        merged: dict[str, dict] = {}
        for tickers in results:
            merged.update(tickers)
        return merged

    def _manager(self, leg: str, state: LegState) -> BudgetCycleManager:
        return BudgetCycleManager(
            state,
            base_limit=self.base_limits[leg],
            period_days=self.settings.BUDGET_PERIOD_DAYS,
            min_trade_usd=self.settings.MIN_TRADE_USD,
            store=self.store,
        )

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    async def run_tick(self, state: BotState) -> TickOutcome:
        s = self.settings
        now = self._clock()

        # 1. Independent reads
        spot, instruments, raw_positions = await asyncio.gather(
            self.spot_feed.get_price(),
            self._or_default(self.exchange.get_instruments(), [], "get_instruments"),
            self._positions(),
        )

        if spot is None:
            # no spot, no trading: momentum degrades to neutral for this tick
            momentum = MomentumAnalysis()
            delay = s.NORMAL_INTERVAL_SECONDS
            summary = build_tick_summary(
                timestamp=now,
                price=None,
                momentum=momentum,
                instruments_total=len(instruments),
                next_delay=delay,
                paper=self.executor.paper,
            )
            await self.store.append_tick_summary(summary, now)
            logger.warning("tick_skipped", reason="spot_unavailable", next_delay=delay)
            legs = {leg: replace(leg_state) for leg, leg_state in state.legs.items()}
            new_state = BotState(legs=legs, last_tick_at=now)
            return TickOutcome(state=new_state, delay=delay, summary=summary)

        # 2. Momentum over stored history plus this tick's price
        history = await self.store.load_recent_prices(s.PRICE_HISTORY_DAYS * DAY_SECONDS, now)
        point = PricePoint(price=spot, timestamp=now)
        history.append(point)
        momentum = analyze_momentum(
            history, now, medium_config=self.medium_config, short_config=self.short_config,
        )
        await self.store.append_price_point(point, momentum)
        logger.info(
            "momentum",
            spot=spot,
            medium=momentum.medium.main,
            medium_derivative=momentum.medium.derivative,
            short=momentum.short.main,
            shape=momentum.short.shape,
            spikes=sorted(momentum.short.spikes),
        )

        # 3. Universe, exits and ticker enrichment
        by_name = {i["instrument_name"]: i for i in instruments if i.get("instrument_name")}
        filtered = {
            leg: filter_instruments(instruments, spot, now, self.filters[leg]) for leg in LEGS
        }
        positions = positions_from_raw(raw_positions, by_name)
        exits = select_exits(
            positions, momentum.medium, momentum.short, now, s.CALL_EXIT_MAX_DTE,
        )
        wanted = {expiry_date_of(i["instrument_name"]) for leg in LEGS for i in filtered[leg]}
        wanted |= {expiry_date_of(e.position.instrument_name) for e in exits}
        wanted.discard(None)
        tickers = await self._tickers(wanted)

        scored: dict[str, list[Candidate]] = {}
        for leg in LEGS:
            enriched = [
                c for c in (
                    candidate_from_ticker(i, tickers.get(i["instrument_name"]), spot, s.DEFAULT_AMOUNT_STEP)
                    for i in filtered[leg]
                ) if c is not None
            ]
            scored[leg] = score_candidates(enriched, self.filters[leg])
            await self.store.save_options_snapshot(leg, scored[leg], now)

        # 4. Ratchet reference from recent ticks
        summaries = await self.store.load_recent_tick_summaries(
            s.RATCHET_SUMMARY_LIMIT, since=now - s.RATCHET_WINDOW_DAYS * DAY_SECONDS,
        )
        historical = historical_best_scores(summaries, now, s.RATCHET_WINDOW_DAYS)

        # 5. Budget cycles
        # managers mutate copies; the caller's state is left as it was
        managers = {
            leg: self._manager(leg, replace(state.legs.get(leg) or LegState(leg=leg)))
            for leg in LEGS
        }
        for manager in managers.values():
            await manager.ensure_started(now)
            await manager.roll_if_due(now)

        orders: list[dict[str, Any]] = []

        # 6. Exits before entries
        for exit_order in exits:
            name = exit_order.position.instrument_name
            quote = candidate_from_ticker(by_name[name], tickers.get(name), spot, s.DEFAULT_AMOUNT_STEP)
            if quote is None:
                logger.warning("exit_skipped", instrument=name, reason="no_ticker")
                continue
            fill = await self.executor.close_position(
                exit_order, quote, managers[exit_order.leg], spot=spot,
            )
            if fill is not None:
                orders.append(_order_entry(exit_order.leg, name, f"{exit_order.reason}_exit", fill))

        # 7. Entries, one leg at a time, best candidate first
        for leg in LEGS:
            manager = managers[leg]
            decision = select_entries(
                scored[leg], historical.for_leg(leg), momentum.medium, momentum.short,
            )
            logger.info(
                "entry_decision",
                leg=leg,
                reason=decision.reason,
                qualified=len(decision.candidates),
                valid=len(scored[leg]),
                best_reference=round(historical.for_leg(leg), 6),
                capacity=round(manager.capacity, 2),
            )
            for candidate in decision.candidates:
                if not manager.can_trade():
                    logger.info("budget_exhausted", leg=leg, capacity=round(manager.capacity, 2))
                    break
                fill = await self.executor.open_position(
                    candidate,
                    manager,
                    reason=decision.reason,
                    spot=spot,
                    hard_cap=self.hard_caps[leg],
                )
                if fill is not None:
                    orders.append(_order_entry(leg, candidate.instrument_name, decision.reason, fill))

        # 8. Summary and housekeeping
        delay = next_delay(
            momentum.medium, momentum.short, s.URGENT_INTERVAL_SECONDS, s.NORMAL_INTERVAL_SECONDS,
        )
        summary = build_tick_summary(
            timestamp=now,
            price=spot,
            momentum=momentum,
            instruments_total=len(instruments),
            put_candidates=len(filtered[PUTS]),
            call_candidates=len(filtered[CALLS]),
            historical=historical,
            scored_puts=scored[PUTS],
            scored_calls=scored[CALLS],
            next_delay=delay,
            orders=orders,
            budgets={leg: _budget_entry(m) for leg, m in managers.items()},
            paper=self.executor.paper,
        )
        await self.store.append_tick_summary(summary, now)
        await self.store.prune_prices(now - s.PRICE_RETENTION_DAYS * DAY_SECONDS)
        logger.info(
            "tick_complete",
            orders=len(orders),
            best_put=summary["current_best_put"],
            best_call=summary["current_best_call"],
            next_delay=delay,
        )
        new_state = BotState(
            medium=momentum.medium,
            short=momentum.short,
            legs={leg: m.state for leg, m in managers.items()},
            last_tick_at=now,
        )
        return TickOutcome(state=new_state, delay=delay, summary=summary)


def _order_entry(leg: str, instrument: str, reason: Optional[str], fill) -> dict[str, Any]:
    return {
        "leg": leg,
        "instrument": instrument,
        "reason": reason,
        "filled": fill.filled_quantity,
        "avg_price": fill.avg_fill_price,
        "notional": fill.total_notional,
        "assumed": fill.assumed,
    }


def _budget_entry(manager: BudgetCycleManager) -> dict[str, Any]:
    return {
        "cycle_start": manager.state.cycle_start,
        "net_committed": manager.state.net_committed,
        "unspent_carry": manager.state.unspent_carry,
        "capacity": manager.capacity,
    }
