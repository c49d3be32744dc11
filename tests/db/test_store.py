"""StateStore against a throwaway SQLite file."""

import pytest

from src.budget.cycle import LegState
from config.settings import settings
from src.db.database import close_db_async, get_session
from src.db.models import TickSummary
from src.db.store import StateStore
from src.signals.models import DOWNWARD, PricePoint, MomentumState, ShortDerivative
from src.signals.momentum import MomentumAnalysis
from src.strategy.candidates import Candidate
from src.strategy.decision import historical_best_scores

NOW = 1_700_000_000.0


async def _store(tmp_path) -> StateStore:
    store = StateStore(f"sqlite+aiosqlite:///{tmp_path / 'state' / 'noop.db'}")
    await store.init()
    return store


@pytest.mark.asyncio
async def test_leg_state_round_trip(tmp_path):
    store = await _store(tmp_path)
    try:
        assert await store.load_leg_state("puts") is None
        state = LegState("puts", cycle_start=NOW, net_committed=55.5, unspent_carry=4.5)
        await store.save_leg_state(state)
        state.net_committed = 60.0
        await store.save_leg_state(state)
        assert await store.load_leg_state("puts") == state
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_load_leg_states_defaults_missing_legs(tmp_path):
    store = await _store(tmp_path)
    try:
        await store.save_leg_state(LegState("calls", cycle_start=NOW, net_committed=10.0))
        states = await store.load_leg_states(["puts", "calls"])
        assert states["puts"] == LegState("puts")
        assert states["calls"].net_committed == 10.0
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_recent_prices_window_and_order(tmp_path):
    store = await _store(tmp_path)
    try:
        for ts, price in [(NOW - 10, 3.0), (NOW - 1000, 1.0), (NOW - 100, 2.0)]:
            await store.append_price_point(PricePoint(price, ts))
        points = await store.load_recent_prices(500, now=NOW)
        assert [p.price for p in points] == [2.0, 3.0]
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_price_point_keeps_momentum(tmp_path):
    store = await _store(tmp_path)
    analysis = MomentumAnalysis(
        short=MomentumState(DOWNWARD, ShortDerivative("steep", frozenset({"7d_down"}))),
        seven_day_low=1900.0,
    )
    try:
        await store.append_price_point(PricePoint(1850.0, NOW), analysis)
        assert len(await store.load_recent_prices(60, now=NOW)) == 1
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_prune_prices(tmp_path):
    store = await _store(tmp_path)
    try:
        await store.append_price_point(PricePoint(1.0, NOW - 5000))
        await store.append_price_point(PricePoint(2.0, NOW))
        assert await store.prune_prices(NOW - 1000) == 1
        points = await store.load_recent_prices(10_000, now=NOW)
        assert [p.price for p in points] == [2.0]
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_tick_summaries_newest_first(tmp_path):
    store = await _store(tmp_path)
    try:
        for i in range(5):
            await store.append_tick_summary({"current_best_put": float(i)}, timestamp=NOW + i)
        summaries = await store.load_recent_tick_summaries(3)
        assert [s["current_best_put"] for s in summaries] == [4.0, 3.0, 2.0]
        assert summaries[0]["timestamp"] == NOW + 4
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_tick_summaries_since_keeps_old_best_behind_urgent_ticks(tmp_path):
    store = await _store(tmp_path)
    try:
        async with get_session(store.db_url) as s:
            s.add(TickSummary(timestamp=NOW - 2 * 86400, summary={"current_best_put": 1.0}))
            s.add(TickSummary(timestamp=NOW - 7 * 86400, summary={"current_best_put": 5.0}))
            s.add_all([
                TickSummary(timestamp=NOW - i * 45.0, summary={"current_best_put": 0.1})
                for i in range(2020)
            ])
        since = NOW - settings.RATCHET_WINDOW_DAYS * 86400
        summaries = await store.load_recent_tick_summaries(settings.RATCHET_SUMMARY_LIMIT, since=since)
        assert len(summaries) == 2021
        best = historical_best_scores(summaries, NOW, settings.RATCHET_WINDOW_DAYS)
        assert best.best_put == 1.0
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_record_order_ignores_unknown_fields(tmp_path):
    store = await _store(tmp_path)
    try:
        await store.record_order(
            leg="puts",
            action="buy_put",
            success=True,
            instrument_name="ETH-20250131-1500-P",
            filled_amount=1.0,
            raw_response={"result": {}},
            not_a_column="ignored",
        )
    finally:
        await close_db_async()


@pytest.mark.asyncio
async def test_options_snapshot(tmp_path):
    store = await _store(tmp_path)
    candidate = Candidate(
        instrument_name="ETH-20250131-1500-P",
        option_type="P",
        strike=1500.0,
        expiry=NOW + 86400,
        delta=-0.05,
        ask_price=10.0,
        ask_size=1.0,
        bid_price=9.0,
        bid_size=1.0,
        score=0.005,
    )
    try:
        assert await store.save_options_snapshot("puts", [candidate, candidate], NOW) == 2
        assert await store.save_options_snapshot("calls", [], NOW) == 0
    finally:
        await close_db_async()
