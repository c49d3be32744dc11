from unittest.mock import AsyncMock

import pytest

from src.budget.cycle import BudgetCycleManager, LegState, quantize_down

NOW = 1_700_000_000.0
DAY = 86400.0


def _manager(net=0.0, carry=0.0, start=NOW, base=100.0, store=None):
    state = LegState("puts", cycle_start=start, net_committed=net, unspent_carry=carry)
    return BudgetCycleManager(state, base_limit=base, period_days=10, min_trade_usd=10, store=store)


def test_capacity():
    assert _manager(net=30.0, carry=5.0).capacity == pytest.approx(75.0)


def test_can_trade_requires_more_than_minimum():
    assert _manager(net=89.0).can_trade()
    assert not _manager(net=90.0).can_trade()


@pytest.mark.asyncio
async def test_ensure_started_sets_cycle_once():
    store = AsyncMock()
    manager = _manager(start=None, store=store)
    assert await manager.ensure_started(NOW) is True
    assert manager.state.cycle_start == NOW
    assert await manager.ensure_started(NOW + 60) is False
    store.save_leg_state.assert_awaited_once_with(manager.state)


@pytest.mark.asyncio
async def test_roll_carries_unspent_capacity():
    store = AsyncMock()
    manager = _manager(net=80.0, store=store)
    later = NOW + 10 * DAY
    assert await manager.roll_if_due(later) is True
    assert manager.state.unspent_carry == pytest.approx(20.0)
    assert manager.state.net_committed == 0.0
    assert manager.state.cycle_start == later
    assert manager.capacity == pytest.approx(120.0)
    store.save_leg_state.assert_awaited_once()


@pytest.mark.asyncio
async def test_roll_never_carries_negative_capacity():
    manager = _manager(net=130.0)
    await manager.roll_if_due(NOW + 11 * DAY)
    assert manager.state.unspent_carry == 0.0
    assert manager.capacity == pytest.approx(100.0)


@pytest.mark.asyncio
async def test_no_roll_before_period_ends():
    manager = _manager(net=80.0)
    assert await manager.roll_if_due(NOW + 9.9 * DAY) is False
    assert manager.state.net_committed == 80.0


def test_quantize_down():
    assert quantize_down(0.017, 0.01) == pytest.approx(0.01)
    assert quantize_down(0.004, 0.01) == 0.0
    assert quantize_down(3.0, 0.1) == pytest.approx(3.0)
    assert quantize_down(-1.0, 0.01) == 0.0
    assert quantize_down(1.0, 0.0) == 0.0


def test_size_order_respects_every_limit():
    manager = _manager(base=1200.0)
    assert manager.size_order(10.0, 5.0, 0.01) == pytest.approx(5.0)
    assert manager.size_order(10.0, 500.0, 0.01) == pytest.approx(120.0)
    assert manager.size_order(10.0, 500.0, 0.01, hard_cap=20.0) == pytest.approx(20.0)


def test_size_order_never_exceeds_capacity():
    manager = _manager(net=1000.0, base=1200.0)
    quantity = manager.size_order(7.3, 1000.0, 0.01)
    assert quantity > 0
    assert quantity * 7.3 <= manager.capacity


def test_size_order_skips_dust():
    manager = _manager(base=1200.0)
    assert manager.size_order(10.0, 0.004, 0.01) == 0.0


def test_size_order_skips_when_capacity_exhausted():
    manager = _manager(net=95.0)
    assert manager.size_order(1.0, 100.0, 0.01) == 0.0


@pytest.mark.asyncio
async def test_fills_are_conserved():
    store = AsyncMock()
    manager = _manager(base=1200.0, store=store)
    fills = [50.0, 60.0, -20.0, 12.5]
    for notional in fills:
        await manager.apply_fill(notional)
    assert manager.state.net_committed == pytest.approx(sum(fills))
    assert manager.capacity == pytest.approx(1200.0 - sum(fills))
    assert store.save_leg_state.await_count == len(fills)


def test_leg_state_dict_round_trip():
    state = LegState("calls", cycle_start=NOW, net_committed=12.0, unspent_carry=3.0)
    assert LegState.from_dict(state.to_dict()) == state
