from src.budget.cycle import LegState
from src.engine.state import BotState
from src.engine.summary import build_tick_summary
from src.signals.models import DOWNWARD, MomentumState, ShortDerivative
from src.signals.momentum import MomentumAnalysis
from src.strategy.decision import HistoricalBest


def test_bot_state_dict_round_trip():
    state = BotState(
        medium=MomentumState(DOWNWARD, "decelerating"),
        short=MomentumState(DOWNWARD, ShortDerivative("steep", frozenset({"1h_down"}))),
        legs={"puts": LegState("puts", cycle_start=1.0, net_committed=2.0, unspent_carry=3.0)},
        last_tick_at=10.0,
    )
    assert BotState.from_dict(state.to_dict()) == state


def test_bot_state_from_empty_dict_is_neutral():
    state = BotState.from_dict({})
    assert state.medium.main == "neutral"
    assert state.legs == {}


def test_summary_without_candidates():
    summary = build_tick_summary(
        timestamp=5.0,
        price=2000.0,
        momentum=MomentumAnalysis(seven_day_high=2100.0),
        historical=HistoricalBest(best_put=0.3, total=4, filtered=2),
        next_delay=45.0,
    )
    assert summary["current_best_put"] == 0.0
    assert summary["best_put_detail"] is None
    assert summary["historical"]["best_put_score"] == 0.3
    assert summary["historical"]["total_data_points"] == 4
    assert summary["next_check_minutes"] == 0.75
    assert summary["reference_levels"]["seven_day_high"] == 2100.0
    assert summary["medium_momentum"] == {"main": "neutral", "derivative": None}
