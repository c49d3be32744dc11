import math

import pytest

from src.strategy.candidates import (
    CALLS,
    PUTS,
    Candidate,
    LegFilter,
    amount_step_of,
    candidate_from_ticker,
    days_to_expiry,
    filter_instruments,
    score_candidate,
    score_candidates,
)

NOW = 1_700_000_000.0
DAY = 86400.0
SPOT = 2000.0


def _instrument(name, option_type, strike, dte, **extra):
    data = {
        "instrument_name": name,
        "instrument_type": "option",
        "base_asset_address": "0xAddr",
        "base_asset_sub_id": "12345",
        "option_details": {
            "option_type": option_type,
            "strike": str(strike),
            "expiry": NOW + dte * DAY - 60,
        },
    }
    data.update(extra)
    return data


def _candidate(delta, ask=None, ask_size=1.0, bid=None, bid_size=1.0, name="ETH-X"):
    return Candidate(
        instrument_name=name,
        option_type="P" if delta < 0 else "C",
        strike=1500.0,
        expiry=NOW + 60 * DAY,
        delta=delta,
        ask_price=ask,
        ask_size=ask_size,
        bid_price=bid,
        bid_size=bid_size,
    )


@pytest.fixture
def puts():
    return LegFilter.from_settings(PUTS)


@pytest.fixture
def calls():
    return LegFilter.from_settings(CALLS)


def test_days_to_expiry_rounds_up():
    assert days_to_expiry(NOW + 1, NOW) == 1
    assert days_to_expiry(NOW + 2 * DAY, NOW) == 2


def test_put_filter_dte_and_strike_band(puts):
    instruments = [
        _instrument("ETH-A-1500-P", "P", 1500, 60),
        _instrument("ETH-B-1500-P", "P", 1500, 30),  # too short
        _instrument("ETH-C-1100-P", "P", 1100, 60),  # below 60% of spot
        _instrument("ETH-D-2100-P", "P", 2100, 60),  # above spot
        _instrument("ETH-E-1500-C", "C", 1500, 60),  # wrong type
    ]
    kept = filter_instruments(instruments, SPOT, NOW, puts)
    assert [i["instrument_name"] for i in kept] == ["ETH-A-1500-P"]


def test_call_filter_requires_strike_above_spot(calls):
    instruments = [
        _instrument("ETH-A-2200-C", "C", 2200, 7),
        _instrument("ETH-B-1900-C", "C", 1900, 7),
        _instrument("ETH-C-2200-C", "C", 2200, 12),
    ]
    kept = filter_instruments(instruments, SPOT, NOW, calls)
    assert [i["instrument_name"] for i in kept] == ["ETH-A-2200-C"]


def test_filter_without_spot_skips_strike_check(puts):
    kept = filter_instruments([_instrument("ETH-C-100-P", "P", 100, 60)], None, NOW, puts)
    assert len(kept) == 1


def test_non_option_instruments_are_rejected(puts):
    perp = _instrument("ETH-PERP", "P", 1500, 60, instrument_type="perp")
    assert filter_instruments([perp], SPOT, NOW, puts) == []


def test_nameless_instruments_are_rejected(puts):
    nameless = _instrument("", "P", 1500, 60)
    del nameless["instrument_name"]
    assert filter_instruments([nameless, _instrument(None, "P", 1500, 60)], SPOT, NOW, puts) == []


def test_amount_step_prefers_options_block():
    assert amount_step_of({"options": {"amount_step": "0.1"}}) == 0.1
    assert amount_step_of({"amount_step": "0.5"}) == 0.5
    assert amount_step_of({}, default=0.01) == 0.01


def test_candidate_from_ticker_merges_fields():
    instrument = _instrument("ETH-A-1500-P", "P", 1500, 60, amount_step="0.1")
    ticker = {
        "a": "12.5", "A": "4", "b": "11", "B": "3",
        "M": "12", "I": "2001",
        "option_pricing": {"d": "-0.07", "i": "0.65"},
        "stats": {"oi": "100"},
    }
    candidate = candidate_from_ticker(instrument, ticker, SPOT)
    assert candidate.delta == pytest.approx(-0.07)
    assert candidate.ask_price == 12.5
    assert candidate.bid_size == 3.0
    assert candidate.amount_step == 0.1
    assert candidate.base_asset_sub_id == 12345
    assert candidate.index_price == 2001.0
    assert candidate.expiry_date == "A"


def test_candidate_from_ticker_requires_ticker_and_delta():
    instrument = _instrument("ETH-A-1500-P", "P", 1500, 60)
    assert candidate_from_ticker(instrument, None, SPOT) is None
    assert candidate_from_ticker(instrument, {"a": "1"}, SPOT) is None


def test_candidate_from_ticker_requires_sub_id():
    instrument = _instrument("ETH-A-1500-P", "P", 1500, 60, base_asset_sub_id=None)
    ticker = {"option_pricing": {"d": "-0.05"}}
    assert candidate_from_ticker(instrument, ticker, SPOT) is None


def test_put_score_is_delta_per_dollar():
    assert score_candidate(_candidate(-0.05, ask=10.0), PUTS) == pytest.approx(0.005)


def test_call_score_is_premium_per_delta():
    assert score_candidate(_candidate(0.08, bid=20.0), CALLS) == pytest.approx(250.0)


@pytest.mark.parametrize(
    "candidate",
    [
        _candidate(-0.05, ask=0.0),
        _candidate(-0.05, ask=None),
        _candidate(-0.05, ask=5.0, ask_size=0.0),
        _candidate(-0.05, ask=math.inf),
        _candidate(0.0, ask=5.0),
        _candidate(math.nan, ask=5.0),
    ],
)
def test_unscorable_puts_are_rejected(candidate):
    assert score_candidate(candidate, PUTS) is None


def test_score_candidates_sorts_and_drops(puts):
    candidates = [
        _candidate(-0.05, ask=10.0, name="mid"),
        _candidate(-0.10, ask=10.0, name="best"),
        _candidate(-0.30, ask=1.0, name="outside-band"),
        _candidate(-0.05, ask=0.0, name="no-ask"),
        _candidate(-0.02, ask=10.0, name="edge"),
    ]
    scored = score_candidates(candidates, puts)
    assert [c.instrument_name for c in scored] == ["best", "mid", "edge"]
    assert all(c.score > 0 for c in scored)


def test_unknown_leg_is_rejected():
    with pytest.raises(ValueError):
        LegFilter.from_settings("straddles")
