"""Option universe filtering, ticker enrichment and per-leg scoring.

Puts are bought, so they are valued on the ask: ``|delta| / ask`` is the
downside delta bought per dollar. Calls are sold, so they are valued on the
bid: ``bid / |delta|`` is the premium collected per unit of delta sold.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import Any, Iterable, Optional

import structlog

from src.utils.parsing import dig, to_float, to_positive_float

logger = structlog.get_logger()

DAY_SECONDS = 86400.0

PUTS = "puts"
CALLS = "calls"
LEGS = (PUTS, CALLS)
OPTION_TYPE_FOR_LEG = {PUTS: "P", CALLS: "C"}


def days_to_expiry(expiry: float, now: float) -> int:
    """Whole days left, rounded up."""
    return math.ceil((expiry - now) / DAY_SECONDS)


def expiry_date_of(instrument_name: str) -> Optional[str]:
    """``ETH-20250131-3000-P`` -> ``20250131``."""
    parts = instrument_name.split("-")
    return parts[1] if len(parts) > 1 else None


@dataclass(slots=True)
class Candidate:
    instrument_name: str
    option_type: str  # "P" | "C"
    strike: float
    expiry: float
    delta: float
    ask_price: Optional[float]
    ask_size: Optional[float]
    bid_price: Optional[float]
    bid_size: Optional[float]
    mark_price: Optional[float] = None
    index_price: Optional[float] = None
    amount_step: float = 0.01
    base_asset_address: str = ""
    base_asset_sub_id: int = 0
    open_interest: Optional[float] = None
    implied_vol: Optional[float] = None
    score: Optional[float] = None

    @property
    def expiry_date(self) -> Optional[str]:
        return expiry_date_of(self.instrument_name)

    def detail(self, price: Optional[float]) -> dict[str, Any]:
        return {
            "instrument": self.instrument_name,
            "delta": self.delta,
            "price": price,
            "strike": self.strike,
            "expiry": self.expiry,
        }


@dataclass(frozen=True, slots=True)
class LegFilter:
    leg: str
    option_type: str
    min_dte: int
    max_dte: int
    min_delta: float
    max_delta: float
    strike_floor_ratio: Optional[float] = None  # strike > ratio * spot
    strike_ceiling_ratio: Optional[float] = None  # strike < ratio * spot

    @classmethod
    def from_settings(cls, leg: str, settings=None) -> LegFilter:
        if settings is None:
            from config.settings import settings
        if leg == PUTS:
            return cls(
                leg=PUTS,
                option_type="P",
                min_dte=settings.PUT_MIN_DTE,
                max_dte=settings.PUT_MAX_DTE,
                min_delta=settings.PUT_MIN_DELTA,
                max_delta=settings.PUT_MAX_DELTA,
                strike_floor_ratio=settings.PUT_MIN_STRIKE_RATIO,
                strike_ceiling_ratio=1.0,
            )
        if leg == CALLS:
            return cls(
                leg=CALLS,
                option_type="C",
                min_dte=settings.CALL_MIN_DTE,
                max_dte=settings.CALL_MAX_DTE,
                min_delta=settings.CALL_MIN_DELTA,
                max_delta=settings.CALL_MAX_DELTA,
                strike_floor_ratio=settings.CALL_MIN_STRIKE_RATIO,
            )
        raise ValueError(f"unknown leg: {leg}")

    def accepts_instrument(self, instrument: dict, spot: Optional[float], now: float) -> bool:
        details = instrument.get("option_details") or {}
        if not instrument.get("instrument_name"):
            return False
        if instrument.get("instrument_type", "option") != "option":
            return False
        if details.get("option_type") != self.option_type:
            return False
        expiry = to_float(details.get("expiry"))
        strike = to_float(details.get("strike"))
        if expiry is None or strike is None:
            return False
        if not self.min_dte <= days_to_expiry(expiry, now) <= self.max_dte:
            return False
        # without a spot price the strike relation cannot be evaluated
        if spot:
            if self.strike_floor_ratio is not None and not strike > self.strike_floor_ratio * spot:
                return False
            if self.strike_ceiling_ratio is not None and not strike < self.strike_ceiling_ratio * spot:
                return False
        return True

    def accepts_delta(self, delta: float) -> bool:
        return self.min_delta <= delta <= self.max_delta


def filter_instruments(
    instruments: Iterable[dict],
    spot: Optional[float],
    now: float,
    leg_filter: LegFilter,
) -> list[dict]:
    return [i for i in instruments if leg_filter.accepts_instrument(i, spot, now)]


def amount_step_of(instrument: dict, default: float = 0.01) -> float:
    return (
        to_positive_float(dig(instrument, "options", "amount_step"))
        or to_positive_float(instrument.get("amount_step"))
        or default
    )


def candidate_from_ticker(
    instrument: dict,
    ticker: Optional[dict],
    spot: Optional[float],
    default_step: float = 0.01,
) -> Optional[Candidate]:
    """Merge static instrument data with its live ticker.

    Returns None when the ticker is missing or the instrument lacks the
    fields needed to price and sign an order.
    """
    if not ticker:
        return None
    details = instrument.get("option_details") or {}
    name = instrument.get("instrument_name")
    delta = to_float(dig(ticker, "option_pricing", "d"))
    strike = to_float(details.get("strike"))
    expiry = to_float(details.get("expiry"))
    if not name or delta is None or strike is None or expiry is None:
        return None
    try:
        sub_id = int(instrument.get("base_asset_sub_id"))
    except (TypeError, ValueError):
        return None
    return Candidate(
        instrument_name=name,
        option_type=details.get("option_type", ""),
        strike=strike,
        expiry=expiry,
        delta=delta,
        ask_price=to_float(ticker.get("a")),
        ask_size=to_float(ticker.get("A")),
        bid_price=to_float(ticker.get("b")),
        bid_size=to_float(ticker.get("B")),
        mark_price=to_positive_float(ticker.get("M")),
        index_price=to_positive_float(ticker.get("I")) or spot,
        amount_step=amount_step_of(instrument, default_step),
        base_asset_address=instrument.get("base_asset_address") or "",
        base_asset_sub_id=sub_id,
        open_interest=to_positive_float(dig(ticker, "stats", "oi")),
        implied_vol=to_positive_float(dig(ticker, "option_pricing", "i")),
    )


def _positive(value: Optional[float]) -> bool:
    return value is not None and math.isfinite(value) and value > 0


def score_candidate(candidate: Candidate, leg: str) -> Optional[float]:
    if not math.isfinite(candidate.delta) or candidate.delta == 0:
        return None
    if leg == PUTS:
        if not (_positive(candidate.ask_price) and _positive(candidate.ask_size)):
            return None
        score = abs(candidate.delta) / candidate.ask_price
    else:
        if not (_positive(candidate.bid_price) and _positive(candidate.bid_size)):
            return None
        score = candidate.bid_price / abs(candidate.delta)
    return score if math.isfinite(score) and score > 0 else None


def score_candidates(candidates: Iterable[Candidate], leg_filter: LegFilter) -> list[Candidate]:
    """Delta-band filter and score, best first. Unscorable candidates are dropped."""
    scored: list[Candidate] = []
    for candidate in candidates:
        if not leg_filter.accepts_delta(candidate.delta):
            continue
        score = score_candidate(candidate, leg_filter.leg)
        if score is None:
            logger.debug("candidate_dropped", leg=leg_filter.leg, instrument=candidate.instrument_name)
            continue
        scored.append(replace(candidate, score=score))
    scored.sort(key=lambda c: c.score, reverse=True)
    return scored
