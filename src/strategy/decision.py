"""Regime triggers and per-leg entry/exit selection.

Everything here is a pure function of the current momentum, the scored
candidates and the stored tick summaries, so decisions are recomputed from
scratch on every tick.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

import structlog

from src.signals.models import DOWNWARD, FLAT, STEEP, UPWARD, MomentumState
from src.strategy.candidates import CALLS, PUTS, Candidate, days_to_expiry
from src.strategy.positions import Position
from src.utils.parsing import to_float

logger = structlog.get_logger()

DAY_SECONDS = 86400.0

STANDARD = "standard"
CONFIDENT = "confident"

STANDARD_ENTRY_SPIKES = ("1h_down", "1d_down", "3d_down")


# ------------------------------------------------------------------
# Triggers
# ------------------------------------------------------------------

def is_confident_entry(medium: MomentumState, short: MomentumState) -> bool:
    return medium.main == DOWNWARD and short.main == DOWNWARD and short.has_spike("7d_down")


def is_standard_entry(medium: MomentumState, short: MomentumState) -> bool:
    steep_breakdown = (
        short.main == DOWNWARD
        and short.shape == STEEP
        and any(short.has_spike(tag) for tag in STANDARD_ENTRY_SPIKES)
    )
    quiet = medium.main != UPWARD and (short.main != UPWARD or short.shape == FLAT)
    return steep_breakdown or quiet


def is_entry(medium: MomentumState, short: MomentumState) -> bool:
    return is_confident_entry(medium, short) or is_standard_entry(medium, short)


def is_confident_exit(medium: MomentumState, short: MomentumState) -> bool:
    return medium.main == UPWARD and short.main == UPWARD and short.has_spike("7d_up")


def is_standard_call_exit(medium: MomentumState) -> bool:
    return medium.main == UPWARD


# ------------------------------------------------------------------
# Ratchet
# ------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class HistoricalBest:
    best_put: float = 0.0
    best_call: float = 0.0
    total: int = 0
    filtered: int = 0

    def for_leg(self, leg: str) -> float:
        return self.best_put if leg == PUTS else self.best_call


def historical_best_scores(
    summaries: Iterable[dict[str, Any]],
    now: float,
    window_days: float = 6.2,
) -> HistoricalBest:
    """Best put/call scores seen in the window on ticks that allowed an entry.

    Summaries that carry no momentum at all are counted as entry ticks.
    """
    cutoff = now - window_days * DAY_SECONDS
    best_put = best_call = 0.0
    total = filtered = 0
    for summary in summaries:
        ts = to_float(summary.get("timestamp"))
        if ts is None or ts <= cutoff:
            continue
        total += 1
        medium_raw = summary.get("medium_momentum")
        short_raw = summary.get("short_momentum")
        if medium_raw or short_raw:
            medium = MomentumState.from_raw(medium_raw)
            short = MomentumState.from_raw(short_raw)
            if not is_entry(medium, short):
                continue
        filtered += 1
        best_put = max(best_put, to_float(summary.get("current_best_put")) or 0.0)
        best_call = max(best_call, to_float(summary.get("current_best_call")) or 0.0)
    return HistoricalBest(best_put=best_put, best_call=best_call, total=total, filtered=filtered)


# ------------------------------------------------------------------
# Entries and exits
# ------------------------------------------------------------------

@dataclass(slots=True)
class EntryDecision:
    reason: Optional[str] = None  # "standard" | "confident" | None
    candidates: list[Candidate] = field(default_factory=list)


def select_entries(
    scored: list[Candidate],
    best_score: float,
    medium: MomentumState,
    short: MomentumState,
) -> EntryDecision:
    """Candidates to open this tick, best first.

    The confident regime takes every valid candidate. The standard regime
    only takes candidates strictly better than the ratchet reference.
    """
    if is_confident_entry(medium, short):
        return EntryDecision(reason=CONFIDENT, candidates=list(scored))
    if is_standard_entry(medium, short):
        return EntryDecision(
            reason=STANDARD,
            candidates=[c for c in scored if c.score is not None and c.score > best_score],
        )
    return EntryDecision()


@dataclass(slots=True)
class ExitOrder:
    position: Position
    leg: str
    direction: str  # "buy" | "sell"
    reason: str


def select_exits(
    positions: Iterable[Position],
    medium: MomentumState,
    short: MomentumState,
    now: float,
    call_exit_max_dte: int = 7,
) -> list[ExitOrder]:
    exits: list[ExitOrder] = []
    if is_confident_exit(medium, short):
        # closes everything, expiry does not matter
        for position in positions:
            if position.option_type == "P" and position.is_long:
                exits.append(ExitOrder(position, PUTS, "sell", CONFIDENT))
            elif position.option_type == "C" and position.is_short:
                exits.append(ExitOrder(position, CALLS, "buy", CONFIDENT))
        return exits
    if is_standard_call_exit(medium):
        for position in positions:
            if (
                position.option_type == "C"
                and position.is_short
                and days_to_expiry(position.expiry, now) <= call_exit_max_dte
            ):
                exits.append(ExitOrder(position, CALLS, "buy", STANDARD))
    return exits


def next_delay(
    medium: MomentumState,
    short: MomentumState,
    urgent: float = 45.0,
    normal: float = 300.0,
) -> float:
    if DOWNWARD in (medium.main, short.main):
        return urgent
    return normal
