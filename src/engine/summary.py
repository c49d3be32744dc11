"""Per-tick summary written to the store for the dashboard and the ratchet."""

from __future__ import annotations

from typing import Any, Optional

from src.signals.momentum import MomentumAnalysis
from src.strategy.candidates import Candidate
from src.strategy.decision import HistoricalBest


def build_tick_summary(
    *,
    timestamp: float,
    price: Optional[float],
    momentum: MomentumAnalysis,
    instruments_total: int = 0,
    put_candidates: int = 0,
    call_candidates: int = 0,
    historical: Optional[HistoricalBest] = None,
    scored_puts: Optional[list[Candidate]] = None,
    scored_calls: Optional[list[Candidate]] = None,
    next_delay: float = 300.0,
    orders: Optional[list[dict[str, Any]]] = None,
    budgets: Optional[dict[str, dict[str, Any]]] = None,
    paper: bool = True,
) -> dict[str, Any]:
    historical = historical or HistoricalBest()
    scored_puts = scored_puts or []
    scored_calls = scored_calls or []
    best_put = scored_puts[0] if scored_puts else None
    best_call = scored_calls[0] if scored_calls else None
    return {
        "timestamp": timestamp,
        "price": price,
        "medium_momentum": momentum.medium.to_dict(),
        "short_momentum": momentum.short.to_dict(),
        "reference_levels": {
            "three_day_high": momentum.three_day_high,
            "three_day_low": momentum.three_day_low,
            "seven_day_high": momentum.seven_day_high,
            "seven_day_low": momentum.seven_day_low,
        },
        "instruments": {
            "total": instruments_total,
            "put_candidates": put_candidates,
            "call_candidates": call_candidates,
        },
        "historical": {
            "total_data_points": historical.total,
            "filtered_data_points": historical.filtered,
            "best_put_score": historical.best_put,
            "best_call_score": historical.best_call,
        },
        "strategy": {
            "put_valid": len(scored_puts),
            "call_valid": len(scored_calls),
        },
        "current_best_put": best_put.score if best_put else 0.0,
        "current_best_call": best_call.score if best_call else 0.0,
        "best_put_detail": best_put.detail(best_put.ask_price) if best_put else None,
        "best_call_detail": best_call.detail(best_call.bid_price) if best_call else None,
        "next_check_minutes": next_delay / 60.0,
        "orders": orders or [],
        "budgets": budgets or {},
        "paper": paper,
    }
