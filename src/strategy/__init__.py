from .candidates import Candidate, LegFilter, filter_instruments, score_candidates
from .decision import EntryDecision, ExitOrder, select_entries, select_exits

__all__ = [
    "Candidate",
    "EntryDecision",
    "ExitOrder",
    "LegFilter",
    "filter_instruments",
    "score_candidates",
    "select_entries",
    "select_exits",
]
