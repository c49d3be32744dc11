from .scheduler import RunResult, Scheduler, Watchdog, run_until_fatal
from .state import BotState
from .tick import TickOutcome, TickRunner

__all__ = [
    "BotState",
    "RunResult",
    "Scheduler",
    "TickOutcome",
    "TickRunner",
    "Watchdog",
    "run_until_fatal",
]
