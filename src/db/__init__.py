"""Database module for the options hedger."""

from .models import Base, LegStateRow, OptionSnapshot, OrderRecord, SpotPrice, TickSummary
from .database import get_session, init_db_async, close_db_async
from .store import StateStore

__all__ = [
    "Base",
    "LegStateRow",
    "OptionSnapshot",
    "OrderRecord",
    "SpotPrice",
    "TickSummary",
    "StateStore",
    "get_session",
    "init_db_async",
    "close_db_async",
]
