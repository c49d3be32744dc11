from src.execution.models import (
    OrderIntent,
    FillResult,
    OrderResult,
)
from src.execution.authorizer import OrderAuthorizer
from src.execution.executor import OrderExecutor, reduce_fills

__all__ = [
    "OrderIntent",
    "FillResult",
    "OrderResult",
    "OrderAuthorizer",
    "OrderExecutor",
    "reduce_fills",
]
