from .models import (
    ACCELERATING,
    DECELERATING,
    DOWNWARD,
    NEUTRAL,
    UPWARD,
    MomentumState,
    PricePoint,
    ShortDerivative,
)
from .momentum import MomentumAnalysis, analyze_momentum

__all__ = [
    "ACCELERATING",
    "DECELERATING",
    "DOWNWARD",
    "NEUTRAL",
    "UPWARD",
    "MomentumAnalysis",
    "MomentumState",
    "PricePoint",
    "ShortDerivative",
    "analyze_momentum",
]
