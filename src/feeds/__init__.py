from .derive import DeriveClient
from .resilience import with_retry
from .spot import SpotPriceFeed

__all__ = [
    "DeriveClient",
    "SpotPriceFeed",
    "with_retry",
]
