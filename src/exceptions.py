"""Custom exceptions for the NOOP options hedger."""


class NoopError(Exception):
    """Base exception for all bot errors."""


class FeedError(NoopError):
    """Error connecting to or reading from a data source."""


class ExecutionError(NoopError):
    """Error building, authorizing or submitting an order."""


class OrderPlacementError(ExecutionError):
    """Order was rejected by the exchange or the request failed."""


class AuthorizationError(ExecutionError):
    """Order or request signature could not be produced."""


class PersistenceError(NoopError):
    """Database persistence failure."""


class ConfigError(NoopError):
    """Missing or invalid configuration."""
