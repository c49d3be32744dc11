"""Centralized structlog configuration for the bot and its scripts."""

import structlog

_configured = False


def configure_logging(*, json_output: bool = False) -> None:
    """Configure structlog with the project-standard processor chain.

    ``json_output`` swaps the console renderer for JSON lines, which is what
    the supervised deployment ships to its log collector.

    Safe to call multiple times; only the first call takes effect.
    """
    global _configured
    if _configured:
        return
    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ]
    )
    _configured = True
