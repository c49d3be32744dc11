"""Utility modules for the bot.

Sub-modules:
- logging: configure_logging() for structlog setup
- parsing: float/dict helpers for exchange payloads (import directly from src.utils.parsing)
"""

from .logging import configure_logging

__all__ = ["configure_logging"]
