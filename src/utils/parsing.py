"""Lenient conversion helpers for exchange and feed payloads."""

from __future__ import annotations

import json
import math
from typing import Any, Optional


def to_float(value: Any) -> Optional[float]:
    """Return ``value`` as a finite float, or None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def to_positive_float(value: Any) -> Optional[float]:
    result = to_float(value)
    return result if result is not None and result > 0 else None


def dig(payload: Any, *keys: str) -> Any:
    """Walk nested dicts, returning None as soon as a key is missing."""
    current = payload
    for key in keys:
        if not isinstance(current, dict):
            return None
        current = current.get(key)
    return current


def parse_json_dict(value: Any) -> dict[str, Any]:
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            decoded = json.loads(value)
            return decoded if isinstance(decoded, dict) else {}
        except json.JSONDecodeError:
            return {}
    return {}
