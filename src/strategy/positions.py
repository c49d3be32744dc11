"""Open exchange positions joined with their instrument metadata."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

import structlog

from src.utils.parsing import to_float

logger = structlog.get_logger()


@dataclass(slots=True)
class Position:
    instrument_name: str
    amount: float  # signed: long > 0, short < 0
    option_type: str  # "P" | "C"
    strike: float
    expiry: float

    @property
    def is_long(self) -> bool:
        return self.amount > 0

    @property
    def is_short(self) -> bool:
        return self.amount < 0


def positions_from_raw(raw_positions: Iterable[dict], instruments: dict[str, dict]) -> list[Position]:
    """Keep open option positions whose instrument is still listed."""
    positions: list[Position] = []
    for raw in raw_positions:
        name = raw.get("instrument_name")
        amount = to_float(raw.get("amount"))
        if not name or not amount:
            continue
        instrument = instruments.get(name)
        if instrument is None:
            logger.debug("position_unlisted", instrument=name)
            continue
        details = instrument.get("option_details") or {}
        strike = to_float(details.get("strike"))
        expiry = to_float(details.get("expiry"))
        if strike is None or expiry is None:
            continue
        positions.append(Position(
            instrument_name=name,
            amount=amount,
            option_type=details.get("option_type", ""),
            strike=strike,
            expiry=expiry,
        ))
    return positions
