"""Shared data structures for order execution."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional


@dataclass(frozen=True, slots=True)
class OrderIntent:
    """Economic terms of one order; built fresh for every submission."""

    instrument_name: str
    direction: str  # "buy" | "sell"
    amount: Decimal
    limit_price: Decimal
    max_fee: Decimal
    subaccount_id: int
    nonce: int
    expiry: int  # signature expiry, unix seconds
    asset_address: str
    asset_sub_id: int
    signer: str
    reduce_only: bool = False

    @property
    def is_buy(self) -> bool:
        return self.direction == "buy"

    @property
    def mmp(self) -> bool:
        # market maker protection on sells
        return self.direction == "sell"

    def to_payload(self, signature: str) -> dict[str, Any]:
        return {
            "instrument_name": self.instrument_name,
            "subaccount_id": self.subaccount_id,
            "direction": self.direction,
            "limit_price": str(self.limit_price),
            "amount": str(self.amount),
            "signature_expiry_sec": self.expiry,
            "max_fee": str(self.max_fee),
            "mmp": self.mmp,
            "nonce": self.nonce,
            "signer": self.signer,
            "order_type": "limit",
            "reduce_only": self.reduce_only,
            "time_in_force": "ioc",
            "signature": signature,
        }


@dataclass(slots=True)
class FillResult:
    """Fill reconciled from the exchange's trade reports."""

    filled_quantity: float
    avg_fill_price: float
    total_notional: float
    assumed: bool = False  # no trade reports; full fill at the limit was assumed


@dataclass(slots=True)
class OrderResult:
    """Outcome of a single submission."""

    success: bool
    order_id: str = ""
    fill: Optional[FillResult] = None
    error: Optional[str] = None
    raw: dict[str, Any] = field(default_factory=dict)
