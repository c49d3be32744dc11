"""Order authorization for the Derive trade module.

An order is authorized by signing a typed-data digest:

    trade_data  = keccak(abi(asset, sub_id, price, amount, max_fee, subaccount, is_buy))
    action_hash = keccak(abi(ACTION_TYPEHASH, subaccount, nonce, TRADE_MODULE,
                             trade_data, expiry, ACCOUNT, signer))
    digest      = keccak(0x1901 || DOMAIN_SEPARATOR || action_hash)

Prices, amounts and fees are fixed-point with 18 decimals. API requests are
authenticated separately with a personal signature over the timestamp.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import Optional

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import keccak, to_checksum_address

from src.exceptions import AuthorizationError
from src.execution.models import OrderIntent

DECIMALS = 18

TRADE_DATA_TYPES = ["address", "uint256", "int256", "int256", "uint256", "uint256", "bool"]
ACTION_TYPES = [
    "bytes32", "uint256", "uint256", "address", "bytes32", "uint256", "address", "address",
]


def to_fixed(value: Decimal) -> int:
    """Exact 18-decimal fixed-point integer; refuses to round."""
    scaled = Decimal(value).scaleb(DECIMALS)
    if scaled != scaled.to_integral_value():
        raise AuthorizationError(f"{value} has more than {DECIMALS} decimals")
    return int(scaled)


def _bytes32(hex_value: str) -> bytes:
    raw = bytes.fromhex(hex_value.removeprefix("0x"))
    if len(raw) != 32:
        raise AuthorizationError(f"expected 32 bytes, got {len(raw)}")
    return raw


class OrderAuthorizer:
    def __init__(
        self,
        private_key: str | bytes,
        *,
        account_address: str,
        trade_module_address: str,
        action_typehash: str,
        domain_separator: str,
    ) -> None:
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError, KeyValidationError) as exc:
            raise AuthorizationError("invalid signing key") from exc
        self.account_address = to_checksum_address(account_address)
        self.trade_module_address = to_checksum_address(trade_module_address)
        self._action_typehash = _bytes32(action_typehash)
        self._domain_separator = _bytes32(domain_separator)

    @classmethod
    def from_settings(cls, settings=None, private_key: Optional[str | bytes] = None) -> OrderAuthorizer:
        if settings is None:
            from config.settings import settings
        return cls(
            private_key or settings.DERIVE_PRIVATE_KEY,
            account_address=settings.DERIVE_ACCOUNT_ADDRESS,
            trade_module_address=settings.DERIVE_TRADE_MODULE_ADDRESS,
            action_typehash=settings.DERIVE_ACTION_TYPEHASH,
            domain_separator=settings.DERIVE_DOMAIN_SEPARATOR,
        )

    @classmethod
    def ephemeral(cls, settings=None) -> OrderAuthorizer:
        """Throwaway key for paper trading without credentials."""
        return cls.from_settings(settings, private_key=bytes(Account.create().key))

    @property
    def signer(self) -> str:
        return self._account.address

    # ------------------------------------------------------------------
    # Order signature
    # ------------------------------------------------------------------

    def trade_data_hash(self, intent: OrderIntent) -> bytes:
        encoded = encode(
            TRADE_DATA_TYPES,
            [
                to_checksum_address(intent.asset_address),
                intent.asset_sub_id,
                to_fixed(intent.limit_price),
                to_fixed(intent.amount),
                to_fixed(intent.max_fee),
                intent.subaccount_id,
                intent.is_buy,
            ],
        )
        return keccak(encoded)

    def action_hash(self, intent: OrderIntent) -> bytes:
        encoded = encode(
            ACTION_TYPES,
            [
                self._action_typehash,
                intent.subaccount_id,
                intent.nonce,
                self.trade_module_address,
                self.trade_data_hash(intent),
                intent.expiry,
                self.account_address,
                to_checksum_address(intent.signer),
            ],
        )
        return keccak(encoded)

    def digest(self, intent: OrderIntent) -> bytes:
        return keccak(b"\x19\x01" + self._domain_separator + self.action_hash(intent))

    def sign_order(self, intent: OrderIntent) -> str:
        """65-byte ``r || s || v`` signature as 0x-prefixed hex."""
        try:
            signed = self._account.unsafe_sign_hash(self.digest(intent))
        except (ValueError, TypeError, OverflowError, EncodingError) as exc:
            raise AuthorizationError(f"cannot sign {intent.instrument_name}: {exc}") from exc
        return "0x" + bytes(signed.signature).hex()

    # ------------------------------------------------------------------
    # Request authentication
    # ------------------------------------------------------------------

    def request_headers(self, timestamp_ms: Optional[int] = None) -> dict[str, str]:
        if timestamp_ms is None:
            timestamp_ms = int(time.time() * 1000)
        signed = self._account.sign_message(encode_defunct(text=str(timestamp_ms)))
        return {
            "X-LyraWallet": self.account_address,
            "X-LyraTimestamp": str(timestamp_ms),
            "X-LyraSignature": "0x" + bytes(signed.signature).hex(),
        }
