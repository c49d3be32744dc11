"""Credential and configuration validators."""

from eth_utils import is_address

from src.exceptions import ConfigError


def validate_derive_credentials() -> None:
    """Raise ConfigError if live order signing is not possible."""
    from config.settings import settings
    key = settings.DERIVE_PRIVATE_KEY.removeprefix("0x")
    if not key:
        raise ConfigError("DERIVE_PRIVATE_KEY is required for live trading")
    if len(key) != 64:
        raise ConfigError("DERIVE_PRIVATE_KEY must be a 32-byte hex string")
    try:
        bytes.fromhex(key)
    except ValueError as exc:
        raise ConfigError("DERIVE_PRIVATE_KEY is not valid hex") from exc


def validate_contract_addresses() -> None:
    """Raise ConfigError if a configured contract or account address is malformed."""
    from config.settings import settings
    for name in ("DERIVE_ACCOUNT_ADDRESS", "DERIVE_TRADE_MODULE_ADDRESS"):
        if not is_address(getattr(settings, name)):
            raise ConfigError(f"{name} is not a valid address")
    for name in ("DERIVE_ACTION_TYPEHASH", "DERIVE_DOMAIN_SEPARATOR"):
        value = getattr(settings, name).removeprefix("0x")
        if len(value) != 64:
            raise ConfigError(f"{name} must be 32 bytes")
