"""Runtime configuration for the NOOP options hedger."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # === Derive exchange ===
    DERIVE_API_BASE: str = "https://api.lyra.finance"
    DERIVE_CURRENCY: str = "ETH"
    DERIVE_SUBACCOUNT_ID: int = 25923
    DERIVE_ACCOUNT_ADDRESS: str = "0xD87890df93bf74173b51077e5c6cD12121d87903"
    DERIVE_TRADE_MODULE_ADDRESS: str = "0xB8D20c2B7a1Ad2EE33Bc50eF10876eD3035b5e7b"
    DERIVE_ACTION_TYPEHASH: str = (
        "0x4d7a9f27c403ff9c0f19bce61d76d82f9aa29f8d6d4b0c5474607d9770d1af17"
    )
    DERIVE_DOMAIN_SEPARATOR: str = (
        "0xd96e5f90797da7ec8dc4e276260c7f3f87fedf68775fbe1ef116e996fc60441b"
    )
    DERIVE_PRIVATE_KEY: str = ""
    DERIVE_HTTP_TIMEOUT: float = 20.0
    ORDER_SIGNATURE_TTL_SECONDS: int = 600
    FEE_CAP_PCT: float = 0.08  # max fee as share of notional
    DEFAULT_AMOUNT_STEP: float = 0.01

    # === Spot price feed ===
    SPOT_PRICE_URL: str = "https://api.coingecko.com/api/v3/simple/price"
    SPOT_ASSET_ID: str = "ethereum"
    SPOT_QUOTE: str = "usd"

    # === Medium-term momentum ===
    MEDIUM_BAR_MINUTES: int = 10
    MEDIUM_ADX_PERIOD: int = 50
    MEDIUM_ADX_MIN: float = 15.0
    MEDIUM_MACD_FAST: int = 16
    MEDIUM_MACD_SLOW: int = 34
    MEDIUM_MACD_SIGNAL: int = 13
    MEDIUM_MIN_BARS: int = 60

    # === Short-term momentum ===
    SHORT_WINDOW_MINUTES: int = 15
    SHORT_NEUTRAL_BAND_PCT: float = 0.1
    SHORT_SHAPE_FLAT_PCT: float = 0.2
    SHORT_SHAPE_MOVING_PCT: float = 0.8
    SHORT_SHAPE_SLANTED_PCT: float = 1.6
    SPIKE_TOLERANCE: float = 0.001  # 0.1%
    SPIKE_7D_UP_TOLERANCE: float = 0.01  # 1%

    # === Puts leg (buy protection) ===
    PUT_BASE_LIMIT_USD: float = 1200.0
    PUT_MIN_DTE: int = 50
    PUT_MAX_DTE: int = 90
    PUT_MIN_DELTA: float = -0.12
    PUT_MAX_DELTA: float = -0.02
    PUT_MIN_STRIKE_RATIO: float = 0.60

    # === Calls leg (sell premium) ===
    CALL_BASE_LIMIT_USD: float = 1200.0
    CALL_MIN_DTE: int = 5
    CALL_MAX_DTE: int = 9
    CALL_MIN_DELTA: float = 0.04
    CALL_MAX_DELTA: float = 0.12
    CALL_MIN_STRIKE_RATIO: float = 1.0
    CALL_MAX_ORDER_AMOUNT: float = 20.0
    CALL_EXIT_MAX_DTE: int = 7

    # === Budget cycle ===
    BUDGET_PERIOD_DAYS: float = 10.0
    MIN_TRADE_USD: float = 10.0
    RATCHET_WINDOW_DAYS: float = 6.2
    RATCHET_SUMMARY_LIMIT: int = 20000  # above 6.2d of 45s ticks

    # === Scheduling ===
    URGENT_INTERVAL_SECONDS: float = 45.0
    NORMAL_INTERVAL_SECONDS: float = 300.0
    WATCHDOG_STALE_SECONDS: float = 1200.0  # 4x normal interval
    WATCHDOG_CHECK_SECONDS: float = 30.0

    # === Storage ===
    DATABASE_URL: str = "sqlite+aiosqlite:///data/noop.db"
    PRICE_HISTORY_DAYS: float = 8.0  # loaded per tick
    PRICE_RETENTION_DAYS: float = 30.0

    # === Mode ===
    PAPER_MODE: bool = True

    model_config = {"env_file": ".env"}


settings = Settings()
