#!/usr/bin/env python3
"""NOOP: unattended ETH options hedger on Derive.

Two independent legs share one momentum read per tick:
  - puts:  accumulate long OTM puts (50-90 DTE) as downside protection
  - calls: sell short-dated OTM calls (5-9 DTE) to harvest premium

Each leg spends against its own rolling 10-day budget. The process is
meant to run under a supervisor: an unexpected error or a stalled loop ends
the process with a non-zero exit code and the supervisor restarts it.

USAGE:
    python scripts/run_bot.py --paper        # default, sign but do not send
    python scripts/run_bot.py --live         # real orders
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

_project_root = Path(__file__).parent.parent
sys.path.insert(0, str(_project_root))

import structlog

from config.settings import settings
from config.validators import validate_contract_addresses, validate_derive_credentials
from src.db.database import close_db_async
from src.db.store import StateStore
from src.engine.scheduler import RunResult, Scheduler, Watchdog, run_until_fatal
from src.engine.tick import TickRunner
from src.exceptions import ConfigError
from src.execution.authorizer import OrderAuthorizer
from src.execution.executor import OrderExecutor
from src.feeds.derive import DeriveClient
from src.feeds.spot import SpotPriceFeed
from src.utils.logging import configure_logging

try:
    import uvloop
except ImportError:
    uvloop = None

logger = structlog.get_logger()

EXIT_CONFIG = 3


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="ETH options hedger: long puts, short calls")
    p.add_argument("--paper", action="store_true", default=settings.PAPER_MODE)
    p.add_argument("--live", action="store_true", default=False)
    p.add_argument("--db-url", type=str, default=settings.DATABASE_URL)
    p.add_argument("--max-ticks", type=int, default=None, help="Stop after N ticks (default: run forever)")
    p.add_argument("--json-logs", action="store_true", default=False)
    return p


def resolve_paper_mode(args: argparse.Namespace) -> bool:
    """--live wins over --paper and over PAPER_MODE."""
    return args.paper and not args.live


async def run(args: argparse.Namespace) -> RunResult:
    paper_mode = resolve_paper_mode(args)
    validate_contract_addresses()
    if paper_mode and not settings.DERIVE_PRIVATE_KEY:
        logger.warning("paper_mode_ephemeral_key")
        authorizer = OrderAuthorizer.ephemeral(settings)
    else:
        validate_derive_credentials()
        authorizer = OrderAuthorizer.from_settings(settings)

    store = StateStore(args.db_url)
    await store.init()
    exchange = DeriveClient(
        settings.DERIVE_API_BASE,
        currency=settings.DERIVE_CURRENCY,
        subaccount_id=settings.DERIVE_SUBACCOUNT_ID,
        auth_headers=authorizer.request_headers,
        timeout=settings.DERIVE_HTTP_TIMEOUT,
    )
    spot_feed = SpotPriceFeed(settings.SPOT_PRICE_URL, settings.SPOT_ASSET_ID, settings.SPOT_QUOTE)
    executor = OrderExecutor(
        gateway=None if paper_mode else exchange,
        authorizer=authorizer,
        journal=store,
        subaccount_id=settings.DERIVE_SUBACCOUNT_ID,
        fee_cap_pct=settings.FEE_CAP_PCT,
        signature_ttl=settings.ORDER_SIGNATURE_TTL_SECONDS,
        paper=paper_mode,
    )
    runner = TickRunner(
        spot_feed=spot_feed,
        exchange=exchange,
        store=store,
        executor=executor,
        settings=settings,
        # private reads need a registered signer
        fetch_positions=bool(settings.DERIVE_PRIVATE_KEY),
    )
    scheduler = Scheduler(runner, max_ticks=args.max_ticks)
    watchdog = Watchdog(
        scheduler,
        stale_after=settings.WATCHDOG_STALE_SECONDS,
        check_interval=settings.WATCHDOG_CHECK_SECONDS,
    )

    logger.info(
        "bot_starting",
        mode="paper" if paper_mode else "live",
        signer=authorizer.signer,
        put_budget=settings.PUT_BASE_LIMIT_USD,
        call_budget=settings.CALL_BASE_LIMIT_USD,
        period_days=settings.BUDGET_PERIOD_DAYS,
    )
    try:
        state = await runner.load_state()
        return await run_until_fatal(scheduler, watchdog, state)
    finally:
        await exchange.close()
        await spot_feed.close()
        await close_db_async()


async def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(json_output=args.json_logs)
    try:
        result = await run(args)
    except ConfigError as exc:
        logger.error("config_invalid", error=str(exc))
        return EXIT_CONFIG
    logger.info("bot_stopped", reason=result.reason, ticks=result.ticks, exit_code=result.exit_code)
    return result.exit_code


if __name__ == "__main__":
    if uvloop is not None:
        uvloop.install()
    sys.exit(asyncio.run(main()))
