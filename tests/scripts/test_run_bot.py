import pytest

from scripts import run_bot
from src.engine.scheduler import RunResult
from src.exceptions import ConfigError


def test_parser_defaults():
    args = run_bot.build_parser().parse_args([])
    assert args.live is False
    assert args.max_ticks is None
    assert args.json_logs is False


def test_live_flag_overrides_paper():
    parser = run_bot.build_parser()
    assert run_bot.resolve_paper_mode(parser.parse_args(["--paper"])) is True
    assert run_bot.resolve_paper_mode(parser.parse_args(["--paper", "--live"])) is False
    assert run_bot.resolve_paper_mode(parser.parse_args(["--live"])) is False


@pytest.mark.asyncio
async def test_config_error_maps_to_exit_code(monkeypatch):
    async def bad_run(args):
        raise ConfigError("DERIVE_PRIVATE_KEY is required for live trading")

    monkeypatch.setattr(run_bot, "run", bad_run)
    assert await run_bot.main(["--live"]) == run_bot.EXIT_CONFIG


@pytest.mark.asyncio
async def test_run_result_becomes_exit_code(monkeypatch):
    async def fake_run(args):
        return RunResult(exit_code=2, reason="watchdog_stalled", ticks=7)

    monkeypatch.setattr(run_bot, "run", fake_run)
    assert await run_bot.main(["--max-ticks", "1"]) == 2
