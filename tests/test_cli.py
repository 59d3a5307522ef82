import pytest

from cli.main import build_parser, cmd_tables
from cli.scanner import discover_plugins, get_plugin


def test_parser_commands():
    parser = build_parser()

    args = parser.parse_args(["tables", "260.10"])
    assert (args.command, args.reference) == ("tables", 260.10)

    args = parser.parse_args(["crisis"])
    assert args.crisis_action == "show"

    args = parser.parse_args(["--home", "/tmp/rd", "rate-mode", "zero-rate"])
    assert (args.home, args.mode) == ("/tmp/rd", "zero-rate")


def test_tables_output(capsys):
    cmd_tables(build_parser().parse_args(["tables", "100"]))

    out = capsys.readouterr().out
    assert "Sell-down" in out
    assert "97.50" in out
    assert "45.00" in out  # deepest rising-rate rung


def test_tables_rejects_non_positive():
    with pytest.raises(SystemExit):
        cmd_tables(build_parser().parse_args(["tables", "0"]))


def test_discovers_bundled_plugins():
    plugins = discover_plugins()

    assert [p.name for p in plugins["market_data"]] == ["yahoo_finance"]
    assert {p.name for p in plugins["ai_provider"]} == {"anthropic", "gemini", "openai"}
    assert get_plugin("gemini").secret_env_var == "GEMINI_API_KEY"
    assert get_plugin("nope") is None
