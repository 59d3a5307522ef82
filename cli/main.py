"""RuleDesk CLI -- the `ruledesk` command.

Usage:
    ruledesk start                   Start the server and refresh loop
    ruledesk status                  Show home directory, state and plugins
    ruledesk evaluate [--no-briefing] Run one evaluation cycle and print the advice
    ruledesk tables <reference>      Print the three band tables for a price
    ruledesk crisis [reset]          Show or reset the panic-period record
    ruledesk rate-mode [<mode>]      Show or set zero-rate / rising-rate
    ruledesk plugin list             List all available plugins
    ruledesk plugin enable <n>       Enable a plugin
    ruledesk plugin disable <n>      Disable a plugin
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

from core.config import HOME_ENV_VAR, default_home


def get_home_dir() -> Path:
    """Get the RuleDesk home directory."""
    return default_home()


def _load_components(load_providers: bool = True):
    from core.config import load_config
    from main import build_components

    return build_components(load_config(), load_providers=load_providers)


def cmd_start(args: argparse.Namespace) -> None:
    """Start the RuleDesk server."""
    config_path = get_home_dir() / "config.yaml"
    if not config_path.exists():
        print(f"  No configuration at {config_path}; starting with defaults (demo data, fallback briefings).")

    from main import run, setup_logging
    setup_logging("INFO")

    try:
        asyncio.run(run(config_path=str(config_path)))
    except KeyboardInterrupt:
        pass


def cmd_status(args: argparse.Namespace) -> None:
    """Show system status."""
    from cli.banner import print_banner
    print_banner()

    home = get_home_dir()
    config_path = home / "config.yaml"
    db_path = home / "state.sqlite"

    print(f"  Home:     {home}")
    print(f"  Config:   {config_path} ({'exists' if config_path.exists() else 'NOT FOUND'})")
    print(f"  Database: {db_path} ({'exists' if db_path.exists() else 'NOT FOUND'})")

    events_dir = home / "events"
    if events_dir.exists():
        count = len(list(events_dir.glob("*.jsonl")))
        if count:
            print(f"  Event logs: {count} files")
    print()

    if db_path.exists():
        components = _load_components(load_providers=False)
        try:
            crisis = components.state.load_crisis_state()
            print(f"  Rate mode: {components.state.load_rate_mode()}")
            if crisis.is_active:
                print(
                    f"  Panic period: active, {crisis.drop_count} drop(s), "
                    f"{crisis.remaining_days} of {crisis.wait_days} days remaining"
                )
            else:
                print("  Panic period: inactive")
        finally:
            components.store.close()
        print()

    # Show discovered plugins
    from cli.scanner import discover_plugins, CATEGORY_LABELS
    plugins = discover_plugins()
    for cat, items in plugins.items():
        names = ", ".join(p.display_name for p in items)
        print(f"  {CATEGORY_LABELS.get(cat, cat)}: {names}")

    print()


def cmd_evaluate(args: argparse.Namespace) -> None:
    """Run one evaluation cycle and print the result."""
    from main import setup_logging
    setup_logging("WARNING")

    async def _evaluate():
        components = _load_components()
        try:
            return await components.dashboard.evaluate(include_briefing=not args.no_briefing)
        finally:
            await components.close()

    overview = asyncio.run(_evaluate())
    top = overview.top_securities[0]
    index = overview.index
    demo = " (demo data)" if overview.provenance.index_is_demo or overview.provenance.securities_is_demo else ""

    print()
    print(f"  {index.name}: {index.price:,.2f} ({index.change_percent:+.2f}%){demo}")
    print(f"  Status:    {overview.market_status} ({overview.rate_mode})")
    print(f"  Leader:    {top.symbol} {top.current_price:,.2f}, {top.drawdown_percent:.2f}% below {top.all_time_high:,.2f}")
    advice = overview.advice
    target = f" {advice.percentage}%" if advice.has_target else ""
    print(f"  Advice:    {advice.action.upper()}{target}")
    print(f"             {advice.reason}")
    if overview.leadership_risk and overview.leadership_risk.is_risky:
        risk = overview.leadership_risk
        print(f"  Warning:   {risk.runner_up} is within {risk.difference_percent:.1f}% of {risk.leader}")
    if overview.briefing:
        print()
        for line in overview.briefing.text.splitlines():
            print(f"  {line}")
    print()


def cmd_tables(args: argparse.Namespace) -> None:
    """Print the sell-down and buy-up tables for a reference price."""
    from rules.bands import buy_up_rising_rate_table, buy_up_zero_rate_table, sell_down_table

    reference = args.reference
    if reference <= 0:
        print("  Reference price must be positive.")
        sys.exit(2)

    tables = [
        ("Sell-down (normal market, ratio = cash %)", sell_down_table(reference)),
        ("Buy-up, zero-rate (panic, ratio = stock %)", buy_up_zero_rate_table(reference)),
        ("Buy-up, rising-rate (panic, ratio = stock %)", buy_up_rising_rate_table(reference)),
    ]
    print()
    for title, bands in tables:
        print(f"  {title}")
        for band in bands:
            print(f"    -{band.drop_percent:5.1f}%  {band.target_price:12,.2f}  {band.ratio:3d}%")
        print()


def cmd_crisis(args: argparse.Namespace) -> None:
    """Show or reset the panic-period record."""
    components = _load_components(load_providers=False)
    try:
        if args.crisis_action == "reset":
            state = asyncio.run(components.dashboard.reset_crisis())
            print("  Panic period reset.")
        else:
            state = components.state.load_crisis_state()
    finally:
        components.store.close()

    print(f"  Active:    {state.is_active}")
    if state.is_active:
        print(f"  Started:   {state.start_timestamp.isoformat()}")
        print(f"  Drops:     {state.drop_count}")
        print(f"  Remaining: {state.remaining_days} of {state.wait_days} days")


def cmd_rate_mode(args: argparse.Namespace) -> None:
    """Show or set the rate mode."""
    components = _load_components(load_providers=False)
    try:
        if args.mode is None:
            print(f"  Rate mode: {components.state.load_rate_mode()}")
            return
        try:
            mode = asyncio.run(components.dashboard.set_rate_mode(args.mode))
        except ValueError as e:
            print(f"  {e}")
            sys.exit(2)
        print(f"  Rate mode set to {mode}")
    finally:
        components.store.close()


def cmd_plugin(args: argparse.Namespace) -> None:
    """Plugin management commands."""
    action = args.plugin_action

    if action == "list":
        _plugin_list()
    elif action == "enable":
        _plugin_toggle(args.plugin_name, enable=True)
    elif action == "disable":
        _plugin_toggle(args.plugin_name, enable=False)
    else:
        print(f"  Unknown plugin action '{action}'. Use list, enable or disable.")


def _plugin_list() -> None:
    """List all available plugins."""
    from cli.scanner import discover_plugins, CATEGORY_LABELS

    plugins = discover_plugins()
    print()
    for cat, items in plugins.items():
        print(f"  {CATEGORY_LABELS.get(cat, cat)}:")
        for p in items:
            needs = f" [set {p.secret_env_var}]" if p.secret_env_var else ""
            print(f"    {p.name:20s} {p.display_name}{needs}")
        print()


def _plugin_toggle(name: str | None, enable: bool) -> None:
    """Enable or disable a market data provider in config.yaml.

    LLM providers are enabled by configuring an API key instead.
    """
    if not name:
        print("  Usage: ruledesk plugin enable <name>")
        return

    import yaml
    config_path = get_home_dir() / "config.yaml"

    config: dict = {}
    if config_path.exists():
        with open(config_path) as f:
            config = yaml.safe_load(f) or {}

    from cli.scanner import get_plugin
    plugin = get_plugin(name)
    if plugin is None:
        print(f"  Plugin '{name}' not found. Run 'ruledesk plugin list'.")
        return
    if plugin.category != "market_data":
        print(f"  {plugin.display_name} is enabled by setting ai.providers.{name}.api_key in config.yaml.")
        return

    providers = config.setdefault("market_data", {}).setdefault("providers", {})
    entry = providers.get(name)
    if not isinstance(entry, dict):
        entry = providers[name] = {}
    entry["enabled"] = enable

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)
    action = "Enabled" if enable else "Disabled"
    print(f"  {action}: {name}")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="ruledesk",
        description="RuleDesk -- rule-based investment dashboard",
    )
    parser.add_argument("--home", type=str, default=None, help="RuleDesk home directory")

    sub = parser.add_subparsers(dest="command")

    # start
    sub.add_parser("start", help="Start the RuleDesk server")

    # status
    sub.add_parser("status", help="Show system status")

    # evaluate
    evaluate_parser = sub.add_parser("evaluate", help="Run one evaluation cycle and print the advice")
    evaluate_parser.add_argument(
        "--no-briefing",
        action="store_true",
        help="Skip the narrative briefing",
    )

    # tables
    tables_parser = sub.add_parser("tables", help="Print the band tables for a reference price")
    tables_parser.add_argument("reference", type=float, help="Reference (all-time-high) price")

    # crisis
    crisis_parser = sub.add_parser("crisis", help="Show or reset the panic-period record")
    crisis_parser.add_argument(
        "crisis_action",
        nargs="?",
        choices=["show", "reset"],
        default="show",
    )

    # rate-mode
    rate_parser = sub.add_parser("rate-mode", help="Show or set the rate mode")
    rate_parser.add_argument(
        "mode",
        nargs="?",
        default=None,
        help="zero-rate | rising-rate",
    )

    # plugin
    plugin_parser = sub.add_parser("plugin", help="Plugin management")
    plugin_parser.add_argument(
        "plugin_action",
        type=str,
        help="list | enable | disable",
    )
    plugin_parser.add_argument(
        "plugin_name",
        type=str,
        nargs="?",
        default=None,
        help="Plugin name (for enable/disable)",
    )

    return parser


def main() -> None:
    """CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args()

    if args.home:
        os.environ[HOME_ENV_VAR] = str(Path(args.home).expanduser())

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    commands = {
        "start": cmd_start,
        "status": cmd_status,
        "evaluate": cmd_evaluate,
        "tables": cmd_tables,
        "crisis": cmd_crisis,
        "rate-mode": cmd_rate_mode,
        "plugin": cmd_plugin,
    }

    handler = commands.get(args.command)
    if handler:
        handler(args)
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
