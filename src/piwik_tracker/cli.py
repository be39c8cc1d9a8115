#!/usr/bin/env python3
"""
CLI tool for sending tracking data to a Piwik server.

Usage:
    python -m piwik_tracker.cli --site-id 1 --base-url https://piwik.example.com/piwik.php view menu settings
    python -m piwik_tracker.cli --config tracker.yaml event player play --name intro --value 3
    python -m piwik_tracker.cli --state-path ~/.piwik/state.yaml opt-out on
    python -m piwik_tracker.cli --state-path ~/.piwik/state.yaml state
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from colorama import Fore, Style, init as colorama_init

from .config import TrackerConfig
from .state import YamlStateStore
from .tracker import Tracker, create_tracker


def colorize(text: str, color: str) -> str:
    return f"{color}{text}{Style.RESET_ALL}"


def load_config(args) -> TrackerConfig:
    """Config file first, then command-line overrides."""
    config = TrackerConfig.from_file(args.config) if args.config else TrackerConfig()
    if args.site_id:
        config.site_id = args.site_id
    if args.base_url:
        config.dispatcher.base_url = args.base_url
    if args.state_path:
        config.state_path = args.state_path
    if args.log_level:
        config.log_level = args.log_level
    if not isinstance(logging.getLevelName(config.log_level.upper()), int):
        raise ValueError(f"Unknown log level: {config.log_level}")
    # One-shot process: dispatch manually, no timer
    config.dispatch.interval_seconds = 0
    return config


async def _track_and_dispatch(tracker: Tracker, args) -> int:
    await tracker.start()
    try:
        if args.command == "view":
            await tracker.track_view(args.segments, url=args.url)
        else:
            await tracker.track_event(args.category, args.action, name=args.name, value=args.value)

        if tracker.is_opted_out:
            # Events queued before the opt-out are still delivered
            print(colorize("Opted out: nothing was tracked.", Fore.YELLOW))

        await tracker.dispatch()
        remaining = await tracker.queue.count()
    finally:
        await tracker.stop(flush=False)

    if remaining:
        print(colorize(f"Dispatch failed, {remaining} events still queued.", Fore.RED), file=sys.stderr)
        return 1

    sent = tracker.stats["events_sent"]
    print(colorize(f"Dispatched {sent} events.", Fore.GREEN))
    return 0


def cmd_track(args, config: TrackerConfig) -> int:
    """Track a view or an event and dispatch it right away."""
    try:
        tracker = create_tracker(config)
    except ValueError as e:
        print(colorize(f"Error: {e}", Fore.RED), file=sys.stderr)
        return 2
    return asyncio.run(_track_and_dispatch(tracker, args))


def cmd_opt_out(args, config: TrackerConfig) -> int:
    """Read or write the persisted opt-out flag."""
    store = YamlStateStore(config.state_path)
    state = store.load()

    if args.action != "status":
        state.opt_out = args.action == "on"
        store.save(state)

    label = colorize("opted out", Fore.YELLOW) if state.opt_out else colorize("tracking", Fore.GREEN)
    print(f"{colorize('Opt-out:', Style.BRIGHT)} {label}")
    return 0


def cmd_state(args, config: TrackerConfig) -> int:
    """Print the persisted visitor/session state."""
    state = YamlStateStore(config.state_path).load()

    print(colorize("\nVisitor:", Style.BRIGHT))
    print(f"  {colorize('id:', Fore.CYAN)} {state.visitor_id or colorize('(not set)', Style.DIM)}")
    print(f"  {colorize('first visit:', Fore.CYAN)} {state.first_visit or colorize('(never)', Style.DIM)}")

    print(colorize("Visits:", Style.BRIGHT))
    print(f"  {colorize('total:', Fore.CYAN)} {state.total_visits}")
    print(f"  {colorize('current:', Fore.CYAN)} {state.current_visit or colorize('(none)', Style.DIM)}")
    print(f"  {colorize('previous:', Fore.CYAN)} {state.previous_visit or colorize('(none)', Style.DIM)}")

    print(f"{colorize('Opt-out:', Style.BRIGHT)} {state.opt_out}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Send tracking data to a Piwik server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("--config", help="YAML or JSON tracker configuration file")
    parser.add_argument("--site-id", help="Site id (overrides config)")
    parser.add_argument("--base-url", help="Tracking endpoint ending in piwik.php (overrides config)")
    parser.add_argument("--state-path", help="YAML file for persisted visitor/session state")
    parser.add_argument("--log-level", help="Logging level (default: WARNING)")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # view command
    view_parser = subparsers.add_parser("view", help="Track a screen view")
    view_parser.add_argument("segments", nargs="+", help="Hierarchical screen name segments")
    view_parser.add_argument("--url", help="Explicit URL of the view")

    # event command
    event_parser = subparsers.add_parser("event", help="Track a category/action event")
    event_parser.add_argument("category", help="Event category")
    event_parser.add_argument("action", help="Event action")
    event_parser.add_argument("--name", help="Event name")
    event_parser.add_argument("--value", type=float, help="Numeric event value")

    # opt-out command
    opt_out_parser = subparsers.add_parser("opt-out", help="Manage the opt-out flag")
    opt_out_parser.add_argument("action", choices=["on", "off", "status"])

    # state command
    subparsers.add_parser("state", help="Show persisted visitor/session state")

    return parser


def main(argv: list[str] | None = None) -> int:
    colorama_init()
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    try:
        config = load_config(args)
    except (OSError, TypeError, ValueError) as e:
        print(colorize(f"Invalid configuration: {e}", Fore.RED), file=sys.stderr)
        return 2

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command in ("opt-out", "state"):
        if not config.state_path:
            print(colorize("Error: --state-path (or state_path in config) is required", Fore.RED), file=sys.stderr)
            return 2
        if args.command == "opt-out":
            return cmd_opt_out(args, config)
        return cmd_state(args, config)

    return cmd_track(args, config)


if __name__ == "__main__":
    sys.exit(main() or 0)
