"""CLI entry point for the weather client."""

import argparse
import json
import logging

from meteo.config.loader import get_config_value, load_config
from meteo.context import AppContext, build_context
from meteo.daemon import RefreshDaemon, daemon_status, stop_daemon
from meteo.errors import ConfigurationError
from meteo.ingest.retry import quiet_http_logging
from meteo.view.formatters import (
    format_favorites_text,
    format_refresh_text,
    format_state_text,
    state_to_json,
)
from meteo.view.state_machine import Disambiguating, Error, InvalidTransition

DEFAULT_CONFIG = "config/meteo.yaml"
DEFAULT_DB = "data/meteo.db"


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="meteo",
        description="Weather lookup with persisted favorites",
    )
    parser.add_argument("--config", default=DEFAULT_CONFIG, help="Config YAML path")
    parser.add_argument("--db", default=DEFAULT_DB, help="SQLite DB path")
    parser.add_argument("--json", action="store_true", help="Print view state as JSON")

    sub = parser.add_subparsers(dest="command")

    # search
    search_p = sub.add_parser("search", help="Look up the weather for a place")
    search_p.add_argument("text", help="Place name")
    search_p.add_argument("--pick", type=int, help="Candidate index when ambiguous")
    search_p.add_argument("--day", type=int, help="Show a forecast day (0-2)")
    search_p.add_argument(
        "--favorite", action="store_true", help="Add the location to favorites"
    )

    # favorites list / remove / refresh / open
    fav_p = sub.add_parser("favorites", help="Favorites operations")
    fav_sub = fav_p.add_subparsers(dest="favorites_command")
    fav_sub.add_parser("list", help="List favorites")
    rm_p = fav_sub.add_parser("remove", help="Remove a favorite")
    rm_p.add_argument("name")
    fav_sub.add_parser("refresh", help="Refresh all favorites now")
    open_p = fav_sub.add_parser("open", help="Show the weather for a favorite")
    open_p.add_argument("name")
    open_p.add_argument("--day", type=int, help="Show a forecast day (0-2)")

    # daemon
    daemon_p = sub.add_parser("daemon", help="Refresh favorites on an interval")
    daemon_p.add_argument("--interval", type=int, help="Seconds between refreshes")
    daemon_p.add_argument("--stop", action="store_true", help="Stop running daemon")
    daemon_p.add_argument("--status", action="store_true", help="Show daemon status")

    # config show / config get
    config_p = sub.add_parser("config", help="Config operations")
    config_sub = config_p.add_subparsers(dest="config_command")
    config_sub.add_parser("show", help="Display current config")
    get_p = config_sub.add_parser("get", help="Print one config value")
    get_p.add_argument("key", help="Dotted key, e.g. favorites.max_workers")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 1

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    quiet_http_logging()

    config = load_config(args.config)

    if args.command == "config":
        return _cmd_config(config, args)
    if args.command == "daemon" and (args.stop or args.status):
        return stop_daemon() if args.stop else daemon_status()

    try:
        ctx = build_context(config, args.db)
    except ConfigurationError as e:
        print(f"Configuration error: {e}")
        return 2

    try:
        if args.command == "search":
            return _cmd_search(ctx, args)
        elif args.command == "favorites":
            return _cmd_favorites(ctx, args)
        elif args.command == "daemon":
            return _cmd_daemon(ctx, args)
        else:
            parser.print_help()
            return 1
    finally:
        ctx.close()


def _render(ctx: AppContext, args) -> int:
    machine = ctx.machine
    entries = ctx.favorites.entries
    if args.json:
        print(json.dumps(
            state_to_json(machine.state, entries, machine.search_text),
            indent=2, ensure_ascii=False,
        ))
    else:
        print(format_state_text(machine.state, entries))
    return 1 if isinstance(machine.state, Error) else 0


def _show_day(ctx: AppContext, day: int | None) -> str | None:
    if day is None:
        return None
    try:
        ctx.machine.select_day(day)
    except (InvalidTransition, IndexError) as e:
        return str(e)
    return None


def _refresh_after_change(ctx: AppContext) -> None:
    # One-shot process: the size-change refresh runs inline.
    ctx.favorites.refresh_all()


def _cmd_search(ctx: AppContext, args) -> int:
    machine = ctx.machine
    machine.submit(args.text)
    if args.pick is not None and isinstance(machine.state, Disambiguating):
        try:
            machine.pick(args.pick)
        except IndexError as e:
            print(f"Error: {e}")
            return 1

    error = _show_day(ctx, args.day)
    if error:
        print(f"Error: {error}")
        return 1
    if args.favorite:
        try:
            added = machine.add_favorite()
        except InvalidTransition as e:
            print(f"Error: {e}")
            return 1
        if added:
            _refresh_after_change(ctx)
    return _render(ctx, args)


def _cmd_favorites(ctx: AppContext, args) -> int:
    store = ctx.favorites
    if args.favorites_command == "list":
        print(format_favorites_text(store.entries))
        return 0
    elif args.favorites_command == "remove":
        if not store.contains(args.name):
            print(f"Not a favorite: {args.name}")
            return 1
        ctx.machine.remove_favorite(args.name)
        _refresh_after_change(ctx)
        print(f"Removed {args.name}")
        return 0
    elif args.favorites_command == "refresh":
        store.refresh_all()
        assert store.last_report is not None
        print(format_refresh_text(store.last_report))
        print(format_favorites_text(store.entries))
        return 0
    elif args.favorites_command == "open":
        ctx.machine.pick_favorite(args.name)
        error = _show_day(ctx, args.day)
        if error:
            print(f"Error: {error}")
            return 1
        return _render(ctx, args)
    else:
        print("Use: favorites list | remove NAME | refresh | open NAME")
        return 1


def _cmd_daemon(ctx: AppContext, args) -> int:
    interval = args.interval or ctx.config.favorites.refresh_interval_minutes * 60
    RefreshDaemon(ctx.favorites, interval=interval).start()
    return 0


def _cmd_config(config, args) -> int:
    if args.config_command == "show":
        print(config.model_dump_json(indent=2))
        return 0
    elif args.config_command == "get":
        try:
            print(get_config_value(config, args.key))
            return 0
        except KeyError as e:
            print(f"Error: {e}")
            return 1
    else:
        print("Use: config show | config get KEY")
        return 1
