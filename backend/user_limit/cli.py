"""Command line entry point for host lifecycle actions.

Usage:
    user-limit activate
    user-limit deactivate
    user-limit show
    user-limit set --keep-count 50 --schedule daily
    user-limit preview
    user-limit run
    user-limit status

Environment Variables:
    DATABASE_URL: Database holding the users and options tables

The recurring timer lives in the API process. A schedule changed here is
picked up by that process at its next firing or restart.
"""

import argparse
import json
import sys
from typing import Optional, Sequence

from .config import get_settings
from .observability.logging_config import configure_logging
from .retention.config_store import coerce_keep_count
from .retention.exceptions import ConfigValidationError
from .retention.plugin import UserLimitPlugin, build_plugin
from .retention.schemas import RetentionConfigUpdate, ScheduleInterval


def _print(payload) -> None:
    print(json.dumps(payload, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="user-limit",
        description="Keep only the configured number of longest-registered users",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("activate", help="Create tables and store default settings")
    sub.add_parser("deactivate", help="Cancel the job and remove the settings")
    sub.add_parser("show", help="Print the current settings")
    sub.add_parser("preview", help="Show what a run would delete")
    sub.add_parser("run", help="Run an eviction now")
    sub.add_parser("status", help="Show the eviction job known to this process")

    set_parser = sub.add_parser("set", help="Update settings")
    set_parser.add_argument("--keep-count", help="Number of users to keep (>= 1)")
    set_parser.add_argument(
        "--schedule",
        help="Schedule interval: " + ", ".join(i.value for i in ScheduleInterval),
    )
    return parser


def main(argv: Optional[Sequence[str]] = None, plugin: Optional[UserLimitPlugin] = None) -> int:
    """Run a CLI command. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON, stream=sys.stderr)

    plugin = plugin or build_plugin(settings)

    if args.command == "activate":
        plugin.on_activate()
        _print(plugin.config_store.get_config().model_dump(mode="json"))
        return 0

    if args.command == "deactivate":
        plugin.on_deactivate()
        _print({"status": "deactivated"})
        return 0

    if args.command == "show":
        _print(plugin.config_store.get_config().model_dump(mode="json"))
        return 0

    if args.command == "preview":
        _print(plugin.service.preview().model_dump(mode="json"))
        return 0

    if args.command == "run":
        _print(plugin.run_now().model_dump(mode="json"))
        return 0

    if args.command == "status":
        _print(plugin.schedule_status().model_dump(mode="json"))
        return 0

    if args.command == "set":
        if args.keep_count is None and args.schedule is None:
            print("ERROR: nothing to update, pass --keep-count and/or --schedule", file=sys.stderr)
            return 2
        try:
            keep_count = None
            if args.keep_count is not None:
                keep_count = coerce_keep_count(args.keep_count)
            updated = plugin.config_store.update(
                RetentionConfigUpdate(keep_count=keep_count, schedule_interval=args.schedule)
            )
        except ConfigValidationError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2
        _print(updated.model_dump(mode="json"))
        return 0

    return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
