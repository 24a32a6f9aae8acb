"""Command line entry point for docketwatch.

Examples:
    docketwatch refresh 22FL001581C
    docketwatch search "SMITH, JANE" --intent party_name
    docketwatch sweep 22FL001581C FL-2024-123456
    docketwatch status roasearch
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Optional, TextIO

from dotenv import load_dotenv

from .errors import NotFoundError, StrategyConfigError, UpstreamUnavailableError
from .models import CaseRecord, Notification, QueryIntent
from .monitor import CaseMonitor
from .settings import get_settings
from .stores import InMemoryNotificationSink, JsonFileSnapshotStore
from .utils.log import get_logger

LOGGER = get_logger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_UNAVAILABLE = 2
EXIT_CONFIG = 3


class PrintingSink(InMemoryNotificationSink):
    """Idempotent sink that also writes each new notification as a JSON line."""

    def __init__(self, stream: TextIO) -> None:
        super().__init__()
        self._stream = stream

    def append(self, notification: Notification) -> bool:
        added = super().append(notification)
        if added:
            self._stream.write(json.dumps(notification.to_dict(), sort_keys=True, default=str) + "\n")
        return added


def _print_record(record: CaseRecord, stream: TextIO) -> None:
    stream.write(json.dumps({"record": record.model_dump(mode="json")}, sort_keys=True) + "\n")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="docketwatch", description="Court case change monitor")
    parser.add_argument("--snapshots", help="snapshot JSON file (defaults to SNAPSHOT_PATH)")
    sub = parser.add_subparsers(dest="command", required=True)

    refresh = sub.add_parser("refresh", help="refresh one case and print its changes")
    refresh.add_argument("case_id")

    search = sub.add_parser("search", help="look a case up without tracking it")
    search.add_argument("query")
    search.add_argument(
        "--intent",
        choices=[intent.value for intent in QueryIntent],
        default=QueryIntent.PARTY_NAME.value,
    )

    sweep = sub.add_parser("sweep", help="refresh several tracked cases")
    sweep.add_argument("case_ids", nargs="+")

    status = sub.add_parser("status", help="show the remaining request budget for an upstream")
    status.add_argument("upstream")

    untrack = sub.add_parser("untrack", help="drop the stored snapshot of a case")
    untrack.add_argument("case_id")
    return parser


def _run(args: argparse.Namespace, monitor: CaseMonitor, out: TextIO) -> int:
    if args.command == "refresh":
        _print_record(monitor.refresh_case(args.case_id), out)
        return EXIT_OK
    if args.command == "search":
        _print_record(monitor.search(args.query, QueryIntent(args.intent)), out)
        return EXIT_OK
    if args.command == "sweep":
        results = monitor.run_sweep(args.case_ids)
        LOGGER.info("Sweep finished: %d case(s) changed", len(results))
        return EXIT_OK
    if args.command == "status":
        status = monitor.get_rate_limit_status(args.upstream)
        out.write(
            json.dumps(
                {
                    "upstream": status.upstream_id,
                    "limit": status.limit,
                    "remaining": status.remaining,
                    "window_reset_at": status.window_reset_at.isoformat(),
                }
            )
            + "\n"
        )
        return EXIT_OK
    if args.command == "untrack":
        removed = monitor.untrack(args.case_id)
        return EXIT_OK if removed else EXIT_NOT_FOUND
    raise ValueError(f"unknown command {args.command!r}")


def main(argv: list[str] | None = None, *, monitor: Optional[CaseMonitor] = None) -> int:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    out = sys.stdout

    try:
        if monitor is None:
            settings = get_settings()
            store = JsonFileSnapshotStore(args.snapshots or settings.snapshot_path)
            monitor = CaseMonitor(store, PrintingSink(out), settings=settings)
        with monitor:
            return _run(args, monitor, out)
    except NotFoundError as exc:
        LOGGER.warning("%s", exc)
        return EXIT_NOT_FOUND
    except UpstreamUnavailableError as exc:
        LOGGER.error("%s", exc)
        return EXIT_UNAVAILABLE
    except StrategyConfigError as exc:
        LOGGER.error("%s", exc)
        return EXIT_CONFIG


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
