from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from assetwarden.app import (
    check_asset_status,
    list_asset_records,
    list_platform_inventory,
    refresh_pending_assets,
    submit_asset,
    verify_operator_credential,
    withdraw_asset,
)
from assetwarden.config import configure_logging
from assetwarden.domain.model import AssetKind, AssetStatus

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

_KIND_CHOICES = [kind.value for kind in AssetKind]
_STATUS_CHOICES = [status.value for status in AssetStatus]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Submit assets, track their moderation status and withdraw them"
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("verify", help="Check that the configured credential is valid")

    submit = subparsers.add_parser("submit", help="Upload a file as a new asset")
    submit.add_argument("path", type=Path, help="File to upload")
    submit.add_argument("--kind", choices=_KIND_CHOICES, required=True, help="Asset kind")
    submit.add_argument("--group-id", type=str, help="Owning group (defaults to config)")
    submit.add_argument("--description", type=str, help="Optional asset description")
    submit.add_argument(
        "--tag",
        dest="tags",
        action="append",
        default=[],
        help="Free-form tag stored with the local record (repeatable)",
    )

    status = subparsers.add_parser("status", help="Resolve the moderation status of an asset")
    status.add_argument("asset_id", type=str, help="Platform asset id")
    status.add_argument(
        "--kind",
        choices=_KIND_CHOICES,
        help="Asset kind (required when the asset has no local record)",
    )
    status.add_argument(
        "--evidence",
        action="store_true",
        help="Also print the collected evidence and the deciding rule",
    )

    withdraw = subparsers.add_parser("withdraw", help="Remove an asset from the platform")
    withdraw.add_argument("asset_id", type=str, help="Platform asset id")

    refresh = subparsers.add_parser("refresh", help="Re-check pending assets periodically")
    refresh.add_argument(
        "--cycles",
        type=int,
        help="Number of refresh cycles to run (default: until interrupted)",
    )
    refresh.add_argument(
        "--interval",
        type=float,
        help="Seconds between cycles (defaults to config)",
    )

    inventory = subparsers.add_parser("inventory", help="List assets held on the platform")
    inventory.add_argument("--kind", choices=_KIND_CHOICES, required=True, help="Asset kind")
    inventory.add_argument("--group-id", type=str, help="List a group's assets instead")
    inventory.add_argument("--limit", type=int, help="Maximum number of assets to list")

    records = subparsers.add_parser("records", help="List locally tracked asset records")
    records.add_argument("--kind", choices=_KIND_CHOICES, help="Filter by kind")
    records.add_argument("--status", choices=_STATUS_CHOICES, help="Filter by status")

    return parser.parse_args(list(argv))


def _validate(args: argparse.Namespace) -> None:
    if args.command == "submit" and not args.path.is_file():
        raise ValueError(f"Not a file: {args.path}")
    if args.command == "refresh":
        if args.cycles is not None and args.cycles <= 0:
            raise ValueError("--cycles must be positive")
        if args.interval is not None and args.interval <= 0:
            raise ValueError("--interval must be positive")
    if args.command == "inventory" and args.limit is not None and args.limit <= 0:
        raise ValueError("--limit must be positive")


def _optional_kind(value: str | None) -> AssetKind | None:
    return AssetKind(value) if value is not None else None


def _run_command(args: argparse.Namespace) -> int:
    if args.command == "verify":
        user = verify_operator_credential()
        log.info("Credential is valid for %s (%s)", user.name, user.id)
        return 0

    if args.command == "submit":
        outcome = submit_asset(
            args.path.read_bytes(),
            args.path.name,
            AssetKind(args.kind),
            group_id=args.group_id,
            description=args.description,
            tags=args.tags,
        )
        if not outcome.ok:
            log.error("Submission failed (%s): %s", outcome.reason, outcome.message)
            return 1
        log.info("Submitted %s as asset %s (pending)", outcome.name, outcome.asset_id)
        if outcome.description_attached is False:
            log.warning("The description could not be attached to asset %s", outcome.asset_id)
        return 0

    if args.command == "status":
        report = check_asset_status(args.asset_id, _optional_kind(args.kind))
        log.info("Asset %s (%s): %s", report.asset_id, report.name or "unnamed", report.status)
        if args.evidence:
            evidence = report.evidence
            log.info(
                "Decided by %s; anonymous=%s authenticated=%s catalog=%s listing=%s",
                report.rule,
                evidence.anonymous_reachability,
                evidence.authenticated_reachability,
                evidence.catalog.presence,
                evidence.listing.signal,
            )
        return 0

    if args.command == "withdraw":
        outcome = withdraw_asset(args.asset_id)
        if not outcome.ok:
            log.error("Withdrawal failed (%s): %s", outcome.reason, outcome.message)
            return 1
        log.info("Withdrew asset %s via %s %s", outcome.asset_id, outcome.method, outcome.url)
        return 0

    if args.command == "refresh":
        changes = refresh_pending_assets(max_cycles=args.cycles, interval_seconds=args.interval)
        for change in changes:
            log.info(
                "Asset %s: %s -> %s", change.asset_id, change.old_status, change.new_status
            )
        return 0

    if args.command == "inventory":
        entries = list_platform_inventory(
            AssetKind(args.kind),
            group_id=args.group_id,
            max_items=args.limit,
        )
        for entry in entries:
            log.info("%s\t%s\t%s", entry.asset_id, entry.status, entry.name)
        log.info("%d asset(s) listed", len(entries))
        return 0

    if args.command == "records":
        stored = list_asset_records(
            kind=_optional_kind(args.kind),
            status=AssetStatus(args.status) if args.status else None,
        )
        for record in stored:
            log.info(
                "%s\t%s\t%s\t%s",
                record.asset_id,
                record.kind,
                record.status,
                record.display_name,
            )
        log.info("%d record(s)", len(stored))
        return 0

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)
        _validate(parsed_args)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        exit_code = _run_command(parsed_args)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)
    if exit_code:
        sys.exit(exit_code)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
