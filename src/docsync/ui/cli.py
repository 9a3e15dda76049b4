from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING, Any

from dotenv import load_dotenv
from pydantic import ConfigDict, ValidationError

from docsync.app import sync_records
from docsync.config import (
    ConfigurationError,
    configure_logging,
    get_sync_config,
    optional_env_var,
)
from docsync.domain.records import ID_FIELD, DocumentModel
from docsync.domain.reconciliation import field_accessor

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from docsync.app import StoreFactory
    from docsync.domain.reconciliation import BatchReport, SyncSettings

log = logging.getLogger(__name__)


class JsonRecord(DocumentModel):
    """A free-form record read from one line of a JSON lines file."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Synchronise records into a document store")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Upsert JSON lines records into a collection")
    sync.add_argument("file", type=str, help="JSON lines file, one record per line")
    sync.add_argument(
        "--collection",
        type=str,
        required=True,
        help="Target collection name",
    )
    sync.add_argument(
        "--match-field",
        type=str,
        default=ID_FIELD,
        help="Field identifying existing documents (default: %(default)s)",
    )
    sync.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Records per bulk write, 0 disables batching (defaults to config)",
    )
    sync.add_argument("--ordered", action="store_true", help="Stop a batch at its first error")
    sync.add_argument(
        "--bypass-validation",
        action="store_true",
        help="Skip the collection's document validation",
    )
    sync.add_argument(
        "--no-upsert",
        action="store_true",
        help="Do not recreate replaced documents that vanished meanwhile",
    )
    sync.add_argument("--quiet", action="store_true", help="Suppress per-batch progress logging")
    return parser.parse_args(list(argv))


def _read_records(path: Path | str) -> list[JsonRecord]:
    records: list[JsonRecord] = []
    with Path(path).open(encoding="utf-8") as handle:
        for number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                payload: Any = json.loads(line)
                records.append(JsonRecord.model_validate(payload))
            except (json.JSONDecodeError, ValidationError) as exc:
                raise ValueError(f"Invalid record on line {number} of {path}: {exc}") from exc
    return records


def _build_settings(args: argparse.Namespace) -> SyncSettings[JsonRecord, Any]:
    settings: SyncSettings[JsonRecord, Any] = get_sync_config().to_settings()
    if args.batch_size is not None:
        if args.batch_size < 0:
            raise ValueError("Batch size must be non-negative")
        settings = settings.with_batch_size(args.batch_size)
    read_match = field_accessor(args.match_field)
    return (
        settings.with_match_field(args.match_field)
        .with_record_match(lambda record: read_match(record.to_document()))
        .with_ordered(args.ordered)
        .with_bypassed_validation(args.bypass_validation)
        .with_upsert(not args.no_upsert)
        .with_quiet(args.quiet)
    )


def _report_progress(report: BatchReport) -> None:
    log.debug(
        "Batch %d/%d: %d insertions pending, %d replacements",
        report.iteration,
        report.total,
        report.batch.count_insertions(),
        report.batch.count_replacements(),
    )


def main(argv: Sequence[str] | None = None, *, store_factory: StoreFactory | None = None) -> None:
    """Main application entry point."""
    configure_logging(level=optional_env_var("DOCSYNC_LOG_LEVEL", "INFO"))
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
        settings = _build_settings(parsed_args)
        records = _read_records(parsed_args.file)
    except (ValueError, OSError, ConfigurationError):
        log.exception("CLI validation error")
        sys.exit(2)

    try:
        collection = sync_records(
            records,
            collection=parsed_args.collection,
            settings=settings,
            callback=_report_progress,
            store_factory=store_factory,
        )
        log.info(
            "Synchronized %d records into %s: %d replaced, %d inserted",
            len(collection),
            parsed_args.collection,
            collection.summary.matched,
            collection.summary.inserted,
        )
    except Exception:
        log.exception("Fatal error during sync")
        sys.exit(1)


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
