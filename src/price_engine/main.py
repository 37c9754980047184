"""CLI entry point for the price-consensus engine.

Usage:
    # Aggregate one or more items from the local SQLite database:
    python -m src.price_engine.main --item-id 1921-morgan-dollar

    # Load observations from JSON first, then aggregate everything:
    python -m src.price_engine.main --import-json data/observations.json --all

    # Compute without writing, pinned to a fixed instant:
    python -m src.price_engine.main --all --dry-run --as-of 2026-02-01T00:00:00+00:00 \
        --output data/exports/aggregates.json

    # Read and write through Supabase:
    python -m src.price_engine.main --backend supabase --item-id 1921-morgan-dollar
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from src.common.config import settings
from src.common.database import init_db
from src.common.logging import setup_logging
from src.common.models import PriceObservation
from src.storage.base import AggregateStore, PriceHistorySource
from src.storage.memory import InMemoryAggregateStore, InMemoryPriceHistory
from src.storage.sqlite_store import SQLiteAggregateStore, SQLitePriceHistory
from src.storage.supabase_store import SupabaseAggregateStore, SupabasePriceHistory

from .aggregator import PriceAggregator
from .models import AggregationResult

logger = logging.getLogger(__name__)


def load_observations_json(path: str | Path) -> list[PriceObservation]:
    """Read observations from a JSON list (or {"observations": [...]})."""
    data = json.loads(Path(path).read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("observations", [])
    return [PriceObservation.model_validate(row) for row in data]


def _parse_as_of(value: str) -> datetime:
    as_of = datetime.fromisoformat(value)
    if as_of.tzinfo is None:
        as_of = as_of.replace(tzinfo=timezone.utc)
    return as_of


def build_collaborators(
    backend: str,
    *,
    dry_run: bool,
    db_path: str | None = None,
    imported: list[PriceObservation] | None = None,
) -> tuple[PriceHistorySource, AggregateStore]:
    """Create the history source and aggregate store for a backend.

    Imported observations are written to SQLite, except on a dry run, where
    they are aggregated from memory and the database is left untouched.
    """
    history: PriceHistorySource
    store: AggregateStore
    if backend == "supabase":
        history = SupabasePriceHistory()
        store = SupabaseAggregateStore()
    elif dry_run and imported is not None:
        history = InMemoryPriceHistory(imported)
    else:
        init_db(db_path)
        sqlite_history = SQLitePriceHistory(db_path)
        if imported:
            sqlite_history.add_observations(imported)
        history = sqlite_history
        store = SQLiteAggregateStore(db_path)

    if dry_run:
        store = InMemoryAggregateStore()
    return history, store


def _write_output(results: list[AggregationResult], output_path: str) -> None:
    output = {
        "generated_at": datetime.now(timezone.utc).isoformat(),
        "results": [
            {
                **r.to_dict(),
                "aggregates": [a.model_dump(mode="json") for a in r.aggregates],
            }
            for r in results
        ],
    }
    Path(output_path).parent.mkdir(parents=True, exist_ok=True)
    Path(output_path).write_text(json.dumps(output, indent=2), encoding="utf-8")
    logger.info("Output written to %s", output_path)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Price Consensus Engine")
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument(
        "--item-id",
        action="append",
        dest="item_ids",
        help="Item to aggregate (repeatable)",
    )
    group.add_argument(
        "--all",
        action="store_true",
        help="Aggregate every item with observations",
    )
    parser.add_argument(
        "--backend",
        choices=["sqlite", "supabase"],
        default="sqlite",
        help="Where observations are read from and aggregates written to (default: sqlite)",
    )
    parser.add_argument(
        "--db-path",
        type=str,
        default=None,
        help="SQLite database path (default: settings.database.db_path)",
    )
    parser.add_argument(
        "--import-json",
        type=str,
        help="Load observations from a JSON file into SQLite before aggregating "
        "(with --dry-run they are aggregated in memory and not stored)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Compute aggregates without writing them",
    )
    parser.add_argument(
        "--as-of",
        type=_parse_as_of,
        default=None,
        help="Pin the aggregation instant (ISO-8601) for reproducible runs",
    )
    parser.add_argument(
        "--output",
        type=str,
        help="Output JSON file path",
    )

    args = parser.parse_args(argv)
    setup_logging(settings.log_level, module_name="src")

    if args.import_json and args.backend != "sqlite":
        parser.error("--import-json is only supported with the sqlite backend")

    imported = load_observations_json(args.import_json) if args.import_json else None
    history, store = build_collaborators(
        args.backend, dry_run=args.dry_run, db_path=args.db_path, imported=imported
    )

    clock = (lambda: args.as_of) if args.as_of else None
    aggregator = PriceAggregator(history, store, config=settings.aggregation, clock=clock)

    if args.all:
        results = aggregator.aggregate_all()
    else:
        results = aggregator.aggregate_items(args.item_ids)

    summary = PriceAggregator.summarize(results)
    logger.info(
        "=== Summary: %d items, %d completed (%d partial), %d not found, "
        "%d failed, %d grades published ===",
        summary.total_items, summary.completed, summary.partial,
        summary.not_found, summary.failed, summary.grades_published,
    )

    if args.output:
        _write_output(results, args.output)

    if results and summary.completed == 0:
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
