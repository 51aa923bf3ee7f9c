"""
Copy a local document store into the hosted (Supabase) store.

Run once when a congregation moves from demo mode to the hosted backend;
safe to re-run (records that already exist remotely are skipped).

    python -m gatherkids.migrate --local-url sqlite:///gatherkids_local.db
    python -m gatherkids.migrate --collections households,children --dry-run

Needs SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY in the environment.
Timestamps and ids are copied as stored; nothing is re-stamped.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from typing import List, Optional, Sequence

from gatherkids import config
from gatherkids.core.logging import configure_logging
from gatherkids.database.contract import DatabaseAdapter
from gatherkids.database.entities import ENTITIES, get_spec
from gatherkids.database.errors import ConfigurationError, DataAccessError, DuplicateRecordError
from gatherkids.database.factory import create_maintenance_adapter
from gatherkids.database.local_adapter import LocalDatabaseAdapter
from gatherkids.database.remote_adapter import RemoteDatabaseAdapter

logger = logging.getLogger(__name__)


@dataclass
class CollectionReport:
    collection: str
    copied: int = 0
    skipped: int = 0
    errors: int = 0


async def copy_collection(
    local: DatabaseAdapter,
    remote: RemoteDatabaseAdapter,
    collection: str,
    *,
    dry_run: bool = False,
) -> CollectionReport:
    spec = get_spec(collection)
    report = CollectionReport(collection)
    for record in await local.list_records(collection):
        record_id = record.record_id
        try:
            if await remote.get_record(collection, record_id) is not None:
                report.skipped += 1
                continue
            if not dry_run:
                await remote.client.insert(collection, spec.mapper.to_backend(record), record_id)
            report.copied += 1
        except DuplicateRecordError:
            report.skipped += 1
        except DataAccessError as exc:
            logger.error("Copy %s/%s failed: %s", collection, record_id, exc)
            report.errors += 1
    return report


async def migrate_local_to_remote(
    local: DatabaseAdapter,
    remote: RemoteDatabaseAdapter,
    collections: Optional[Sequence[str]] = None,
    *,
    dry_run: bool = False,
) -> List[CollectionReport]:
    reports = []
    for collection in collections or list(ENTITIES):
        report = await copy_collection(local, remote, collection, dry_run=dry_run)
        logger.info("%s: %d copied, %d skipped, %d errors",
                    collection, report.copied, report.skipped, report.errors)
        reports.append(report)
    return reports


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Copy the local gatherKids store into Supabase")
    parser.add_argument(
        "--local-url",
        default=config.LOCAL_DATABASE_URL,
        help="SQLAlchemy URL of the local store (default: %(default)s)",
    )
    parser.add_argument(
        "--collections",
        default="",
        help="Comma-separated collections to copy (default: all)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Count what would be copied without writing",
    )
    return parser


def _parse_collections(raw: str) -> List[str]:
    names = [name.strip() for name in raw.split(",") if name.strip()]
    for name in names:
        get_spec(name)
    return names


async def _run(args: argparse.Namespace, remote: RemoteDatabaseAdapter) -> List[CollectionReport]:
    local = LocalDatabaseAdapter(args.local_url)
    try:
        return await migrate_local_to_remote(
            local, remote, _parse_collections(args.collections), dry_run=args.dry_run,
        )
    finally:
        await local.aclose()
        await remote.aclose()


def main(argv: Optional[Sequence[str]] = None) -> int:
    configure_logging()
    args = build_parser().parse_args(argv)

    print("=" * 60)
    print("  gatherKids - Local -> Supabase Migration" + ("  [DRY RUN]" if args.dry_run else ""))
    print("=" * 60)

    try:
        remote = create_maintenance_adapter()
    except ConfigurationError as exc:
        print(f"  {exc.message}")
        return 2

    try:
        reports = asyncio.run(_run(args, remote))
    except DataAccessError as exc:
        print(f"  Migration aborted: {exc}")
        return 1

    print()
    print("  Migration Summary:")
    for report in reports:
        print(f"  {report.collection:<22} copied {report.copied:>6,}  "
              f"skipped {report.skipped:>6,}  errors {report.errors:>4,}")
    print("=" * 60)
    return 1 if any(r.errors for r in reports) else 0


if __name__ == "__main__":
    sys.exit(main())
