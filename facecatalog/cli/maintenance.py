#!/usr/bin/env python
"""
Face Catalog Maintenance

Storage maintenance tasks for the face catalog.

Usage:
    python -m facecatalog.cli.maintenance init-db
    python -m facecatalog.cli.maintenance cleanup --days <days>
    python -m facecatalog.cli.maintenance reconcile [--delete-orphans]
"""
import argparse
import asyncio
import sys
from datetime import timedelta

from facecatalog.core.container import ServiceContainer
from facecatalog.core.exceptions import FaceCatalogError
from facecatalog.core.logging import setup_logging


async def init_db(container: ServiceContainer, args) -> int:
    count = await container.record_store.count()
    print(f"Database ready ({count} face records)")
    return 0


async def cleanup(container: ServiceContainer, args) -> int:
    deleted = await container.record_store.cleanup(timedelta(days=args.days))
    print(f"Deleted {deleted} face records older than {args.days} days")
    return 0


async def reconcile(container: ServiceContainer, args) -> int:
    report = await container.reconciler.scan()

    print("\n===== Reconciliation Report =====")
    print(f"Rows checked: {report.checked_rows}")
    print(f"Artifacts checked: {report.checked_artifacts}")
    print(f"Orphan artifacts: {len(report.orphan_artifacts)}")
    for orphan in report.orphan_artifacts:
        print(f"  {orphan.face_id}  {orphan.path}")
    print(f"Orphan rows: {len(report.orphan_rows)}")
    for face_id in report.orphan_rows:
        print(f"  {face_id}")
    print("=================================")

    if args.delete_orphans and report.orphan_artifacts:
        removed = await container.reconciler.remove_orphan_artifacts(report)
        print(f"Removed {removed} orphan artifacts")

    return 0 if report.is_consistent else 1


COMMANDS = {
    "init-db": init_db,
    "cleanup": cleanup,
    "reconcile": reconcile,
}


async def main(args) -> int:
    container = ServiceContainer()
    try:
        await container.initialize(with_inference=False, database_url=args.database_url)
        return await COMMANDS[args.command](container, args)
    except FaceCatalogError as e:
        print(f"Error: {str(e)}", file=sys.stderr)
        return 2
    finally:
        await container.cleanup()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Face catalog maintenance")
    parser.add_argument("--database-url", help="Async SQLAlchemy database URL")
    parser.add_argument("--log-level", help="Log level, defaults to LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init-db", help="Create the database schema")

    cleanup_parser = subparsers.add_parser("cleanup", help="Delete records older than a retention period")
    cleanup_parser.add_argument("--days", type=int, required=True, help="Retention period in days")

    reconcile_parser = subparsers.add_parser("reconcile", help="Report rows and artifacts without a counterpart")
    reconcile_parser.add_argument(
        "--delete-orphans",
        action="store_true",
        help="Delete artifacts that have no database row"
    )
    return parser


if __name__ == "__main__":
    args = build_parser().parse_args()
    setup_logging(level=args.log_level, stream=sys.stderr)
    sys.exit(asyncio.run(main(args)))
