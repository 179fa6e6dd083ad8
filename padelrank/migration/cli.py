"""Command line for the ranking config migration.

Usage:
    padelrank-migrate preview                  - Show what would change
    padelrank-migrate all [--live]             - Migrate all rankings
    padelrank-migrate single <id> [--live]     - Migrate a single ranking
    padelrank-migrate rollback [<id>] [--live] - Restore configs from backups
    padelrank-migrate players [--live]         - Backfill missing player stats

Everything runs as a dry run unless --live is given.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any, Optional

from firebase_admin import firestore

from padelrank import create_app
from padelrank.errors import AppError

from .players import backfill_player_stats
from .services import MigrationService, summarize_preview

logger = logging.getLogger("padelrank.migration.cli")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the migration commands."""
    parser = argparse.ArgumentParser(
        prog="padelrank-migrate",
        description="Migrate ranking configs to the namespaced layout.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("preview", help="Show which rankings need migration")

    migrate_all = commands.add_parser("all", help="Migrate all rankings")
    migrate_all.add_argument("--live", action="store_true", help="Apply changes")

    single = commands.add_parser("single", help="Migrate a single ranking")
    single.add_argument("ranking_id")
    single.add_argument("--live", action="store_true", help="Apply changes")

    rollback = commands.add_parser("rollback", help="Restore configs from backups")
    rollback.add_argument("ranking_id", nargs="?")
    rollback.add_argument("--live", action="store_true", help="Apply changes")

    players = commands.add_parser("players", help="Backfill missing player stats")
    players.add_argument("--live", action="store_true", help="Apply changes")

    return parser


def _print_preview(service: MigrationService, sample_size: int) -> dict[str, Any]:
    summary = summarize_preview(service.preview(), sample_size)
    logger.info(f"Already migrated: {summary['already_migrated']}")
    logger.info(f"Need migration: {summary['needs_migration']}")
    if summary["errors"]:
        logger.warning(f"Unreadable rankings: {summary['errors']}")
    for fmt, count in summary["by_format"].items():
        logger.info(f"   {fmt}: {count}")
    for index, example in enumerate(summary["examples"], start=1):
        logger.info(f"{index}. {example['name']} ({example['format']}) ID: {example['id']}")
        logger.info(f"   Before: {json.dumps(example.get('oldConfig'), default=str)}")
        logger.info(f"   After: {json.dumps(example.get('newConfig'), default=str)}")
    return summary


def main(argv: Optional[list[str]] = None, app: Any = None) -> int:
    """Run a migration command. Returns the process exit status."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s"
    )

    live = getattr(args, "live", False)
    if args.command != "preview" and not live:
        logger.warning("Running in DRY RUN mode. Use --live to apply changes.")

    try:
        app = app or create_app()
        with app.app_context():
            db = firestore.client()
    except Exception as e:
        logger.error(f"Could not connect to Firestore: {e}")
        return 1

    with app.app_context():
        service = MigrationService.from_config(db, app.config)
        try:
            if args.command == "preview":
                stats = _print_preview(
                    service, app.config["MIGRATION_PREVIEW_SAMPLE_SIZE"]
                )
            elif args.command == "all":
                stats = service.migrate_all(dry_run=not live)
            elif args.command == "single":
                stats = service.migrate_single(args.ranking_id, dry_run=not live)
            elif args.command == "rollback":
                stats = service.rollback(args.ranking_id, dry_run=not live)
            else:
                stats = backfill_player_stats(
                    db,
                    dry_run=not live,
                    collection=app.config["PLAYERS_COLLECTION"],
                    batch_size=app.config["MIGRATION_BATCH_SIZE"],
                    retry=service.retry,
                )
        except AppError as e:
            logger.error(f"Migration failed: {e.message}")
            return 1

    if stats["errors"]:
        logger.warning(f"Completed with {stats['errors']} errors.")
        return 1
    logger.info("Complete.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
