"""Service layer for the ranking config migration."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Optional, cast

from firebase_admin import firestore

from padelrank.constants import (
    CONFIG_BACKUPS_COLLECTION,
    FIRESTORE_BATCH_LIMIT,
    MIGRATION_PREVIEW_SAMPLE_SIZE,
    MIGRATION_RETRY_ATTEMPTS,
    MIGRATION_RETRY_BASE_DELAY,
    RANKING_CONFIG,
    RANKING_FORMAT,
    RANKING_NAME,
    RANKING_OWNER_ID,
    RANKINGS_COLLECTION,
    UNNAMED_RANKING,
)
from padelrank.errors import MigrationError, NotFoundError, ValidationError
from padelrank.rankings.configs import RankingFormat
from padelrank.rankings.models import ConfigBackup, Ranking

from .batch import BatchProcessor
from .migrator import is_migrated, migrate_ranking_config, resolve_format
from .models import (
    STATUS_ERROR,
    STATUS_MIGRATED,
    STATUS_RESTORED,
    STATUS_SKIPPED_MIGRATED,
    STATUS_SKIPPED_NOT_OWNER,
    STATUS_SKIPPED_UNKNOWN_FORMAT,
    STATUS_WOULD_MIGRATE,
    STATUS_WOULD_RESTORE,
    DocumentResult,
    MigrationPlan,
    MigrationRecord,
    MigrationStats,
    PreviewSummary,
    RollbackStats,
    new_migration_stats,
)
from .retry import RetryPolicy

if TYPE_CHECKING:
    from google.cloud.firestore_v1.base_document import DocumentSnapshot
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, sort_keys=True, default=str)


def summarize_preview(
    records: list[MigrationRecord], sample_size: int = MIGRATION_PREVIEW_SAMPLE_SIZE
) -> PreviewSummary:
    """Count preview records and pick the first few diffs for review."""
    pending = [r for r in records if r["needsMigration"]]
    errors = [r for r in records if r.get("error")]

    by_format: dict[str, int] = {}
    for record in pending:
        by_format[record["format"]] = by_format.get(record["format"], 0) + 1

    return {
        "total": len(records),
        "needs_migration": len(pending),
        "already_migrated": len(
            [r for r in records if r.get("status") == STATUS_SKIPPED_MIGRATED]
        ),
        "errors": len(errors),
        "by_format": by_format,
        "examples": pending[:sample_size],
    }


class MigrationService:
    """Previews and applies the namespaced config migration over the rankings.

    Preview and execution share :meth:`plan`, so a dry run classifies and
    transforms every ranking exactly the way a live run will.
    """

    def __init__(
        self,
        db: Client,
        collection: str = RANKINGS_COLLECTION,
        backups_collection: str = CONFIG_BACKUPS_COLLECTION,
        batch_size: int = FIRESTORE_BATCH_LIMIT,
        retry: Optional[RetryPolicy] = None,
        keep_backups: bool = True,
    ) -> None:
        self.db = db
        self.collection = collection
        self.backups_collection = backups_collection
        self.batch_size = batch_size
        self.retry = retry or RetryPolicy()
        self.keep_backups = keep_backups

    @classmethod
    def from_config(cls, db: Client, config: Mapping[str, Any]) -> MigrationService:
        """Build a service from Flask app config values."""
        retry = RetryPolicy(
            attempts=config.get("MIGRATION_RETRY_ATTEMPTS", MIGRATION_RETRY_ATTEMPTS),
            base_delay=config.get(
                "MIGRATION_RETRY_BASE_DELAY", MIGRATION_RETRY_BASE_DELAY
            ),
        )
        return cls(
            db,
            collection=config.get("RANKINGS_COLLECTION", RANKINGS_COLLECTION),
            backups_collection=config.get(
                "CONFIG_BACKUPS_COLLECTION", CONFIG_BACKUPS_COLLECTION
            ),
            batch_size=config.get("MIGRATION_BATCH_SIZE", FIRESTORE_BATCH_LIMIT),
            retry=retry,
            keep_backups=config.get("MIGRATION_KEEP_BACKUPS", True),
        )

    # Reads

    def _fetch_rankings(self) -> list[DocumentSnapshot]:
        """Read the whole rankings collection. Failure here ends the run."""
        try:
            return self.retry.call(
                lambda: list(self.db.collection(self.collection).stream()),
                description=f"read of '{self.collection}'",
            )
        except Exception as e:
            logger.error(f"Could not read '{self.collection}': {e}")
            raise MigrationError(f"Could not read rankings: {e}") from e

    def _fetch_ranking(self, ranking_id: str) -> DocumentSnapshot:
        if not ranking_id:
            raise ValidationError("A ranking id is required.")
        ref = self.db.collection(self.collection).document(ranking_id)
        try:
            snapshot = self.retry.call(ref.get, description=f"read of {ranking_id}")
        except Exception as e:
            logger.error(f"Could not read ranking {ranking_id}: {e}")
            raise MigrationError(f"Could not read ranking {ranking_id}: {e}") from e
        if not snapshot.exists:
            raise NotFoundError(f"Ranking {ranking_id} not found.")
        return snapshot

    @staticmethod
    def plan(snapshot: DocumentSnapshot, owner_id: Optional[str] = None) -> MigrationPlan:
        """Classify a ranking and compute its new config when it needs one.

        Raises when the document cannot be read or transformed.
        """
        data = cast(Ranking, snapshot.to_dict() or {})
        name = data.get(RANKING_NAME) or UNNAMED_RANKING

        # Someone else's ranking is skipped before its format is resolved.
        ranking_owner = data.get(RANKING_OWNER_ID)
        if owner_id and ranking_owner and ranking_owner != owner_id:
            return MigrationPlan(
                snapshot.id,
                name,
                str(data.get(RANKING_FORMAT) or ""),
                STATUS_SKIPPED_NOT_OWNER,
            )

        fmt = resolve_format(data.get(RANKING_FORMAT))
        old_config = data.get(RANKING_CONFIG)
        if is_migrated(old_config):
            return MigrationPlan(snapshot.id, name, fmt, STATUS_SKIPPED_MIGRATED)

        if RankingFormat.from_value(fmt) is None:
            return MigrationPlan(snapshot.id, name, fmt, STATUS_SKIPPED_UNKNOWN_FORMAT)

        new_config = migrate_ranking_config(old_config, fmt)
        return MigrationPlan(
            snapshot.id, name, fmt, STATUS_WOULD_MIGRATE, old_config, new_config
        )

    def preview(self) -> list[MigrationRecord]:
        """Classify every ranking without writing anything."""
        records: list[MigrationRecord] = []
        for snapshot in self._fetch_rankings():
            try:
                plan = self.plan(snapshot)
            except Exception as e:
                logger.error(f"Error previewing {snapshot.id}: {e}")
                records.append(
                    {
                        "id": snapshot.id,
                        "name": UNNAMED_RANKING,
                        "format": "",
                        "needsMigration": False,
                        "status": STATUS_ERROR,
                        "error": str(e),
                    }
                )
                continue
            records.append(plan.to_record())

        pending = len([r for r in records if r["needsMigration"]])
        logger.info(f"Preview complete: {pending} of {len(records)} rankings need migration")
        return records

    # Writes

    def migrate_all(
        self,
        dry_run: bool = True,
        owner_id: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> MigrationStats:
        """Migrate every ranking that still has a flat config.

        With ``owner_id`` set, rankings owned by someone else are skipped.
        Errors on one ranking are recorded and the run moves on.
        """
        logger.info(f"Starting migration ({'DRY RUN' if dry_run else 'LIVE'})")
        snapshots = self._fetch_rankings()
        logger.info(f"Found {len(snapshots)} rankings to process")

        stats = new_migration_stats(dry_run)
        stats["total"] = len(snapshots)
        batch = None if dry_run else self._new_batch()
        for snapshot in snapshots:
            self._migrate_snapshot(snapshot, stats, batch, owner_id, operator_id)
        self._finish(stats, batch)
        return stats

    def migrate_single(
        self,
        ranking_id: str,
        dry_run: bool = True,
        owner_id: Optional[str] = None,
        operator_id: Optional[str] = None,
    ) -> MigrationStats:
        """Migrate one ranking through the same gates as a full run."""
        logger.info(
            f"Migrating single ranking {ranking_id} ({'DRY RUN' if dry_run else 'LIVE'})"
        )
        snapshot = self._fetch_ranking(ranking_id)

        stats = new_migration_stats(dry_run)
        stats["total"] = 1
        batch = None if dry_run else self._new_batch()
        self._migrate_snapshot(snapshot, stats, batch, owner_id, operator_id)
        self._finish(stats, batch)
        return stats

    def _new_batch(self) -> BatchProcessor:
        return BatchProcessor(self.db, limit=self.batch_size, retry=self.retry)

    def _migrate_snapshot(
        self,
        snapshot: DocumentSnapshot,
        stats: MigrationStats,
        batch: Optional[BatchProcessor],
        owner_id: Optional[str],
        operator_id: Optional[str],
    ) -> None:
        try:
            plan = self.plan(snapshot, owner_id)
        except Exception as e:
            self._record_error(stats, snapshot.id, "", e)
            return

        if plan.status == STATUS_SKIPPED_NOT_OWNER:
            logger.info(f"Skipping {plan.id} ({plan.format}) - not owner")
            stats["skipped_not_owner"] += 1
        elif plan.status == STATUS_SKIPPED_MIGRATED:
            logger.info(f"Skipping {plan.id} ({plan.format}) - already migrated")
            stats["skipped_already_migrated"] += 1
        elif plan.status == STATUS_SKIPPED_UNKNOWN_FORMAT:
            logger.warning(f"Skipping {plan.id} - unknown format '{plan.format}'")

        if not plan.needs_migration:
            stats["skipped"] += 1
            stats["results"].append(
                {"id": plan.id, "format": plan.format, "status": plan.status}
            )
            return

        if batch is None:
            logger.info(
                f"Would migrate {plan.id} ({plan.format})\n"
                f"   Old config: {_dump(plan.old_config)}\n"
                f"   New config: {_dump(plan.new_config)}"
            )
            status = STATUS_WOULD_MIGRATE
        else:
            try:
                self._stage(batch, snapshot, plan, operator_id)
            except Exception as e:
                self._record_error(stats, plan.id, plan.format, e)
                return
            logger.info(f"Migrated {plan.id} ({plan.format})")
            status = STATUS_MIGRATED

        stats["migrated"] += 1
        stats["by_format"][plan.format] += 1
        stats["results"].append({"id": plan.id, "format": plan.format, "status": status})

    def _stage(
        self,
        batch: BatchProcessor,
        snapshot: DocumentSnapshot,
        plan: MigrationPlan,
        operator_id: Optional[str],
    ) -> None:
        """Stage the config update, with its backup in the same batch."""
        batch.reserve(2 if self.keep_backups else 1)
        if self.keep_backups:
            data = snapshot.to_dict() or {}
            backup: ConfigBackup = {
                "rankingId": plan.id,
                "format": plan.format,
                "config": plan.old_config,
                "hadConfig": RANKING_CONFIG in data,
                "migratedBy": operator_id or "cli",
                "migratedAt": firestore.SERVER_TIMESTAMP,
            }
            backup_ref = self.db.collection(self.backups_collection).document(plan.id)
            batch.set(backup_ref, dict(backup), key=plan.id)
        batch.update(snapshot.reference, {RANKING_CONFIG: plan.new_config}, key=plan.id)

    @staticmethod
    def _record_error(
        stats: MigrationStats | RollbackStats,
        doc_id: str,
        fmt: str,
        error: Exception,
        action: str = "migrating",
    ) -> None:
        logger.error(f"Error {action} {doc_id}: {error}")
        stats["errors"] += 1
        stats["results"].append(
            {"id": doc_id, "format": fmt, "status": STATUS_ERROR, "error": str(error)}
        )

    def _finish(self, stats: MigrationStats, batch: Optional[BatchProcessor]) -> None:
        """Commit the last partial batch and charge failed commits to their rankings."""
        if batch is not None:
            batch.commit()
            self._apply_batch_failures(stats, batch)

        logger.info(
            f"Migration summary: total={stats['total']} migrated={stats['migrated']} "
            f"skipped={stats['skipped']} errors={stats['errors']}"
        )
        for fmt, count in stats["by_format"].items():
            if count:
                logger.info(f"   {fmt}: {count}")

    @staticmethod
    def _apply_batch_failures(
        stats: Any, batch: BatchProcessor, counter: str = "migrated"
    ) -> None:
        """Move rankings whose batch failed to commit from ``counter`` to errors."""
        if not batch.failures:
            return
        by_id: dict[str, DocumentResult] = {r["id"]: r for r in stats["results"]}
        for failure in batch.failures:
            for key in failure.keys:
                result = by_id.get(key)
                if result is None or result.get("status") == STATUS_ERROR:
                    continue
                logger.error(f"Error writing {key}: batch commit failed")
                stats[counter] -= 1
                if "by_format" in stats:
                    stats["by_format"][result["format"]] -= 1
                stats["errors"] += 1
                result["status"] = STATUS_ERROR
                result["error"] = failure.error

    # Rollback

    def rollback(
        self, ranking_id: Optional[str] = None, dry_run: bool = True
    ) -> RollbackStats:
        """Restore configs from the snapshots taken during live migrations."""
        target = f"for {ranking_id}" if ranking_id else "for all rankings"
        logger.info(
            f"Rolling back migration {target} ({'DRY RUN' if dry_run else 'LIVE'})"
        )
        backups = self._fetch_backups(ranking_id)
        stats: RollbackStats = {
            "dry_run": dry_run,
            "total": len(backups),
            "restored": 0,
            "errors": 0,
            "results": [],
        }
        batch = None if dry_run else self._new_batch()

        for backup in backups:
            try:
                self._restore(backup, batch)
            except Exception as e:
                self._record_error(stats, backup.id, "", e, action="restoring")
                continue
            stats["restored"] += 1
            stats["results"].append(
                {
                    "id": backup.id,
                    "status": STATUS_WOULD_RESTORE if dry_run else STATUS_RESTORED,
                }
            )

        if batch is not None:
            batch.commit()
            self._apply_batch_failures(stats, batch, counter="restored")
        logger.info(
            f"Rollback summary: total={stats['total']} restored={stats['restored']} "
            f"errors={stats['errors']}"
        )
        return stats

    def _fetch_backups(self, ranking_id: Optional[str]) -> list[DocumentSnapshot]:
        backups_ref = self.db.collection(self.backups_collection)
        try:
            if ranking_id:
                snapshot = self.retry.call(
                    backups_ref.document(ranking_id).get,
                    description=f"read of backup {ranking_id}",
                )
                backups = [snapshot] if snapshot.exists else []
            else:
                backups = self.retry.call(
                    lambda: list(backups_ref.stream()),
                    description=f"read of '{self.backups_collection}'",
                )
        except Exception as e:
            logger.error(f"Could not read '{self.backups_collection}': {e}")
            raise MigrationError(f"Could not read config backups: {e}") from e

        if ranking_id and not backups:
            raise NotFoundError(f"No config backup found for ranking {ranking_id}.")
        return backups

    def _restore(
        self, backup: DocumentSnapshot, batch: Optional[BatchProcessor]
    ) -> None:
        data = cast(ConfigBackup, backup.to_dict() or {})
        ranking_id = data.get("rankingId") or backup.id
        ranking_ref = self.db.collection(self.collection).document(ranking_id)
        if not self.retry.call(
            ranking_ref.get, description=f"read of {ranking_id}"
        ).exists:
            raise NotFoundError(f"Ranking {ranking_id} no longer exists.")

        if data.get("hadConfig", True):
            restored: Any = data.get("config")
        else:
            restored = firestore.DELETE_FIELD

        if batch is None:
            logger.info(
                f"Would restore {ranking_id}\n   Config: {_dump(data.get('config'))}"
            )
            return
        batch.reserve(2)
        batch.update(ranking_ref, {RANKING_CONFIG: restored}, key=backup.id)
        batch.delete(backup.reference, key=backup.id)
        logger.info(f"Restored {ranking_id}")
