"""Data models for migration previews and runs."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, TypedDict

from padelrank.rankings.configs import RankingFormat

# Per-document outcomes
STATUS_MIGRATED = "migrated"
STATUS_WOULD_MIGRATE = "would_migrate"
STATUS_SKIPPED_NOT_OWNER = "skipped_not_owner"
STATUS_SKIPPED_MIGRATED = "skipped_migrated"
STATUS_SKIPPED_UNKNOWN_FORMAT = "skipped_unknown_format"
STATUS_RESTORED = "restored"
STATUS_WOULD_RESTORE = "would_restore"
STATUS_ERROR = "error"


class _MigrationRecordBase(TypedDict):
    id: str
    name: str
    format: str
    needsMigration: bool


class MigrationRecord(_MigrationRecordBase, total=False):
    """One ranking as seen by the read-only preview."""

    status: str
    oldConfig: Any
    newConfig: dict[str, Any]
    error: str


class DocumentResult(TypedDict, total=False):
    """What happened to a single document during a run."""

    id: str
    format: str
    status: str
    error: str


class MigrationStats(TypedDict):
    """Aggregate outcome of a migration run."""

    dry_run: bool
    total: int
    migrated: int
    skipped: int
    skipped_not_owner: int
    skipped_already_migrated: int
    errors: int
    by_format: dict[str, int]
    results: list[DocumentResult]


class PreviewSummary(TypedDict):
    """Counts and sample diffs over a list of preview records."""

    total: int
    needs_migration: int
    already_migrated: int
    errors: int
    by_format: dict[str, int]
    examples: list[MigrationRecord]


class RollbackStats(TypedDict):
    """Aggregate outcome of a rollback run."""

    dry_run: bool
    total: int
    restored: int
    errors: int
    results: list[DocumentResult]


class BackfillStats(TypedDict):
    """Aggregate outcome of the player stats backfill."""

    dry_run: bool
    total: int
    updated: int
    skipped: int
    errors: int


@dataclass
class MigrationPlan:
    """The classification of one ranking, shared by preview and execution."""

    id: str
    name: str
    format: str
    status: str
    old_config: Any = None
    new_config: Optional[dict[str, Any]] = None

    @property
    def needs_migration(self) -> bool:
        """True when the ranking would be written."""
        return self.status == STATUS_WOULD_MIGRATE

    def to_record(self) -> MigrationRecord:
        """Render the plan as a preview record."""
        record: MigrationRecord = {
            "id": self.id,
            "name": self.name,
            "format": self.format,
            "needsMigration": self.needs_migration,
            "status": self.status,
        }
        if self.needs_migration:
            record["oldConfig"] = self.old_config
            record["newConfig"] = self.new_config
        return record


def new_migration_stats(dry_run: bool) -> MigrationStats:
    """Return zeroed run stats with a counter for every known format."""
    return {
        "dry_run": dry_run,
        "total": 0,
        "migrated": 0,
        "skipped": 0,
        "skipped_not_owner": 0,
        "skipped_already_migrated": 0,
        "errors": 0,
        "by_format": {fmt.value: 0 for fmt in RankingFormat},
        "results": [],
    }
