"""Migration of ranking configs from the flat to the namespaced layout."""

from .migrator import is_migrated, migrate_ranking_config, resolve_format
from .services import MigrationService, summarize_preview

__all__ = [
    "MigrationService",
    "is_migrated",
    "migrate_ranking_config",
    "resolve_format",
    "summarize_preview",
]
