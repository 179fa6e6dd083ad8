"""Backfill the stats record on player documents created before it existed."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Optional

from padelrank.constants import FIRESTORE_BATCH_LIMIT, PLAYERS_COLLECTION
from padelrank.errors import MigrationError

from .batch import BatchProcessor
from .models import BackfillStats
from .retry import RetryPolicy

if TYPE_CHECKING:
    from google.cloud.firestore_v1.client import Client

logger = logging.getLogger(__name__)

EMPTY_PLAYER_STATS = {"pj": 0, "pg": 0, "pp": 0, "winrate": 0}


def needs_stats_backfill(player: dict[str, Any]) -> bool:
    """True when a player has no stats record or one without a played count."""
    stats = player.get("stats")
    return not isinstance(stats, dict) or stats.get("pj") is None


def backfill_player_stats(
    db: Client,
    dry_run: bool = True,
    collection: str = PLAYERS_COLLECTION,
    batch_size: int = FIRESTORE_BATCH_LIMIT,
    retry: Optional[RetryPolicy] = None,
) -> BackfillStats:
    """Give every player without stats a zeroed stats record."""
    retry = retry or RetryPolicy()
    logger.info(f"Starting player stats backfill ({'DRY RUN' if dry_run else 'LIVE'})")
    try:
        players = retry.call(
            lambda: list(db.collection(collection).stream()),
            description=f"read of '{collection}'",
        )
    except Exception as e:
        logger.error(f"Could not read '{collection}': {e}")
        raise MigrationError(f"Could not read players: {e}") from e

    stats: BackfillStats = {
        "dry_run": dry_run,
        "total": len(players),
        "updated": 0,
        "skipped": 0,
        "errors": 0,
    }
    batch = None if dry_run else BatchProcessor(db, limit=batch_size, retry=retry)

    for player in players:
        try:
            if not needs_stats_backfill(player.to_dict() or {}):
                stats["skipped"] += 1
                continue
            if batch is not None:
                batch.update(
                    player.reference, {"stats": dict(EMPTY_PLAYER_STATS)}, key=player.id
                )
        except Exception as e:
            logger.error(f"Error backfilling player {player.id}: {e}")
            stats["errors"] += 1
            continue
        stats["updated"] += 1

    if batch is not None:
        batch.commit()
        lost = len(batch.failed_keys)
        stats["updated"] -= lost
        stats["errors"] += lost

    if stats["updated"]:
        logger.info(f"Backfilled stats for {stats['updated']} players")
    else:
        logger.info("All players already have stats - no backfill needed")
    return stats
