"""Data models for ranking documents."""

from __future__ import annotations

from typing import Any, TypedDict

from padelrank.core.types import FirestoreDocument


class ConfigBackup(TypedDict, total=False):
    """Pre-migration snapshot of a ranking's config, keyed by ranking id."""

    rankingId: str
    format: str
    config: Any
    hadConfig: bool
    migratedBy: str
    migratedAt: Any


class Ranking(FirestoreDocument, total=False):
    """A ranking (tournament) document in Firestore."""

    nombre: str
    format: str
    ownerId: str
    config: dict[str, Any]
    status: str
