"""Transform flat ranking configs into the namespaced layout."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Optional

from padelrank.errors import ConfigValidationError
from padelrank.rankings.configs import (
    DEFAULT_FORMAT,
    NAMESPACED_KEYS,
    LegacyConfig,
    RankingFormat,
)

logger = logging.getLogger(__name__)


def resolve_format(value: Any) -> str:
    """Return the format tag of a ranking, treating a missing tag as classic."""
    if value is None or value == "":
        return DEFAULT_FORMAT.value
    if not isinstance(value, str):
        raise ConfigValidationError(f"Invalid format {value!r}.")
    return value


def is_migrated(config: Any) -> bool:
    """Check whether a config already carries any namespaced record.

    Any of the eight records counts, not only the one matching the ranking's
    current format.
    """
    if not isinstance(config, Mapping):
        return False
    return any(config.get(key) is not None for key in NAMESPACED_KEYS)


def migrate_ranking_config(
    old_config: Optional[Mapping[str, Any]], fmt: str
) -> dict[str, Any]:
    """Return a copy of ``old_config`` with the ``"<format>Config"`` record added.

    Flat keys are kept as they are. A record that already exists is left
    untouched, so running this twice changes nothing the second time.
    Unrecognized formats get an unchanged copy back.
    """
    if old_config is None:
        old_config = {}
    if not isinstance(old_config, Mapping):
        raise ConfigValidationError(
            f"Expected a mapping for config, got {type(old_config).__name__}."
        )

    new_config = dict(old_config)
    ranking_format = RankingFormat.from_value(fmt)
    if ranking_format is None:
        logger.debug(f"No config migration for unknown format '{fmt}'")
        return new_config

    if new_config.get(ranking_format.config_key) is None:
        legacy = LegacyConfig.decode(old_config, ranking_format)
        new_config[ranking_format.config_key] = legacy.to_format_config()
    return new_config
