"""Ranking documents and their format-specific configuration."""

from .configs import (
    DEFAULT_FORMAT,
    FORMAT_SCHEMAS,
    NAMESPACED_KEYS,
    RankingFormat,
    default_config,
    get_format_config,
)

__all__ = [
    "DEFAULT_FORMAT",
    "FORMAT_SCHEMAS",
    "NAMESPACED_KEYS",
    "RankingFormat",
    "default_config",
    "get_format_config",
]
