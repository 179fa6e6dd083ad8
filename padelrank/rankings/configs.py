"""Format-specific ranking configuration shapes and their defaults.

Every ranking stores its settings under ``config``. Older rankings keep them
as flat keys whose meaning depends on the ranking's ``format``; newer ones
keep a nested ``"<format>Config"`` record. The schemas below describe, for
each format, which settings that record holds, where the flat layout kept
them, and what to fall back to when neither has a value.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from padelrank.errors import ConfigValidationError

logger = logging.getLogger(__name__)


class RankingFormat(str, Enum):
    """The tournament rulesets a ranking can be played under."""

    CLASSIC = "classic"
    INDIVIDUAL = "individual"
    PAIRS = "pairs"
    AMERICANO = "americano"
    MEXICANO = "mexicano"
    POZO = "pozo"
    HYBRID = "hybrid"
    ELIMINATION = "elimination"

    @property
    def config_key(self) -> str:
        """Name of the nested config record for this format."""
        return f"{self.value}Config"

    @classmethod
    def from_value(cls, value: Any) -> Optional[RankingFormat]:
        """Return the matching format, or None for an unrecognized tag."""
        try:
            return cls(value)
        except ValueError:
            return None


DEFAULT_FORMAT = RankingFormat.CLASSIC
NAMESPACED_KEYS = tuple(fmt.config_key for fmt in RankingFormat)

SCORING_MODES = ("16", "21", "24", "31", "32", "custom", "per-game")
POZO_SCORING_TYPES = ("24", "32", "per-game", "custom", "sets")

NUMBER = "number"
STRING = "string"
BOOLEAN = "boolean"


@dataclass(frozen=True)
class ConfigField:
    """A single setting of a format config.

    ``default`` is written during migration when the flat layout has no
    value; fields without one are left out instead. ``read_default`` only
    fills in documented defaults for rankings that have no config at all.
    """

    name: str
    default: Any = None
    legacy_keys: tuple[str, ...] = ()
    kind: str = NUMBER
    choices: tuple[str, ...] = ()
    read_default: Any = None

    @property
    def sources(self) -> tuple[str, ...]:
        """Flat keys that may hold this setting, in order of preference."""
        return self.legacy_keys or (self.name,)

    def coerce(self, key: str, value: Any) -> Any:
        """Return ``value`` in this field's kind, converting safe string forms.

        Numeric strings become numbers, ``"true"``/``"false"`` become
        booleans and numbers become strings where a string is expected.
        Anything else is kept as stored and logged.
        """
        if self._accepts(value):
            return value
        converted = self._convert(value)
        if converted is not None and self._accepts(converted):
            return converted
        logger.warning(
            f"Keeping unexpected value {value!r} for '{key}' "
            f"(expected {self._expected()})"
        )
        return value

    def _accepts(self, value: Any) -> bool:
        if self.kind == NUMBER:
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        if self.kind == BOOLEAN:
            return isinstance(value, bool)
        return isinstance(value, str) and (not self.choices or value in self.choices)

    def _convert(self, value: Any) -> Any:
        if self.kind == NUMBER and isinstance(value, str):
            text = value.strip()
            for number in (int, float):
                try:
                    return number(text)
                except ValueError:
                    continue
        elif self.kind == BOOLEAN and isinstance(value, str):
            return {"true": True, "false": False}.get(value.strip().lower())
        elif self.kind == STRING and isinstance(value, int) and not isinstance(
            value, bool
        ):
            return str(value)
        return None

    def _expected(self) -> str:
        if self.choices:
            return "one of " + ", ".join(self.choices)
        return f"a {self.kind}"


_POINT_FIELDS = (
    ConfigField("pointsPerWin2_0", 4),
    ConfigField("pointsPerWin2_1", 3),
    ConfigField("pointsDraw", 2),
    ConfigField("pointsPerLoss2_1", 1),
    ConfigField("pointsPerLoss2_0", 0),
)

_POINT_BASED_FIELDS = (
    ConfigField("scoringMode", "32", kind=STRING, choices=SCORING_MODES),
    ConfigField("totalPoints", legacy_keys=("customPoints",)),
    ConfigField(
        "variant",
        kind=STRING,
        choices=("individual", "pairs"),
        read_default="individual",
    ),
)

FORMAT_SCHEMAS: dict[RankingFormat, tuple[ConfigField, ...]] = {
    RankingFormat.CLASSIC: _POINT_FIELDS
    + (
        ConfigField("maxPlayersPerDivision", 4),
        ConfigField("promotionCount", 2),
        ConfigField("relegationCount", 2),
    ),
    RankingFormat.INDIVIDUAL: _POINT_FIELDS,
    RankingFormat.PAIRS: _POINT_FIELDS,
    RankingFormat.AMERICANO: _POINT_BASED_FIELDS,
    RankingFormat.MEXICANO: _POINT_BASED_FIELDS,
    RankingFormat.POZO: (
        ConfigField(
            "variant", "individual", kind=STRING, choices=("individual", "fixed-pairs")
        ),
        ConfigField("scoringMode", "32", kind=STRING, choices=SCORING_MODES),
        ConfigField("scoringType", kind=STRING, choices=POZO_SCORING_TYPES),
        ConfigField("totalPoints", legacy_keys=("customPoints",)),
        ConfigField("numCourts", 4, legacy_keys=("numCourts", "courts")),
        ConfigField("goldenPoint", True, kind=BOOLEAN),
    ),
    RankingFormat.HYBRID: (
        ConfigField("pairsPerGroup", 4),
        ConfigField("qualifiersPerGroup", 2),
        ConfigField("consolationQualifiersPerGroup", 0),
    )
    + _POINT_FIELDS,
    RankingFormat.ELIMINATION: (
        ConfigField("consolation", False, kind=BOOLEAN),
        ConfigField("thirdPlaceMatch", False, kind=BOOLEAN),
        ConfigField("type", "pairs", kind=STRING, choices=("individual", "pairs")),
    ),
}


def default_config(fmt: RankingFormat) -> dict[str, Any]:
    """Return a fresh copy of the documented defaults for ``fmt``."""
    defaults = {}
    for config_field in FORMAT_SCHEMAS[fmt]:
        value = (
            config_field.default
            if config_field.default is not None
            else config_field.read_default
        )
        if value is not None:
            defaults[config_field.name] = value
    return defaults


@dataclass
class LegacyConfig:
    """A flat config split into the settings a format knows and everything else."""

    format: RankingFormat
    settings: dict[str, Any] = field(default_factory=dict)
    extras: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def decode(cls, raw: Optional[Mapping[str, Any]], fmt: RankingFormat) -> LegacyConfig:
        """Pick out the flat settings ``fmt`` cares about, coerced to their kinds."""
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise ConfigValidationError(
                f"Expected a mapping for config, got {type(raw).__name__}."
            )

        settings: dict[str, Any] = {}
        consumed: set[str] = set()
        for config_field in FORMAT_SCHEMAS[fmt]:
            consumed.update(config_field.sources)
            for key in config_field.sources:
                value = raw.get(key)
                if value is not None:
                    settings[config_field.name] = config_field.coerce(key, value)
                    break

        extras = {k: v for k, v in raw.items() if k not in consumed}
        return cls(format=fmt, settings=settings, extras=extras)

    def to_format_config(self) -> dict[str, Any]:
        """Build the nested config record, filling gaps with migration defaults."""
        record = {}
        for config_field in FORMAT_SCHEMAS[self.format]:
            value = self.settings.get(config_field.name, config_field.default)
            if value is not None:
                record[config_field.name] = value
        return record


def get_format_config(
    config: Optional[Mapping[str, Any]], fmt: str
) -> Optional[dict[str, Any]]:
    """Read the settings of ``fmt`` from a ranking config of either layout.

    The nested record wins when present; otherwise the flat keys are read.
    A ranking without a usable config gets the documented defaults. Unknown
    formats return None.
    """
    ranking_format = RankingFormat.from_value(fmt)
    if ranking_format is None:
        return None
    if not config or not isinstance(config, Mapping):
        return default_config(ranking_format)

    nested = config.get(ranking_format.config_key)
    if isinstance(nested, Mapping):
        return dict(nested)
    return LegacyConfig.decode(config, ranking_format).to_format_config()
