"""Enumerations used throughout the generator."""

from __future__ import annotations

from enum import Enum, IntEnum, unique


@unique
class GrammarSymbol(IntEnum):
    """Closed set of node kinds a grammar can produce."""

    STAR = 0
    PLANET = 1
    MOON = 2
    GROUP = 3


# Body kinds are the grammar symbols that become GeneratedBody records.
BODY_SYMBOLS: frozenset[GrammarSymbol] = frozenset(
    {GrammarSymbol.STAR, GrammarSymbol.PLANET, GrammarSymbol.MOON}
)


@unique
class Domain(IntEnum):
    """RNG domains for deterministic randomness isolation."""

    ROOT = 0
    TOPOLOGY = 1
    MASS = 2
    ORBIT = 3
    APPEARANCE = 4
    GALAXY = 5
    LAYOUT = 6
    SEED_DERIVATION = 7


@unique
class TopologyPresetId(str, Enum):
    """Named grammar bundles."""

    CLASSIC = "classic"
    COMPACT = "compact"
    MULTI_STAR_HEAVY = "multi_star_heavy"
    MOON_RICH = "moon_rich"
    SPARSE_OUTPOST = "sparse_outpost"
    DEEP_HIERARCHY = "deep_hierarchy"

    @classmethod
    def parse(cls, value: str | TopologyPresetId) -> TopologyPresetId:
        """Accept enum members, snake_case or camelCase names."""
        if isinstance(value, cls):
            return value
        key = "".join("_" + c.lower() if c.isupper() else c for c in str(value))
        key = key.replace("-", "_").lstrip("_")
        return cls(key)


@unique
class GalaxyLayout(str, Enum):
    """Spatial arrangement used for system groups."""

    SPIRAL = "spiral"
    SCATTERED = "scattered"
