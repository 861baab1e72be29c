"""Topology preset registry.

Each preset bundles a grammar with the parameter values that pair well with
it. Grammars read planet/moon geometric p from the config unless a rule pins
its own distribution.

Classic grammar:

    primary -> star{0-2 by star_probabilities}  planet*geom(planet_p)
    star    -> planet*geom(planet_p)
    planet  -> moon*geom(moon_p)
    moon    -> (terminal)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from universegen.core.enums import GrammarSymbol, TopologyPresetId
from universegen.systems.grammar import (
    ChildSpec,
    Fixed,
    Geometric,
    Grammar,
    Multiplicity,
    ProductionRule,
    Uniform,
)

logger = logging.getLogger(__name__)

S, P, M = GrammarSymbol.STAR, GrammarSymbol.PLANET, GrammarSymbol.MOON


@dataclass(frozen=True, slots=True)
class TopologyPreset:
    id: TopologyPresetId
    name: str
    description: str
    grammar: Grammar
    suggested_overrides: Mapping[str, Any] = field(default_factory=dict)


def _planets(rule: str = "planet") -> ChildSpec:
    return ChildSpec(P, Geometric("planet"), rule)


def _companions(rule: str = "star") -> ChildSpec:
    return ChildSpec(S, Multiplicity(), rule)


CLASSIC_GRAMMAR = Grammar(
    name="classic",
    axiom="primary",
    productions={
        "primary": (ProductionRule(1.0, (_companions(), _planets())),),
        "star": (ProductionRule(1.0, (_planets(),)),),
        "planet": (ProductionRule(1.0, (ChildSpec(M, Geometric("moon")),)),),
    },
    max_depth=3,
    max_group_depth=2,
)

# Few planets, each a Jupiter-like mini system.
COMPACT_GRAMMAR = Grammar(
    name="compact",
    axiom="primary",
    productions={
        "primary": (ProductionRule(1.0, (ChildSpec(P, Uniform(1, 2), "planet"),)),),
        "planet": (ProductionRule(1.0, (
            ChildSpec(M, Geometric("moon", min_count=5, max_count=18)),
        )),),
    },
    max_depth=2,
    max_group_depth=2,
    child_bounds={S: (1, 2), P: (5, 18), M: (0, 0)},
)

MULTI_STAR_HEAVY_GRAMMAR = Grammar(
    name="multi_star_heavy",
    axiom="primary",
    productions={
        "primary": (ProductionRule(1.0, (_companions(), ChildSpec(P, Uniform(1, 4), "planet"))),),
        "star": (ProductionRule(1.0, (ChildSpec(P, Uniform(0, 2), "planet"),)),),
        "planet": (
            ProductionRule(0.7, (ChildSpec(M, Uniform(1, 3)),)),
            ProductionRule(0.3, ()),
        ),
    },
    max_depth=3,
    max_group_depth=2,
    child_bounds={S: (0, 6), P: (0, 3), M: (0, 0)},
)

MOON_RICH_GRAMMAR = Grammar(
    name="moon_rich",
    axiom="primary",
    productions={
        "primary": (ProductionRule(1.0, (ChildSpec(P, Uniform(3, 6), "planet"),)),),
        "planet": (ProductionRule(1.0, (
            ChildSpec(M, Geometric("moon", min_count=4, max_count=25)),
        )),),
    },
    max_depth=2,
    max_group_depth=2,
    child_bounds={S: (3, 6), P: (4, 25), M: (0, 0)},
)

SPARSE_OUTPOST_GRAMMAR = Grammar(
    name="sparse_outpost",
    axiom="primary",
    productions={
        "primary": (
            ProductionRule(0.15, ()),
            ProductionRule(0.60, (ChildSpec(P, Fixed(1), "planet"),)),
            ProductionRule(0.25, (ChildSpec(P, Fixed(2), "planet"),)),
        ),
        "planet": (
            ProductionRule(0.75, ()),
            ProductionRule(0.25, (ChildSpec(M, Fixed(1)),)),
        ),
    },
    max_depth=2,
    max_group_depth=1,
    child_bounds={S: (0, 2), P: (0, 1), M: (0, 0)},
)

# Moons may carry sub-moons, which may carry their own, down to max_depth.
DEEP_HIERARCHY_GRAMMAR = Grammar(
    name="deep_hierarchy",
    axiom="primary",
    productions={
        "primary": (ProductionRule(1.0, (ChildSpec(P, Uniform(2, 5), "planet"),)),),
        "planet": (ProductionRule(1.0, (ChildSpec(M, Uniform(2, 6), "moon"),)),),
        "moon": (
            ProductionRule(0.5, ()),
            ProductionRule(0.5, (ChildSpec(M, Uniform(1, 4), "moon"),)),
        ),
    },
    max_depth=4,
    max_group_depth=4,
    child_bounds={S: (2, 5), P: (2, 6), M: (0, 4)},
)


TOPOLOGY_PRESETS: dict[TopologyPresetId, TopologyPreset] = {
    TopologyPresetId.CLASSIC: TopologyPreset(
        id=TopologyPresetId.CLASSIC,
        name="Classic",
        description="1-3 stars, geometric planet and moon counts",
        grammar=CLASSIC_GRAMMAR,
    ),
    TopologyPresetId.COMPACT: TopologyPreset(
        id=TopologyPresetId.COMPACT,
        name="Compact",
        description="Single star, 1-2 planets with 5-18 moons each",
        grammar=COMPACT_GRAMMAR,
        suggested_overrides={
            "star_probabilities": (1.0, 0.0, 0.0),
            "planet_geometric_p": 0.9,
            "moon_geometric_p": 0.08,
        },
    ),
    TopologyPresetId.MULTI_STAR_HEAVY: TopologyPreset(
        id=TopologyPresetId.MULTI_STAR_HEAVY,
        name="Multi-Star Heavy",
        description="95% binary or ternary systems, fewer planets",
        grammar=MULTI_STAR_HEAVY_GRAMMAR,
        suggested_overrides={
            "star_probabilities": (0.05, 0.55, 0.40),
            "planet_geometric_p": 0.6,
            "moon_geometric_p": 0.5,
        },
    ),
    TopologyPresetId.MOON_RICH: TopologyPreset(
        id=TopologyPresetId.MOON_RICH,
        name="Moon-Rich",
        description="Single star, 3-6 planets with 4-25 moons each",
        grammar=MOON_RICH_GRAMMAR,
        suggested_overrides={
            "star_probabilities": (1.0, 0.0, 0.0),
            "planet_geometric_p": 0.3,
            "moon_geometric_p": 0.05,
        },
    ),
    TopologyPresetId.SPARSE_OUTPOST: TopologyPreset(
        id=TopologyPresetId.SPARSE_OUTPOST,
        name="Sparse Outpost",
        description="Single star, 0-2 planets, most moonless",
        grammar=SPARSE_OUTPOST_GRAMMAR,
        suggested_overrides={
            "star_probabilities": (1.0, 0.0, 0.0),
            "planet_geometric_p": 0.95,
            "moon_geometric_p": 0.95,
        },
    ),
    TopologyPresetId.DEEP_HIERARCHY: TopologyPreset(
        id=TopologyPresetId.DEEP_HIERARCHY,
        name="Deep Hierarchy",
        description="Moons with nested sub-moons; galaxy groups nest 4 levels deep",
        grammar=DEEP_HIERARCHY_GRAMMAR,
        suggested_overrides={
            "star_probabilities": (1.0, 0.0, 0.0),
            "planet_geometric_p": 0.35,
            "moon_geometric_p": 0.25,
        },
    ),
}

DEFAULT_PRESET = TopologyPresetId.CLASSIC


def get_preset(preset_id: TopologyPresetId | str) -> TopologyPreset:
    """Look up a preset, falling back to classic for unknown ids."""
    try:
        return TOPOLOGY_PRESETS[TopologyPresetId.parse(preset_id)]
    except (KeyError, ValueError):
        logger.warning("Unknown topology preset %r, falling back to %s", preset_id, DEFAULT_PRESET.value)
        return TOPOLOGY_PRESETS[DEFAULT_PRESET]


def preset_ids() -> list[str]:
    return [p.value for p in TOPOLOGY_PRESETS]
