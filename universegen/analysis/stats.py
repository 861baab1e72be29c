"""Aggregate statistics over a generated universe.

One iterative depth-first pass over the bodies, one over the groups. Pure and
read-only.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from universegen.core.enums import GrammarSymbol
from universegen.core.models import GeneratedUniverse

_MULTIPLICITY_NAMES = {1: "single", 2: "binary", 3: "ternary"}


@dataclass(frozen=True, slots=True)
class UniverseStats:
    total_bodies: int = 0
    counts_by_type: dict[str, int] = field(default_factory=dict)
    max_depth: int = 0
    avg_depth: float = 0.0
    min_mass: float = 0.0
    max_mass: float = 0.0
    multiplicity: dict[str, int] = field(default_factory=dict)   # single / binary / ternary / higher
    planets_per_star: float = 0.0
    moons_per_planet: float = 0.0
    root_systems: int = 0
    root_groups: int = 0
    total_groups: int = 0
    max_group_depth: int = 0

    def fraction(self, multiplicity: str) -> float:
        total = sum(self.multiplicity.values())
        return self.multiplicity.get(multiplicity, 0) / total if total else 0.0


def analyze_system(universe: GeneratedUniverse) -> UniverseStats:
    """Compute counts, depths, mass range and multiplicity tallies in O(nodes)."""
    bodies = universe.bodies
    counts = {s.name.lower(): 0 for s in GrammarSymbol if s != GrammarSymbol.GROUP}
    multiplicity = {name: 0 for name in _MULTIPLICITY_NAMES.values()}
    multiplicity["higher"] = 0

    depth_sum = 0
    max_depth = 0
    min_mass = float("inf")
    max_mass = float("-inf")
    planets_of_stars = 0
    moons_of_planets = 0
    visited: set[str] = set()

    for root_id in universe.root_ids:
        if root_id not in bodies:
            continue
        stars_in_system = 0
        stack: list[tuple[str, int]] = [(root_id, 0)]
        while stack:
            bid, depth = stack.pop()
            if bid in visited or bid not in bodies:
                continue
            visited.add(bid)
            body = bodies[bid]
            kind = body.kind
            counts[kind.name.lower()] = counts.get(kind.name.lower(), 0) + 1
            depth_sum += depth
            max_depth = max(max_depth, depth)
            min_mass = min(min_mass, body.mass)
            max_mass = max(max_mass, body.mass)

            if kind == GrammarSymbol.STAR:
                stars_in_system += 1
            children = [bodies[c] for c in body.child_ids if c in bodies]
            if kind == GrammarSymbol.STAR:
                planets_of_stars += sum(1 for c in children if c.kind == GrammarSymbol.PLANET)
            elif kind == GrammarSymbol.PLANET:
                moons_of_planets += sum(1 for c in children if c.kind == GrammarSymbol.MOON)
            stack.extend((c, depth + 1) for c in reversed(body.child_ids))

        if stars_in_system:
            multiplicity[_MULTIPLICITY_NAMES.get(stars_in_system, "higher")] += 1

    total = len(visited)
    return UniverseStats(
        total_bodies=total,
        counts_by_type=counts,
        max_depth=max_depth,
        avg_depth=depth_sum / total if total else 0.0,
        min_mass=min_mass if total else 0.0,
        max_mass=max_mass if total else 0.0,
        multiplicity=multiplicity,
        planets_per_star=planets_of_stars / counts["star"] if counts["star"] else 0.0,
        moons_per_planet=moons_of_planets / counts["planet"] if counts["planet"] else 0.0,
        root_systems=len(universe.root_ids),
        root_groups=len(universe.root_group_ids),
        total_groups=len(universe.groups),
        max_group_depth=_group_depth(universe),
    )


def _group_depth(universe: GeneratedUniverse) -> int:
    groups = universe.groups
    deepest = 0
    seen: set[str] = set()
    stack = [(gid, 1) for gid in universe.root_group_ids if gid in groups]
    while stack:
        gid, depth = stack.pop()
        if gid in seen:
            continue
        seen.add(gid)
        deepest = max(deepest, depth)
        stack.extend((c, depth + 1) for c in groups[gid].child_ids if c in groups)
    return deepest


def format_stats(stats: UniverseStats) -> str:
    """Human-readable summary block."""
    lines = [
        f"Bodies:        {stats.total_bodies}  "
        + "  ".join(f"{k}={v}" for k, v in stats.counts_by_type.items()),
        f"Depth:         max={stats.max_depth}  avg={stats.avg_depth:.2f}",
        f"Mass:          min={stats.min_mass:.3f}  max={stats.max_mass:.3f}",
        "Multiplicity:  " + "  ".join(f"{k}={v}" for k, v in stats.multiplicity.items()),
        f"Means:         planets/star={stats.planets_per_star:.2f}  moons/planet={stats.moons_per_planet:.2f}",
        f"Systems:       {stats.root_systems}",
        f"Groups:        total={stats.total_groups}  top-level={stats.root_groups}  depth={stats.max_group_depth}",
    ]
    return "\n".join(lines)
