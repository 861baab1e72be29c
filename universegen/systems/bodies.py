"""Procedural body generator: topology tree -> attributed bodies.

Walks a TopologyNode tree and assigns mass, orbit and appearance to every
node. Each concern draws from its own forked stream, so adding a draw to one
never shifts the values of another.
"""

from __future__ import annotations

import logging
import math
import secrets
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Mapping

from universegen.config import GenerationConfig
from universegen.core.enums import BODY_SYMBOLS, Domain, GrammarSymbol
from universegen.core.errors import InvalidConfiguration, ResourceLimitExceeded
from universegen.core.models import GeneratedBody, GeneratedUniverse, TopologyNode
from universegen.engine.worker_pool import WorkerPool
from universegen.systems import rng
from universegen.systems.topology import generate_topology

if TYPE_CHECKING:
    from universegen.systems.rng import StreamState

logger = logging.getLogger(__name__)


# Mass multiplier per body kind, applied to the log-normal base mass
_MASS_SCALE: dict[GrammarSymbol, float] = {
    GrammarSymbol.STAR: 100.0,
    GrammarSymbol.PLANET: 10.0,
    GrammarSymbol.MOON: 1.0,
}
_SUBMOON_MASS_FALLOFF = 0.1
_VISUAL_RADIUS_SCALE = 0.15

_GREEK = ("Alpha", "Beta", "Gamma", "Delta", "Epsilon", "Zeta", "Eta", "Theta")
_CONSTELLATIONS = ("Centauri", "Orionis", "Cygni", "Tauri", "Lyrae", "Aquilae", "Draconis", "Pegasi")
_PLANET_COLORS = ("#4A90E2", "#E25822", "#8B7355", "#C0A080", "#A0C0E0")
_MOON_COLOR = "#CCCCCC"
# (min mass, color) in descending order; spectral class by mass
_STAR_COLORS: tuple[tuple[float, str], ...] = (
    (600.0, "#9BB0FF"),   # O, B
    (200.0, "#CAD7FF"),   # A
    (100.0, "#F8F7FF"),   # F
    (50.0, "#FFF4EA"),    # G, K
    (0.0, "#FFD2A1"),     # M
)


def _roman(n: int) -> str:
    out = []
    for value, numeral in ((1000, "M"), (900, "CM"), (500, "D"), (400, "CD"), (100, "C"), (90, "XC"),
                           (50, "L"), (40, "XL"), (10, "X"), (9, "IX"), (5, "V"), (4, "IV"), (1, "I")):
        while n >= value:
            out.append(numeral)
            n -= value
    return "".join(out)


def _planet_letter(n: int) -> str:
    """b, c, ..., z, then bb, bc, ... (exoplanet convention, never 'a')."""
    letters = "bcdefghijklmnopqrstuvwxyz"
    out = ""
    n += 1
    while n > 0:
        n, rem = divmod(n - 1, len(letters))
        out = letters[rem] + out
    return out


# ---------------------------------------------------------------------------
# Orbit spacing policy
# ---------------------------------------------------------------------------

class OrbitSpacing(ABC):
    """Replaceable orbit-radius policy.

    Implementations must return strictly increasing radii for increasing
    ``index`` at a fixed ``level``.
    """

    @abstractmethod
    def radius(
        self, index: int, level: int, config: GenerationConfig, stream: StreamState,
    ) -> tuple[float, StreamState]:
        """Radius of the ``index``-th sibling. ``level`` is 0 for bodies
        orbiting a star, 1 for moons of a planet, 2 for sub-moons, ..."""


class GeometricSpacing(OrbitSpacing):
    """r = orbit_base * orbit_growth**index * moon_orbit_scale**level * (1 + j*u).

    ``j`` is clamped to (orbit_growth - 1) / 2 so jitter can never close the
    gap to the next sibling.
    """

    def radius(
        self, index: int, level: int, config: GenerationConfig, stream: StreamState,
    ) -> tuple[float, StreamState]:
        base = config.orbit_base * config.orbit_growth ** index * config.moon_orbit_scale ** level
        jitter = min(config.orbit_jitter, (config.orbit_growth - 1.0) / 2.0)
        u, stream = rng.next_float(stream)
        return base * (1.0 + jitter * u), stream


# ---------------------------------------------------------------------------
# Body generator
# ---------------------------------------------------------------------------

class BodyGenerator:
    """Turns one topology tree into GeneratedBody records."""

    __slots__ = ("_config", "_spacing")

    def __init__(self, config: GenerationConfig, spacing: OrbitSpacing | None = None) -> None:
        self._config = config
        self._spacing = spacing or GeometricSpacing()

    def sample_mass(self, kind: GrammarSymbol, level: int, stream: StreamState) -> tuple[float, StreamState]:
        base, stream = rng.next_normal(stream, self._config.mass_mu, self._config.mass_sigma)
        mass = math.exp(base) * _MASS_SCALE[kind]
        if kind == GrammarSymbol.MOON and level > 1:
            mass *= _SUBMOON_MASS_FALLOFF ** (level - 1)
        return mass, stream

    def annotate(self, root: TopologyNode, seed: int, id_prefix: str = "") -> dict[str, GeneratedBody]:
        """Assign ids, masses, orbits and names. Returns bodies in pre-order."""
        cfg = self._config
        base = rng.create(seed)
        mass_stream = rng.fork(base, Domain.MASS)
        orbit_stream = rng.fork(base, Domain.ORBIT)
        look_stream = rng.fork(base, Domain.APPEARANCE)

        counters: dict[GrammarSymbol, int] = {}

        def allocate(kind: GrammarSymbol) -> str:
            counters[kind] = counters.get(kind, 0) + 1
            return f"{id_prefix}{kind.name.lower()}-{counters[kind]}"

        # Star masses are drawn together; the heaviest goes to the primary.
        star_nodes = [n for n in root.walk() if n.symbol == GrammarSymbol.STAR]
        star_masses: list[float] = []
        for _ in star_nodes:
            m, mass_stream = self.sample_mass(GrammarSymbol.STAR, 0, mass_stream)
            star_masses.append(m)
        star_masses.sort(reverse=True)
        star_mass_by_node = {id(n): m for n, m in zip(star_nodes, star_masses)}

        constellation_idx, look_stream = rng.next_int(look_stream, 0, len(_CONSTELLATIONS) - 1)
        constellation = _CONSTELLATIONS[constellation_idx]
        star_count = 0

        bodies: dict[str, GeneratedBody] = {}
        # (node, body id, parent id, parent name, sibling index, level, companion index, companion total)
        stack: list[tuple[TopologyNode, str, str | None, str, int, int, int, int]] = [
            (root, allocate(root.symbol), None, "", 0, 0, -1, 0)
        ]
        while stack:
            node, body_id, parent_id, parent_name, index, level, comp_idx, comp_total = stack.pop()
            kind = node.symbol
            if kind not in BODY_SYMBOLS:
                raise InvalidConfiguration("grammar", kind.name, "only stars, planets and moons can be bodies")

            # Mass
            if kind == GrammarSymbol.STAR:
                mass = star_mass_by_node[id(node)]
            else:
                mass, mass_stream = self.sample_mass(kind, level, mass_stream)

            # Orbit
            if parent_id is None:
                orbit_radius, speed, phase = 0.0, 0.0, 0.0
            else:
                orbit_radius, orbit_stream = self._spacing.radius(index, level, cfg, orbit_stream)
                speed = cfg.orbit_k / math.sqrt(orbit_radius)
                if comp_idx >= 0:
                    phase = 360.0 * comp_idx / comp_total
                else:
                    phase, orbit_stream = rng.next_uniform(orbit_stream, 0.0, 360.0)

            # Appearance
            if kind == GrammarSymbol.STAR:
                name = f"{_GREEK[star_count % len(_GREEK)]} {constellation}"
                if star_count >= len(_GREEK):
                    name += f" {star_count // len(_GREEK) + 1}"
                star_count += 1
                color = next(c for threshold, c in _STAR_COLORS if mass > threshold or threshold == 0.0)
            elif kind == GrammarSymbol.PLANET:
                # planets follow the companions in the sibling order
                name = f"{parent_name} {_planet_letter(index - comp_total)}"
                color_idx, look_stream = rng.next_int(look_stream, 0, len(_PLANET_COLORS) - 1)
                color = _PLANET_COLORS[color_idx]
            else:
                name = f"{parent_name} {_roman(index + 1)}" if level == 1 else f"{parent_name}-{index + 1}"
                color = _MOON_COLOR

            # Children: ids first, so this record is complete when created
            child_ids = tuple(allocate(c.symbol) for c in node.children)
            companions = node.children_of(GrammarSymbol.STAR) if parent_id is None else ()
            n_comp = len(companions)
            for i in range(len(node.children) - 1, -1, -1):
                child = node.children[i]
                if child.symbol == GrammarSymbol.STAR:
                    c_idx, c_total = (i, n_comp) if parent_id is None else (-1, 0)
                    child_level = 0
                elif child.symbol == GrammarSymbol.PLANET:
                    c_idx, c_total = -1, n_comp
                    child_level = 0
                else:
                    c_idx, c_total = -1, 0
                    child_level = level + 1
                stack.append((child, child_ids[i], body_id, name, i, child_level, c_idx, c_total))

            bodies[body_id] = GeneratedBody(
                id=body_id,
                kind=kind,
                mass=mass,
                orbit_radius=orbit_radius,
                parent_id=parent_id,
                child_ids=child_ids,
                name=name,
                radius=mass ** cfg.radius_power * _VISUAL_RADIUS_SCALE,
                color=color,
                orbital_speed=speed,
                orbital_phase=phase,
                depth=node.depth,
            )
        return bodies


# ---------------------------------------------------------------------------
# Public entry points
# ---------------------------------------------------------------------------

def coerce_config(config: GenerationConfig | Mapping[str, Any] | None) -> GenerationConfig:
    if config is None:
        return GenerationConfig()
    if isinstance(config, GenerationConfig):
        return config.validated()
    return GenerationConfig.from_mapping(config)


def resolve_seed(seed: int | None, config: GenerationConfig) -> int:
    """Explicit seed wins, then config.seed; otherwise draw one fresh seed."""
    if seed is not None:
        if isinstance(seed, bool) or not isinstance(seed, int):
            raise InvalidConfiguration("seed", seed, "must be an integer")
        return seed
    if config.seed is not None:
        return config.seed
    fresh = secrets.randbits(31)
    logger.info("No seed supplied, drew %d (pass it back to reproduce this run)", fresh)
    return fresh


def generate_solar_system(
    config: GenerationConfig | Mapping[str, Any] | None = None,
    seed: int | None = None,
    id_prefix: str = "",
    spacing: OrbitSpacing | None = None,
) -> GeneratedUniverse:
    """Generate one star system. Same (seed, config) -> identical universe."""
    cfg = coerce_config(config)
    actual_seed = resolve_seed(seed, cfg)

    base = rng.create(actual_seed)
    topology, _ = generate_topology(rng.fork(base, Domain.TOPOLOGY), cfg)
    bodies = BodyGenerator(cfg, spacing).annotate(topology, actual_seed, id_prefix)
    root_id = next(iter(bodies))

    logger.debug(
        "Generated system seed=%d preset=%s bodies=%d",
        actual_seed, cfg.topology_preset.value, len(bodies),
    )
    return GeneratedUniverse.build(
        bodies=bodies,
        root_ids=(root_id,),
        seed=actual_seed,
        preset=cfg.topology_preset.value,
    )


def system_seeds(master_seed: int, count: int) -> list[int]:
    """Per-system seeds: derive_seed(master_seed, i) for i in range(count)."""
    return [rng.derive_seed(master_seed, i) for i in range(count)]


def generate_multiple_systems(
    n: int,
    config: GenerationConfig | Mapping[str, Any] | None = None,
    seed: int | None = None,
    workers: int = 1,
) -> list[GeneratedUniverse]:
    """Generate ``n`` independent systems from one master seed.

    System ``i`` uses ``derive_seed(master, i)`` and id prefix ``s{i}/``, so
    the output does not depend on ``workers``. ``config.max_bodies`` caps
    the total across all systems.
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 0:
        raise InvalidConfiguration("n", n, "must be a non-negative integer")
    cfg = coerce_config(config)
    master = resolve_seed(seed, cfg)
    seeds = system_seeds(master, n)

    def _one(i: int) -> GeneratedUniverse:
        return generate_solar_system(cfg, seed=seeds[i], id_prefix=f"s{i}/")

    systems: list[GeneratedUniverse] = []
    total = 0
    with WorkerPool(workers) as pool:
        results = pool.imap(_one, range(n))
        try:
            for system in results:
                total += system.body_count
                if cfg.max_bodies is not None and total > cfg.max_bodies:
                    partial = list(systems) if cfg.diagnostics else None
                    raise ResourceLimitExceeded("bodies", cfg.max_bodies, total, partial)
                systems.append(system)
        finally:
            results.close()

    logger.info("Generated %d systems from master seed %d (%d bodies)", n, master, total)
    return systems
