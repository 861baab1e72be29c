"""Tests for the procedural body generator and batch generation."""

from __future__ import annotations

import math

import pytest

from universegen.analysis.validator import validate_system
from universegen.config import GenerationConfig
from universegen.core.enums import GrammarSymbol, TopologyPresetId
from universegen.core.errors import InvalidConfiguration, ResourceLimitExceeded
from universegen.core.snapshot import to_dict
from universegen.systems import rng
from universegen.systems.bodies import (
    GeometricSpacing,
    OrbitSpacing,
    generate_multiple_systems,
    generate_solar_system,
    system_seeds,
)

S, P, M = GrammarSymbol.STAR, GrammarSymbol.PLANET, GrammarSymbol.MOON
SINGLE = (1.0, 0.0, 0.0)


def _first_with(cfg, predicate, spacing=None):
    """First seed from 0 whose system satisfies *predicate*."""
    for seed in range(200):
        u = generate_solar_system(cfg, seed=seed, spacing=spacing)
        if predicate(u):
            return u
    raise AssertionError("no seed in range produced a matching system")


def _has_planets(u):
    return any(b.kind == P for b in u.bodies.values())


def _children(universe, body_id, kind=None):
    return [universe.bodies[c] for c in universe.bodies[body_id].child_ids
            if kind is None or universe.bodies[c].kind == kind]


class TestSingleStarSystem:
    """Seed 42 with only single-star systems allowed."""

    def test_single_star_root(self):
        u = generate_solar_system(GenerationConfig(star_probabilities=SINGLE), seed=42)
        assert len(u.root_ids) == 1
        root = u.bodies[u.root_ids[0]]
        assert root.kind == S
        assert root.parent_id is None
        assert root.orbit_radius == 0.0
        assert all(b.kind != S for b in u.bodies.values() if b.id != root.id)

    def test_planet_orbits_start_at_base_and_increase(self):
        cfg = GenerationConfig(star_probabilities=SINGLE)
        checked = 0
        for seed in range(42, 142):
            u = generate_solar_system(cfg, seed=seed)
            radii = [p.orbit_radius for p in _children(u, u.root_ids[0], P)]
            if not radii:
                continue
            checked += 1
            assert 1.0 <= radii[0] < 1.1
            assert all(b > a for a, b in zip(radii, radii[1:]))
        assert checked > 0

    def test_orbital_speed_follows_radius(self):
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=0.2)
        u = generate_solar_system(cfg, seed=5)
        for body in u.bodies.values():
            if body.parent_id is not None:
                assert body.orbital_speed == pytest.approx(cfg.orbit_k / math.sqrt(body.orbit_radius))


class TestInvariants:
    @pytest.mark.parametrize("preset", list(TopologyPresetId))
    def test_every_preset_validates(self, preset):
        cfg = GenerationConfig.for_preset(preset)
        for seed in range(15):
            u = generate_solar_system(cfg, seed=seed)
            report = validate_system(u)
            assert report.valid, report.errors
            assert all(b.mass > 0 for b in u.bodies.values())

    def test_sibling_orbits_strictly_increase(self):
        cfg = GenerationConfig.for_preset("deep_hierarchy")
        for seed in range(20):
            u = generate_solar_system(cfg, seed=seed)
            for body in u.bodies.values():
                radii = [c.orbit_radius for c in _children(u, body.id)]
                assert radii == sorted(radii)
                assert len(set(radii)) == len(radii)

    def test_first_moon_inside_its_planet_orbit(self):
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=0.2, moon_geometric_p=0.2)
        u = _first_with(cfg, lambda x: any(b.kind == M for b in x.bodies.values()))
        for planet in (b for b in u.bodies.values() if b.kind == P):
            moons = _children(u, planet.id, M)
            if moons:
                assert moons[0].orbit_radius < planet.orbit_radius

    def test_primary_is_heaviest_star(self):
        cfg = GenerationConfig(star_probabilities=(0.0, 0.0, 1.0))
        for seed in range(20):
            u = generate_solar_system(cfg, seed=seed)
            root = u.bodies[u.root_ids[0]]
            companions = _children(u, root.id, S)
            assert len(companions) == 2
            assert all(root.mass >= c.mass for c in companions)

    def test_companion_phases_evenly_spaced(self):
        u = generate_solar_system(GenerationConfig(star_probabilities=(0.0, 0.0, 1.0)), seed=1)
        phases = [c.orbital_phase for c in _children(u, u.root_ids[0], S)]
        assert phases == [0.0, 180.0]

    def test_depth_recorded(self):
        u = generate_solar_system(GenerationConfig(), seed=12)
        for body in u.bodies.values():
            if body.parent_id is not None:
                assert body.depth == u.bodies[body.parent_id].depth + 1


class TestIdsAndNames:
    def test_ids(self):
        u = generate_solar_system(GenerationConfig(star_probabilities=(0.0, 1.0, 0.0)), seed=4)
        assert u.root_ids == ("star-1",)
        assert "star-2" in u.bodies

    def test_prefix(self):
        u = generate_solar_system(GenerationConfig(), seed=4, id_prefix="s3/")
        assert all(bid.startswith("s3/") for bid in u.bodies)

    def test_planet_names_follow_star(self):
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=0.1)
        u = _first_with(cfg, _has_planets)
        root = u.bodies[u.root_ids[0]]
        planets = _children(u, root.id, P)
        assert planets
        assert planets[0].name == f"{root.name} b"


class TestSeeds:
    def test_same_seed_same_universe(self):
        cfg = GenerationConfig.for_preset("deep_hierarchy")
        assert to_dict(generate_solar_system(cfg, seed=77)) == to_dict(generate_solar_system(cfg, seed=77))

    def test_different_seeds_differ(self):
        a = generate_solar_system(seed=1)
        b = generate_solar_system(seed=2)
        assert [x.mass for x in a.bodies.values()] != [x.mass for x in b.bodies.values()]

    def test_config_seed_used(self):
        a = generate_solar_system(GenerationConfig(seed=10))
        assert a.seed == 10
        assert to_dict(a) == to_dict(generate_solar_system(seed=10))

    def test_explicit_seed_wins(self):
        u = generate_solar_system(GenerationConfig(seed=10), seed=11)
        assert u.seed == 11

    def test_fresh_seed_recorded(self):
        u = generate_solar_system()
        assert isinstance(u.seed, int)
        assert 0 <= u.seed <= 0x7FFFFFFF
        assert to_dict(generate_solar_system(seed=u.seed)) == to_dict(u)

    def test_invalid_seed(self):
        with pytest.raises(InvalidConfiguration):
            generate_solar_system(seed="abc")

    def test_mapping_config(self):
        u = generate_solar_system({"starProbabilities": [1, 0, 0], "topologyPresetId": "compact"}, seed=2)
        assert u.preset == "compact"


class TestCustomSpacing:
    def test_policy_is_replaceable(self):
        class Linear(OrbitSpacing):
            def radius(self, index, level, config, stream):
                return float(index + 1) / (level + 1), stream

        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=0.1)
        u = _first_with(cfg, _has_planets, spacing=Linear())
        planets = _children(u, u.root_ids[0], P)
        assert [p.orbit_radius for p in planets] == [float(i + 1) for i in range(len(planets))]

    def test_jitter_clamped_below_gap(self):
        cfg = GenerationConfig(orbit_growth=1.1, orbit_jitter=5.0).validated()
        state = rng.create(0)
        spacing = GeometricSpacing()
        previous = 0.0
        for i in range(20):
            r, state = spacing.radius(i, 0, cfg, state)
            assert r > previous
            previous = r


class TestMultipleSystems:
    def test_independent_of_worker_count(self):
        serial = generate_multiple_systems(8, seed=5, workers=1)
        parallel = generate_multiple_systems(8, seed=5, workers=4)
        assert [to_dict(s) for s in serial] == [to_dict(s) for s in parallel]

    def test_per_system_seeds_and_prefixes(self):
        systems = generate_multiple_systems(4, seed=5)
        assert [s.seed for s in systems] == system_seeds(5, 4)
        for i, s in enumerate(systems):
            assert all(bid.startswith(f"s{i}/") for bid in s.bodies)

    def test_zero_systems(self):
        assert generate_multiple_systems(0, seed=1) == []

    def test_negative_count(self):
        with pytest.raises(InvalidConfiguration):
            generate_multiple_systems(-1, seed=1)

    def test_total_body_cap(self):
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=1.0, max_bodies=3)
        with pytest.raises(ResourceLimitExceeded) as info:
            generate_multiple_systems(5, cfg, seed=1)
        assert info.value.resource == "bodies"
        assert info.value.partial is None

    def test_total_body_cap_partial(self):
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=1.0, max_bodies=3, diagnostics=True)
        with pytest.raises(ResourceLimitExceeded) as info:
            generate_multiple_systems(5, cfg, seed=1)
        assert len(info.value.partial) == 3

    @pytest.mark.parametrize("workers", [1, 4])
    def test_cap_stops_generation_early(self, monkeypatch, workers):
        import universegen.systems.bodies as bodies_module

        calls = []
        real = bodies_module.generate_solar_system

        def counting(*args, **kwargs):
            calls.append(kwargs.get("seed"))
            return real(*args, **kwargs)

        monkeypatch.setattr(bodies_module, "generate_solar_system", counting)
        cfg = GenerationConfig(star_probabilities=SINGLE, planet_geometric_p=1.0, max_bodies=20)
        with pytest.raises(ResourceLimitExceeded) as info:
            generate_multiple_systems(500, cfg, seed=1, workers=workers)
        assert info.value.attempted == 21
        assert len(calls) < 50
