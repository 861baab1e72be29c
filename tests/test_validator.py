"""Tests for the structural validator.

Covers:
- Generated universes pass
- Each check kind fires on a hand-built broken universe
- Self-reference yields exactly one cycle error
- Malformed records produce a report instead of an exception
"""

from __future__ import annotations

import pytest

from universegen.analysis.validator import (
    CHECK_BOUNDS,
    CHECK_CYCLE,
    CHECK_MASS,
    CHECK_MISSING,
    CHECK_ORBIT,
    CHECK_PARENT,
    CHECK_ROOTS,
    ChildCountBounds,
    bounds_for_preset,
    validate_many,
    validate_system,
)
from universegen.config import GenerationConfig
from universegen.core.enums import GrammarSymbol, TopologyPresetId
from universegen.core.models import GeneratedBody, GeneratedUniverse, Group
from universegen.systems.bodies import generate_solar_system
from universegen.systems.galaxy import generate_galaxy
from universegen.systems.presets import get_preset

S, P, M = GrammarSymbol.STAR, GrammarSymbol.PLANET, GrammarSymbol.MOON


def _body(bid: str, kind=P, parent=None, children=(), mass=1.0, orbit=1.0) -> GeneratedBody:
    return GeneratedBody(
        id=bid, kind=kind, mass=mass, orbit_radius=orbit,
        parent_id=parent, child_ids=tuple(children),
    )


def _universe(*bodies: GeneratedBody, roots=None, groups=(), root_groups=None) -> GeneratedUniverse:
    body_map = {b.id: b for b in bodies}
    group_map = {g.id: g for g in groups}
    if roots is None:
        roots = [b.id for b in bodies if b.parent_id is None]
    if root_groups is None:
        root_groups = [g.id for g in groups if g.parent_group_id is None]
    return GeneratedUniverse.build(body_map, roots, group_map, root_groups)


def _small_system() -> list[GeneratedBody]:
    return [
        _body("star", S, children=("p1", "p2"), orbit=0.0),
        _body("p1", P, parent="star", children=("m1",), orbit=1.0),
        _body("p2", P, parent="star", orbit=2.0),
        _body("m1", M, parent="p1", orbit=0.25),
    ]


class TestValid:
    def test_hand_built_system(self):
        report = validate_system(_universe(*_small_system()))
        assert report.valid
        assert report.errors == ()

    def test_generated_galaxy(self):
        assert validate_system(generate_galaxy(6, seed=3)).valid

    def test_validate_many(self):
        universes = [generate_solar_system(seed=s) for s in range(5)]
        reports = validate_many(universes)
        assert len(reports) == 5
        assert all(r.valid for r in reports)


class TestCycles:
    def test_self_parent_reports_one_cycle(self):
        u = _universe(_body("a", S, parent="a", children=("a",), orbit=0.0), roots=[])
        report = validate_system(u)
        assert not report.valid
        assert report.count(CHECK_CYCLE) == 1
        assert len(report.errors) == 1

    def test_self_parent_without_child_link(self):
        u = _universe(_body("a", S, parent="a", orbit=0.0), roots=[])
        report = validate_system(u)
        assert report.count(CHECK_CYCLE) == 1

    def test_two_node_cycle(self):
        u = _universe(
            _body("a", P, parent="b", children=("b",)),
            _body("b", P, parent="a", children=("a",), orbit=2.0),
            roots=[],
        )
        report = validate_system(u)
        assert report.count(CHECK_CYCLE) == 1

    def test_group_cycle(self):
        groups = (
            Group("g1", "One", parent_group_id="g2", child_ids=("g2",)),
            Group("g2", "Two", parent_group_id="g1", child_ids=("g1",)),
        )
        u = _universe(*_small_system(), groups=groups, root_groups=[])
        report = validate_system(u)
        assert report.count(CHECK_CYCLE) == 1


class TestStructuralErrors:
    def test_missing_child(self):
        bodies = _small_system()
        bodies[2] = _body("p2", P, parent="star", children=("ghost",), orbit=2.0)
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_MISSING) == 1
        assert "ghost" in report.errors[0]

    def test_missing_parent(self):
        bodies = _small_system() + [_body("stray", M, parent="nowhere")]
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_MISSING) == 1

    def test_orbit_order(self):
        bodies = _small_system()
        bodies[2] = _body("p2", P, parent="star", orbit=0.5)
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_ORBIT) == 1

    def test_equal_orbits_rejected(self):
        bodies = _small_system()
        bodies[2] = _body("p2", P, parent="star", orbit=1.0)
        assert validate_system(_universe(*bodies)).count(CHECK_ORBIT) == 1

    def test_undeclared_root(self):
        u = _universe(*_small_system(), _body("rogue", S, orbit=0.0), roots=["star"])
        report = validate_system(u)
        assert report.count(CHECK_ROOTS) == 1
        assert "rogue" in report.errors[0]

    def test_declared_root_with_parent(self):
        u = _universe(*_small_system(), roots=["star", "p1"])
        assert validate_system(u).count(CHECK_ROOTS) == 1

    def test_duplicate_root(self):
        u = _universe(*_small_system(), roots=["star", "star"])
        assert validate_system(u).count(CHECK_ROOTS) == 1

    def test_back_reference_mismatch(self):
        bodies = _small_system()
        bodies[3] = _body("m1", M, parent="p2", orbit=0.25)
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_PARENT) >= 1

    def test_child_listed_twice(self):
        bodies = _small_system()
        bodies[2] = _body("p2", P, parent="star", children=("m1",), orbit=2.0)
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_PARENT) == 1

    def test_non_root_group_member(self):
        groups = (Group("g1", "One", parent_group_id=None, child_ids=("p1",)),)
        report = validate_system(_universe(*_small_system(), groups=groups))
        assert report.count(CHECK_PARENT) == 1

    def test_non_positive_mass(self):
        bodies = _small_system()
        bodies[1] = _body("p1", P, parent="star", children=("m1",), mass=0.0)
        bodies[2] = _body("p2", P, parent="star", mass=-3.0, orbit=2.0)
        assert validate_system(_universe(*bodies)).count(CHECK_MASS) == 2

    def test_errors_reported_in_check_order(self):
        bodies = _small_system()
        bodies[2] = _body("p2", P, parent="star", children=("ghost",), mass=0.0, orbit=0.5)
        report = validate_system(_universe(*bodies))
        kinds = [e.split("]")[0].lstrip("[") for e in report.errors]
        assert kinds == [CHECK_MISSING, CHECK_ORBIT, CHECK_MASS]


class TestBounds:
    def test_max_children(self):
        bounds = ChildCountBounds({S: (0, 1)})
        report = validate_system(_universe(*_small_system()), bounds)
        assert report.count(CHECK_BOUNDS) == 1

    def test_min_children(self):
        bounds = ChildCountBounds({P: (1, None)})
        report = validate_system(_universe(*_small_system()), bounds)
        assert report.count(CHECK_BOUNDS) == 1
        assert "p2" in report.errors[0]

    def test_bounds_from_grammar(self):
        bounds = ChildCountBounds.for_grammar(get_preset("moon_rich").grammar)
        assert bounds.limits == {S: (3, 6), P: (4, 25), M: (0, 0)}

    @pytest.mark.parametrize("preset", list(TopologyPresetId))
    def test_generated_systems_within_preset_bounds(self, preset):
        cfg = GenerationConfig.for_preset(preset)
        bounds = bounds_for_preset(preset.value)
        for seed in range(10):
            report = validate_system(generate_solar_system(cfg, seed=seed), bounds)
            assert report.valid, report.errors

    def test_preset_bounds_catch_extra_planets(self):
        bodies = _small_system() + [_body("p3", P, parent="star", orbit=3.0)]
        bodies[0] = _body("star", S, children=("p1", "p2", "p3"), orbit=0.0)
        report = validate_system(_universe(*bodies), bounds_for_preset("sparse_outpost"))
        assert report.count(CHECK_BOUNDS) == 1
        assert "star star" in report.errors[0]

    def test_unknown_preset_has_no_bounds(self):
        assert bounds_for_preset(None) is None
        assert bounds_for_preset("nebula") is None


class TestNeverRaises:
    def test_non_body_records(self):
        u = GeneratedUniverse(bodies={"x": None}, root_ids=("x",))
        report = validate_system(u)
        assert not report.valid
        assert report.count("malformed") == 1

    def test_nonsense_mass(self):
        bodies = _small_system()
        bodies[3] = GeneratedBody(id="m1", kind=M, mass="heavy", orbit_radius=0.25, parent_id="p1")
        report = validate_system(_universe(*bodies))
        assert report.count(CHECK_MASS) == 1

    def test_child_ids_not_a_sequence(self):
        bodies = _small_system()
        bodies[2] = GeneratedBody(id="p2", kind=P, mass=1.0, orbit_radius=2.0, parent_id="star", child_ids=None)
        report = validate_system(_universe(*bodies))
        assert report.valid
