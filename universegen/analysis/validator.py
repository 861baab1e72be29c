"""Structural validation for generated (or externally built) universes.

The validator never raises: every problem becomes a line in the report, so a
batch of universes can be checked without one bad instance aborting the run.

Checks run in this order:
  1. every referenced child id exists
  2. cycles (DFS with a visited set plus the active path)
  3. orbit radii strictly increase among siblings
  4. declared root lists match the parentless nodes
  5. parent/child back-references are consistent
  6. mass is positive
  7. per-node child counts fall within configured bounds
"""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Mapping

from universegen.core.enums import GrammarSymbol, TopologyPresetId
from universegen.core.models import GeneratedUniverse
from universegen.systems.presets import TOPOLOGY_PRESETS

if TYPE_CHECKING:
    from universegen.systems.grammar import Grammar

logger = logging.getLogger(__name__)

CHECK_MISSING = "missing_reference"
CHECK_CYCLE = "cycle"
CHECK_ORBIT = "orbit_order"
CHECK_ROOTS = "root_mismatch"
CHECK_PARENT = "parent_mismatch"
CHECK_MASS = "non_positive_mass"
CHECK_BOUNDS = "child_count"
CHECK_MALFORMED = "malformed"


@dataclass(frozen=True, slots=True)
class ChildCountBounds:
    """Allowed (min, max) child counts per node kind; max None = unbounded."""

    limits: Mapping[GrammarSymbol, tuple[int, int | None]] = field(default_factory=dict)

    def check(self, kind: GrammarSymbol, count: int) -> str | None:
        low, high = self.limits.get(kind, (0, None))
        if count < low:
            return f"has {count} children, fewer than the minimum {low}"
        if high is not None and count > high:
            return f"has {count} children, more than the maximum {high}"
        return None

    @classmethod
    def for_grammar(cls, grammar: Grammar) -> ChildCountBounds:
        return cls(dict(grammar.child_bounds))


def bounds_for_preset(preset: str | None) -> ChildCountBounds | None:
    """Bounds implied by a preset grammar; None when the preset is unknown."""
    if preset is None:
        return None
    try:
        preset_id = TopologyPresetId.parse(preset)
    except (KeyError, ValueError):
        return None
    return ChildCountBounds.for_grammar(TOPOLOGY_PRESETS[preset_id].grammar)


@dataclass(frozen=True, slots=True)
class ValidationReport:
    valid: bool
    errors: tuple[str, ...]
    error_kinds: Mapping[str, int]

    def count(self, kind: str) -> int:
        return self.error_kinds.get(kind, 0)


class _Collector:
    __slots__ = ("errors", "kinds")

    def __init__(self) -> None:
        self.errors: list[str] = []
        self.kinds: Counter[str] = Counter()

    def add(self, kind: str, message: str) -> None:
        self.errors.append(f"[{kind}] {message}")
        self.kinds[kind] += 1


def _as_tuple(value: object) -> tuple:
    if isinstance(value, (list, tuple)):
        return tuple(value)
    return ()


def validate_system(universe: GeneratedUniverse, bounds: ChildCountBounds | None = None) -> ValidationReport:
    """Inspect *universe* and return an itemized report. Never raises."""
    out = _Collector()
    try:
        _run_checks(universe, bounds, out)
    except Exception as exc:  # malformed input must still yield a report
        logger.debug("Validator hit malformed data", exc_info=True)
        out.add(CHECK_MALFORMED, f"universe could not be inspected: {exc!r}")
    return ValidationReport(
        valid=not out.errors,
        errors=tuple(out.errors),
        error_kinds=dict(out.kinds),
    )


def validate_many(universes: Iterable[GeneratedUniverse], bounds: ChildCountBounds | None = None) -> list[ValidationReport]:
    reports = [validate_system(u, bounds) for u in universes]
    bad = sum(1 for r in reports if not r.valid)
    if bad:
        logger.warning("%d of %d universes failed validation", bad, len(reports))
    return reports


def _run_checks(universe: GeneratedUniverse, bounds: ChildCountBounds | None, out: _Collector) -> None:
    bodies = universe.bodies
    groups = universe.groups

    body_children = {bid: _as_tuple(b.child_ids) for bid, b in bodies.items()}
    group_children = {gid: _as_tuple(g.child_ids) for gid, g in groups.items()}

    # 1. references
    for bid, kids in body_children.items():
        for cid in kids:
            if cid not in bodies:
                out.add(CHECK_MISSING, f"body {bid} lists missing child {cid}")
    for gid, kids in group_children.items():
        for cid in kids:
            if cid not in groups and cid not in bodies:
                out.add(CHECK_MISSING, f"group {gid} lists missing child {cid}")
    for bid, b in bodies.items():
        if b.parent_id is not None and b.parent_id not in bodies:
            out.add(CHECK_MISSING, f"body {bid} references missing parent {b.parent_id}")
    for gid, g in groups.items():
        if g.parent_group_id is not None and g.parent_group_id not in groups:
            out.add(CHECK_MISSING, f"group {gid} references missing parent group {g.parent_group_id}")

    # 2. cycles, over child lists and over parent back-references
    for label, edges, parents in (
        ("body",
         {bid: [c for c in kids if c in bodies] for bid, kids in body_children.items()},
         {bid: b.parent_id for bid, b in bodies.items()}),
        ("group",
         {gid: [c for c in kids if c in groups] for gid, kids in group_children.items()},
         {gid: g.parent_group_id for gid, g in groups.items()}),
    ):
        # the same loop seen through child lists and parent links is one cycle
        seen: set[frozenset[str]] = set()
        for cycle in _find_cycles(edges) + _find_parent_cycles(parents):
            key = frozenset(cycle)
            if key in seen:
                continue
            seen.add(key)
            out.add(CHECK_CYCLE, f"{label} cycle: {' -> '.join(cycle)}")

    # 3. orbit ordering
    for bid, kids in body_children.items():
        radii = [bodies[c].orbit_radius for c in kids if c in bodies]
        for i in range(1, len(radii)):
            if not radii[i] > radii[i - 1]:
                out.add(CHECK_ORBIT, f"children of {bid}: orbit radius {radii[i]:.4g} at position {i} "
                                     f"does not exceed {radii[i - 1]:.4g}")

    # 4. roots
    _check_roots(out, "body", universe.root_ids, [bid for bid, b in bodies.items() if b.parent_id is None])
    _check_roots(out, "group", universe.root_group_ids,
                 [gid for gid, g in groups.items() if g.parent_group_id is None])

    # 5. parent/child consistency
    _check_ownership(out, "body", {bid: b.parent_id for bid, b in bodies.items()}, body_children)
    _check_ownership(out, "group", {gid: g.parent_group_id for gid, g in groups.items()},
                     {gid: [c for c in kids if c in groups] for gid, kids in group_children.items()})
    members: Counter[str] = Counter(c for kids in group_children.values() for c in kids if c in bodies)
    for bid, n in members.items():
        if bodies[bid].parent_id is not None:
            out.add(CHECK_PARENT, f"group member {bid} is not a root body")
        if n > 1:
            out.add(CHECK_PARENT, f"body {bid} belongs to {n} groups")

    # 6. mass
    for bid, b in bodies.items():
        if not (isinstance(b.mass, (int, float)) and b.mass > 0 and not math.isnan(b.mass)):
            out.add(CHECK_MASS, f"body {bid} has non-positive mass {b.mass!r}")

    # 7. child-count bounds
    if bounds is not None:
        for bid, b in bodies.items():
            problem = bounds.check(b.kind, len(body_children[bid]))
            if problem:
                out.add(CHECK_BOUNDS, f"{b.kind.name.lower()} {bid} {problem}")
        for gid in groups:
            problem = bounds.check(GrammarSymbol.GROUP, len(group_children[gid]))
            if problem:
                out.add(CHECK_BOUNDS, f"group {gid} {problem}")


def _find_cycles(edges: Mapping[str, list[str]]) -> list[list[str]]:
    """Iterative DFS; a node met again on the active path closes a cycle."""
    visited: set[str] = set()
    cycles: list[list[str]] = []
    for start in edges:
        if start in visited:
            continue
        path: list[str] = [start]
        on_path: set[str] = {start}
        iters = [iter(edges.get(start, ()))]
        visited.add(start)
        while iters:
            nxt = next(iters[-1], None)
            if nxt is None:
                iters.pop()
                on_path.discard(path.pop())
                continue
            if nxt in on_path:
                cycles.append(path[path.index(nxt):] + [nxt])
                continue
            if nxt in visited:
                continue
            visited.add(nxt)
            path.append(nxt)
            on_path.add(nxt)
            iters.append(iter(edges.get(nxt, ())))
    return cycles


def _find_parent_cycles(parents: Mapping[str, str | None]) -> list[list[str]]:
    """Cycles in parent back-references (each node has at most one parent)."""
    done: set[str] = set()
    cycles: list[list[str]] = []
    for start in parents:
        if start in done:
            continue
        chain: list[str] = []
        index: dict[str, int] = {}
        cur: str | None = start
        while cur is not None and cur in parents and cur not in done:
            if cur in index:
                loop = chain[index[cur]:]
                # report in child-list direction (parent first)
                cycles.append(list(reversed(loop)) + [loop[-1]])
                break
            index[cur] = len(chain)
            chain.append(cur)
            cur = parents[cur]
        done.update(chain)
    return cycles


def _check_roots(out: _Collector, label: str, declared: Iterable[str], parentless: list[str]) -> None:
    declared_list = list(declared)
    declared_set = set(declared_list)
    parentless_set = set(parentless)
    for rid in declared_list:
        if rid not in parentless_set:
            out.add(CHECK_ROOTS, f"declared root {label} {rid} has a parent or does not exist")
    for rid in parentless:
        if rid not in declared_set:
            out.add(CHECK_ROOTS, f"parentless {label} {rid} is missing from the root list")
    dupes = [rid for rid, n in Counter(declared_list).items() if n > 1]
    for rid in dupes:
        out.add(CHECK_ROOTS, f"root {label} {rid} is declared more than once")


def _check_ownership(
    out: _Collector,
    label: str,
    parent_of: Mapping[str, str | None],
    children_of: Mapping[str, Iterable[str]],
) -> None:
    listed_by: dict[str, list[str]] = {}
    for pid, kids in children_of.items():
        for cid in kids:
            listed_by.setdefault(cid, []).append(pid)
    for cid, owners in listed_by.items():
        if cid not in parent_of:
            continue
        if len(owners) > 1:
            out.add(CHECK_PARENT, f"{label} {cid} appears in {len(owners)} child lists: {', '.join(owners)}")
        if parent_of[cid] not in owners:
            out.add(CHECK_PARENT, f"{label} {cid} is listed by {owners[0]} but its parent is {parent_of[cid]}")
    for cid, pid in parent_of.items():
        if pid is not None and pid in children_of and cid not in listed_by:
            out.add(CHECK_PARENT, f"{label} {cid} names parent {pid} but is not in its child list")
