"""Core data models: Vector3, TopologyNode, GeneratedBody, Group, GeneratedUniverse."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Iterator, Mapping

from universegen.core.enums import GrammarSymbol


@dataclass(frozen=True, slots=True)
class Vector3:
    """Immutable 3D float coordinate."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    def __add__(self, other: Vector3) -> Vector3:
        return Vector3(self.x + other.x, self.y + other.y, self.z + other.z)

    def scaled(self, factor: float) -> Vector3:
        return Vector3(self.x * factor, self.y * factor, self.z * factor)

    def length(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    @staticmethod
    def centroid(points: Iterable[Vector3]) -> Vector3:
        pts = list(points)
        if not pts:
            return Vector3()
        total = Vector3()
        for p in pts:
            total = total + p
        return total.scaled(1.0 / len(pts))

    def __repr__(self) -> str:
        return f"({self.x:.2f}, {self.y:.2f}, {self.z:.2f})"


@dataclass(frozen=True, slots=True)
class TopologyNode:
    """One node of an expanded grammar tree. Built once, never mutated."""

    symbol: GrammarSymbol
    children: tuple[TopologyNode, ...] = ()
    depth: int = 0

    def walk(self) -> Iterator[TopologyNode]:
        """Pre-order traversal without native recursion."""
        stack: list[TopologyNode] = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def count(self, symbol: GrammarSymbol | None = None) -> int:
        return sum(1 for n in self.walk() if symbol is None or n.symbol == symbol)

    def children_of(self, symbol: GrammarSymbol) -> tuple[TopologyNode, ...]:
        return tuple(c for c in self.children if c.symbol == symbol)


@dataclass(frozen=True, slots=True)
class GeneratedBody:
    """A star, planet or moon.

    ``parent_id`` is a back-reference only; ownership flows through the
    parent's ``child_ids``.
    """

    id: str
    kind: GrammarSymbol
    mass: float
    orbit_radius: float
    parent_id: str | None
    child_ids: tuple[str, ...] = ()
    name: str = ""
    radius: float = 0.0
    color: str = ""
    orbital_speed: float = 0.0
    orbital_phase: float = 0.0
    depth: int = 0


@dataclass(frozen=True, slots=True)
class Group:
    """Synthetic container for systems (root body ids) and other groups."""

    id: str
    name: str
    parent_group_id: str | None
    child_ids: tuple[str, ...] = ()
    position: Vector3 = field(default_factory=Vector3)
    color: str = ""


@dataclass(frozen=True, slots=True)
class GeneratedUniverse:
    """Full generation output. Read-only maps, tuple sequences."""

    bodies: Mapping[str, GeneratedBody]
    root_ids: tuple[str, ...]
    groups: Mapping[str, Group] = field(default_factory=lambda: MappingProxyType({}))
    root_group_ids: tuple[str, ...] = ()
    seed: int | None = None
    preset: str | None = None

    @classmethod
    def build(
        cls,
        bodies: Mapping[str, GeneratedBody],
        root_ids: Iterable[str],
        groups: Mapping[str, Group] | None = None,
        root_group_ids: Iterable[str] = (),
        seed: int | None = None,
        preset: str | None = None,
    ) -> GeneratedUniverse:
        """Copy the given containers into an immutable universe."""
        return cls(
            bodies=MappingProxyType(dict(bodies)),
            root_ids=tuple(root_ids),
            groups=MappingProxyType(dict(groups or {})),
            root_group_ids=tuple(root_group_ids),
            seed=seed,
            preset=preset,
        )

    @property
    def body_count(self) -> int:
        return len(self.bodies)

    @property
    def group_count(self) -> int:
        return len(self.groups)

    def system_body_ids(self, root_id: str) -> list[str]:
        """Ids of a root body and all its descendants, pre-order."""
        result: list[str] = []
        stack = [root_id]
        seen: set[str] = set()
        while stack:
            bid = stack.pop()
            if bid in seen or bid not in self.bodies:
                continue
            seen.add(bid)
            result.append(bid)
            stack.extend(reversed(self.bodies[bid].child_ids))
        return result
