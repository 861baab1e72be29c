"""Serializable snapshot of a generated universe.

The dumped shape mirrors the in-memory models field-for-field with camelCase
keys, so external renderers and repositories can round-trip it unchanged.
"""

from __future__ import annotations

import json
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from universegen.core.enums import GrammarSymbol
from universegen.core.errors import MalformedSnapshot
from universegen.core.models import GeneratedBody, GeneratedUniverse, Group, Vector3

SNAPSHOT_VERSION = "1.0"


class _Schema(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")


class PositionSchema(_Schema):
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0


class BodySchema(_Schema):
    id: str
    type: Literal["star", "planet", "moon"]
    mass: float
    orbit_radius: float = Field(alias="orbitRadius")
    parent_id: str | None = Field(None, alias="parentId")
    child_ids: list[str] = Field(default_factory=list, alias="childIds")
    name: str = ""
    radius: float = 0.0
    color: str = ""
    orbital_speed: float = Field(0.0, alias="orbitalSpeed")
    orbital_phase: float = Field(0.0, alias="orbitalPhase")
    depth: int = 0


class GroupSchema(_Schema):
    id: str
    name: str
    parent_group_id: str | None = Field(None, alias="parentGroupId")
    child_ids: list[str] = Field(default_factory=list, alias="childIds")
    position: PositionSchema = Field(default_factory=PositionSchema)
    color: str = ""


class UniverseSchema(_Schema):
    version: str = SNAPSHOT_VERSION
    seed: int | None = None
    preset: str | None = None
    bodies: dict[str, BodySchema]
    root_ids: list[str] = Field(alias="rootIds")
    groups: dict[str, GroupSchema] = Field(default_factory=dict)
    root_group_ids: list[str] = Field(default_factory=list, alias="rootGroupIds")


def _body_schema(b: GeneratedBody) -> BodySchema:
    return BodySchema(
        id=b.id,
        type=b.kind.name.lower(),
        mass=b.mass,
        orbit_radius=b.orbit_radius,
        parent_id=b.parent_id,
        child_ids=list(b.child_ids),
        name=b.name,
        radius=b.radius,
        color=b.color,
        orbital_speed=b.orbital_speed,
        orbital_phase=b.orbital_phase,
        depth=b.depth,
    )


def _group_schema(g: Group) -> GroupSchema:
    return GroupSchema(
        id=g.id,
        name=g.name,
        parent_group_id=g.parent_group_id,
        child_ids=list(g.child_ids),
        position=PositionSchema(x=g.position.x, y=g.position.y, z=g.position.z),
        color=g.color,
    )


def to_dict(universe: GeneratedUniverse) -> dict[str, Any]:
    """Dump a universe to plain JSON-compatible data."""
    schema = UniverseSchema(
        seed=universe.seed,
        preset=universe.preset,
        bodies={bid: _body_schema(b) for bid, b in universe.bodies.items()},
        root_ids=list(universe.root_ids),
        groups={gid: _group_schema(g) for gid, g in universe.groups.items()},
        root_group_ids=list(universe.root_group_ids),
    )
    return schema.model_dump(by_alias=True)


def to_json(universe: GeneratedUniverse, indent: int | None = 2) -> str:
    return json.dumps(to_dict(universe), indent=indent)


def from_dict(data: dict[str, Any]) -> GeneratedUniverse:
    """Rebuild a universe from a dumped snapshot.

    Only the shape is checked here; structural invariants are the
    validator's job, so a malformed graph loads fine and reports later.
    Shape errors raise MalformedSnapshot listing every bad field.
    """
    try:
        schema = UniverseSchema.model_validate(data)
    except ValidationError as exc:
        raise MalformedSnapshot([
            f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}" for err in exc.errors()
        ]) from exc
    bodies = {
        bid: GeneratedBody(
            id=b.id,
            kind=GrammarSymbol[b.type.upper()],
            mass=b.mass,
            orbit_radius=b.orbit_radius,
            parent_id=b.parent_id,
            child_ids=tuple(b.child_ids),
            name=b.name,
            radius=b.radius,
            color=b.color,
            orbital_speed=b.orbital_speed,
            orbital_phase=b.orbital_phase,
            depth=b.depth,
        )
        for bid, b in schema.bodies.items()
    }
    groups = {
        gid: Group(
            id=g.id,
            name=g.name,
            parent_group_id=g.parent_group_id,
            child_ids=tuple(g.child_ids),
            position=Vector3(g.position.x, g.position.y, g.position.z),
            color=g.color,
        )
        for gid, g in schema.groups.items()
    }
    return GeneratedUniverse.build(
        bodies=bodies,
        root_ids=schema.root_ids,
        groups=groups,
        root_group_ids=schema.root_group_ids,
        seed=schema.seed,
        preset=schema.preset,
    )


def from_json(text: str) -> GeneratedUniverse:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedSnapshot([f"line {exc.lineno} column {exc.colno}: {exc.msg}"]) from exc
    return from_dict(data)
