"""Galaxy composer: many systems arranged under positioned, nested groups.

Every system root gets its own system group. System groups are then
clustered level by level into parent groups until few enough remain at the
top or the preset's group depth is reached. A group is only ever attached
to a parent created in the same step, so the hierarchy is acyclic by
construction.
"""

from __future__ import annotations

import logging
import math
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Mapping

from universegen.config import GalaxyConfig, GenerationConfig
from universegen.core.enums import Domain, GalaxyLayout
from universegen.core.errors import ResourceLimitExceeded
from universegen.core.models import GeneratedBody, GeneratedUniverse, Group, Vector3
from universegen.systems import rng
from universegen.systems.bodies import coerce_config, generate_multiple_systems, resolve_seed
from universegen.systems.presets import get_preset

if TYPE_CHECKING:
    from universegen.systems.rng import StreamState

logger = logging.getLogger(__name__)

_SPIRAL_TURNS = 0.75  # how far each arm winds from core to rim
_GROUP_COLORS = ("#FF6B6B", "#4ECDC4", "#45B7D1", "#FFA07A", "#98D8C8", "#F7DC6F", "#BB8FCE", "#85C1E2")


class _GroupDraft:
    __slots__ = ("id", "name", "parent_group_id", "child_ids", "position", "color")

    def __init__(self, gid: str, name: str, child_ids: list[str], position: Vector3, color: str) -> None:
        self.id = gid
        self.name = name
        self.parent_group_id: str | None = None
        self.child_ids = child_ids
        self.position = position
        self.color = color

    def freeze(self) -> Group:
        return Group(
            id=self.id,
            name=self.name,
            parent_group_id=self.parent_group_id,
            child_ids=tuple(self.child_ids),
            position=self.position,
            color=self.color,
        )


def _cluster_label(n: int) -> str:
    """A, B, ..., Z, AA, AB, ..."""
    out = ""
    n += 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        out = chr(65 + rem) + out
    return out


class GalaxyComposer:
    """Places system groups in space and clusters them into nested groups."""

    __slots__ = ("_galaxy", "_max_group_depth", "_diagnostics", "_groups", "_next_id")

    def __init__(self, galaxy: GalaxyConfig, max_group_depth: int, diagnostics: bool = False) -> None:
        self._galaxy = galaxy
        self._max_group_depth = max_group_depth
        self._diagnostics = diagnostics
        self._groups: dict[str, _GroupDraft] = {}
        self._next_id = 0

    # -- layout ---------------------------------------------------------------

    def position(self, index: int, total: int, stream: StreamState) -> tuple[Vector3, StreamState]:
        g = self._galaxy
        if g.layout == GalaxyLayout.SCATTERED:
            x, stream = rng.next_normal(stream, 0.0, g.position_sigma)
            y, stream = rng.next_normal(stream, 0.0, g.position_sigma)
            z, stream = rng.next_normal(stream, 0.0, g.position_sigma)
            return Vector3(x, y, z), stream
        if g.layout == GalaxyLayout.SPIRAL:
            # contiguous index blocks per arm keep neighbours spatially close
            per_arm = math.ceil(total / g.arm_count)
            arm = index // per_arm
            t = ((index - arm * per_arm) + 0.5) / per_arm
            theta = 2.0 * math.pi * (arm / g.arm_count + _SPIRAL_TURNS * t)
            r = g.galaxy_radius * t
            dx, stream = rng.next_normal(stream, 0.0, g.arm_spread)
            dy, stream = rng.next_normal(stream, 0.0, g.arm_spread)
            dz, stream = rng.next_normal(stream, 0.0, g.arm_spread * 0.25)
            return Vector3(r * math.cos(theta), r * math.sin(theta), 0.0) + Vector3(dx, dy, dz), stream
        raise ValueError(f"unhandled galaxy layout {g.layout!r}")

    # -- groups ---------------------------------------------------------------

    def _new_group(
        self, name: str, child_ids: list[str], position: Vector3, stream: StreamState,
    ) -> tuple[_GroupDraft, StreamState]:
        gid = f"group-{self._next_id}"
        self._next_id += 1
        color_idx, stream = rng.next_int(stream, 0, len(_GROUP_COLORS) - 1)
        draft = _GroupDraft(gid, name, child_ids, position, _GROUP_COLORS[color_idx])
        self._groups[gid] = draft
        limit = self._galaxy.max_groups
        if limit is not None and len(self._groups) > limit:
            partial = self.frozen_groups() if self._diagnostics else None
            raise ResourceLimitExceeded("groups", limit, len(self._groups), partial)
        return draft, stream

    def frozen_groups(self) -> dict[str, Group]:
        return {gid: d.freeze() for gid, d in self._groups.items()}

    def compose(
        self, bodies: Mapping[str, GeneratedBody], root_ids: list[str], stream: StreamState,
    ) -> list[str]:
        """Build all groups; returns the top-level group ids."""
        layout_stream = rng.fork(stream, Domain.LAYOUT)
        cluster_stream = rng.fork(stream, Domain.GALAXY)
        look_stream = rng.fork(stream, Domain.APPEARANCE)

        current: list[_GroupDraft] = []
        for i, root_id in enumerate(root_ids):
            pos, layout_stream = self.position(i, len(root_ids), layout_stream)
            group, look_stream = self._new_group(f"{bodies[root_id].name} System", [root_id], pos, look_stream)
            current.append(group)

        depth = 1
        fanout = self._galaxy.cluster_fanout
        while len(current) > fanout and depth < self._max_group_depth:
            level: list[_GroupDraft] = []
            i = 0
            while i < len(current):
                size, cluster_stream = rng.next_int(cluster_stream, 2, fanout)
                chunk = current[i:i + size]
                i += size
                parent, look_stream = self._new_group(
                    f"Cluster {_cluster_label(len(level))}" + (f"-{depth}" if depth > 1 else ""),
                    [c.id for c in chunk],
                    Vector3.centroid(c.position for c in chunk),
                    look_stream,
                )
                for child in chunk:
                    child.parent_group_id = parent.id
                level.append(parent)
            logger.debug("Group level %d: %d -> %d groups", depth, len(current), len(level))
            current = level
            depth += 1

        return [g.id for g in current]


def generate_galaxy(
    system_count: int,
    config: GenerationConfig | Mapping[str, Any] | None = None,
    galaxy: GalaxyConfig | None = None,
    seed: int | None = None,
) -> GeneratedUniverse:
    """Generate ``system_count`` systems and organise them into groups.

    Same (seed, config, galaxy) -> identical universe, for any worker count.
    """
    gcfg = replace(galaxy or GalaxyConfig(), system_count=system_count).validated()
    cfg = coerce_config(config)
    master = resolve_seed(seed, cfg)
    max_group_depth = gcfg.max_group_depth or get_preset(cfg.topology_preset).grammar.max_group_depth

    systems = generate_multiple_systems(system_count, cfg, seed=master, workers=gcfg.workers)
    bodies: dict[str, GeneratedBody] = {}
    root_ids: list[str] = []
    for system in systems:
        bodies.update(system.bodies)
        root_ids.extend(system.root_ids)

    composer = GalaxyComposer(gcfg, max_group_depth, diagnostics=cfg.diagnostics)
    root_group_ids = composer.compose(bodies, root_ids, rng.create(master, Domain.GALAXY))
    groups = composer.frozen_groups()

    logger.info(
        "Galaxy seed=%d: %d systems, %d bodies, %d groups (%d top-level)",
        master, len(root_ids), len(bodies), len(groups), len(root_group_ids),
    )
    return GeneratedUniverse.build(
        bodies=bodies,
        root_ids=root_ids,
        groups=groups,
        root_group_ids=root_group_ids,
        seed=master,
        preset=cfg.topology_preset.value,
    )
