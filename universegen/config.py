"""Generation configuration with sensible defaults."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from universegen.core.enums import GalaxyLayout, TopologyPresetId
from universegen.core.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

_PROBABILITY_TOLERANCE = 1e-6


@dataclass(frozen=True, slots=True)
class GenerationConfig:
    """Immutable configuration for one solar-system generation call."""

    # Grammar
    star_probabilities: tuple[float, float, float] = (0.65, 0.25, 0.10)  # single / binary / ternary
    planet_geometric_p: float = 0.4
    moon_geometric_p: float = 0.3
    topology_preset: TopologyPresetId = TopologyPresetId.CLASSIC

    # Orbits
    orbit_base: float = 1.0
    orbit_growth: float = 1.8
    orbit_k: float = 20.0               # Kepler-like constant: speed = k / sqrt(r)
    orbit_jitter: float = 0.1           # fraction of the radius, clamped below the sibling gap
    moon_orbit_scale: float = 0.25      # radius shrink per nesting level below planets

    # Physical
    mass_mu: float = 1.5
    mass_sigma: float = 0.8
    radius_power: float = 0.4

    # Reproducibility / caps
    seed: int | None = None
    max_bodies: int | None = None
    diagnostics: bool = False           # keep partial output on ResourceLimitExceeded

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], base: GenerationConfig | None = None) -> GenerationConfig:
        """Build a validated config from plain data (camelCase or snake_case keys).

        Keys present in ``data`` override ``base`` (defaults when omitted).
        """
        try:
            schema = GenerationConfigSchema.model_validate(dict(data))
        except ValidationError as exc:
            err = exc.errors()[0]
            loc = ".".join(str(p) for p in err["loc"]) or "<root>"
            raise InvalidConfiguration(loc, err.get("input"), err["msg"]) from exc
        values = schema.model_dump(exclude_unset=True)
        if "star_probabilities" in values:
            values["star_probabilities"] = tuple(values["star_probabilities"])
        if "topology_preset" in values:
            values["topology_preset"] = _parse_preset(values["topology_preset"])
        if base is not None:
            return replace(base, **values).validated()
        return cls(**values).validated()

    @classmethod
    def for_preset(cls, preset: str | TopologyPresetId, **overrides: Any) -> GenerationConfig:
        """Preset's suggested parameters first, explicit overrides last."""
        from universegen.systems.presets import get_preset

        preset_id = _parse_preset(preset)
        values: dict[str, Any] = dict(get_preset(preset_id).suggested_overrides)
        values["topology_preset"] = preset_id
        values.update(overrides)
        return cls(**values).validated()

    def validated(self) -> GenerationConfig:
        """Return a normalized copy, or raise InvalidConfiguration naming the field."""
        probs = _normalize_probabilities(self.star_probabilities)
        _check_open_unit("planet_geometric_p", self.planet_geometric_p)
        _check_open_unit("moon_geometric_p", self.moon_geometric_p)
        _check_positive("orbit_base", self.orbit_base)
        _check_number("orbit_growth", self.orbit_growth)
        if self.orbit_growth <= 1.0:
            raise InvalidConfiguration("orbit_growth", self.orbit_growth, "must be greater than 1")
        _check_positive("orbit_k", self.orbit_k)
        _check_number("orbit_jitter", self.orbit_jitter)
        if self.orbit_jitter < 0:
            raise InvalidConfiguration("orbit_jitter", self.orbit_jitter, "must be non-negative")
        _check_open_unit("moon_orbit_scale", self.moon_orbit_scale)
        _check_number("mass_mu", self.mass_mu)
        _check_number("mass_sigma", self.mass_sigma)
        if self.mass_sigma < 0:
            raise InvalidConfiguration("mass_sigma", self.mass_sigma, "must be non-negative")
        _check_positive("radius_power", self.radius_power)
        if self.seed is not None and (isinstance(self.seed, bool) or not isinstance(self.seed, int)):
            raise InvalidConfiguration("seed", self.seed, "must be an integer")
        if self.max_bodies is not None and self.max_bodies < 1:
            raise InvalidConfiguration("max_bodies", self.max_bodies, "must be at least 1")
        preset = _parse_preset(self.topology_preset)
        if probs == self.star_probabilities and preset is self.topology_preset:
            return self
        return replace(self, star_probabilities=probs, topology_preset=preset)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["topology_preset"] = self.topology_preset.value
        data["star_probabilities"] = list(self.star_probabilities)
        return data


@dataclass(frozen=True, slots=True)
class GalaxyConfig:
    """Immutable configuration for composing many systems into groups."""

    system_count: int = 5
    layout: GalaxyLayout = GalaxyLayout.SPIRAL
    arm_count: int = 2
    galaxy_radius: float = 400.0
    arm_spread: float = 12.0            # gaussian scatter around a spiral arm
    position_sigma: float = 50.0        # scattered layout
    cluster_fanout: int = 4             # max children per cluster group
    max_group_depth: int | None = None  # None = take it from the topology preset
    max_groups: int | None = None
    workers: int = 1

    def validated(self) -> GalaxyConfig:
        if isinstance(self.system_count, bool) or not isinstance(self.system_count, int) or self.system_count < 1:
            raise InvalidConfiguration("system_count", self.system_count, "must be a positive integer")
        if self.arm_count < 1:
            raise InvalidConfiguration("arm_count", self.arm_count, "must be at least 1")
        _check_positive("galaxy_radius", self.galaxy_radius)
        _check_positive("position_sigma", self.position_sigma)
        if self.arm_spread < 0:
            raise InvalidConfiguration("arm_spread", self.arm_spread, "must be non-negative")
        if self.cluster_fanout < 2:
            raise InvalidConfiguration("cluster_fanout", self.cluster_fanout, "must be at least 2")
        if self.max_group_depth is not None and self.max_group_depth < 1:
            raise InvalidConfiguration("max_group_depth", self.max_group_depth, "must be at least 1")
        if self.max_groups is not None and self.max_groups < 1:
            raise InvalidConfiguration("max_groups", self.max_groups, "must be at least 1")
        if self.workers < 1:
            raise InvalidConfiguration("workers", self.workers, "must be at least 1")
        try:
            layout = GalaxyLayout(self.layout)
        except ValueError as exc:
            raise InvalidConfiguration("layout", self.layout, "unknown layout") from exc
        return self if layout is self.layout else replace(self, layout=layout)


class GenerationConfigSchema(BaseModel):
    """Accepted input shape for GenerationConfig.from_mapping."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    star_probabilities: list[float] = Field(None, alias="starProbabilities")
    planet_geometric_p: float = Field(None, alias="planetGeometricP")
    moon_geometric_p: float = Field(None, alias="moonGeometricP")
    topology_preset: str = Field(None, alias="topologyPresetId")
    orbit_base: float = Field(None, alias="orbitBase")
    orbit_growth: float = Field(None, alias="orbitGrowth")
    orbit_k: float = Field(None, alias="orbitK")
    orbit_jitter: float = Field(None, alias="orbitJitter")
    moon_orbit_scale: float = Field(None, alias="moonOrbitScale")
    mass_mu: float = Field(None, alias="massMu")
    mass_sigma: float = Field(None, alias="massSigma")
    radius_power: float = Field(None, alias="radiusPower")
    seed: int | None = None
    max_bodies: int | None = Field(None, alias="maxBodies")
    diagnostics: bool = False


# ---------------------------------------------------------------------------
# Field checks
# ---------------------------------------------------------------------------

def _parse_preset(value: Any) -> TopologyPresetId:
    try:
        return TopologyPresetId.parse(value)
    except ValueError as exc:
        raise InvalidConfiguration("topology_preset", value, "unknown topology preset") from exc


def _check_number(name: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or math.isnan(value):
        raise InvalidConfiguration(name, value, "must be a number")


def _check_positive(name: str, value: Any) -> None:
    _check_number(name, value)
    if value <= 0 or math.isinf(value):
        raise InvalidConfiguration(name, value, "must be a finite positive number")


def _check_open_unit(name: str, value: Any) -> None:
    """Value must lie in (0, 1]; 0 would mean unbounded children."""
    _check_number(name, value)
    if not (0.0 < value <= 1.0):
        raise InvalidConfiguration(name, value, "must lie in (0, 1]")


def _normalize_probabilities(probs: Any) -> tuple[float, float, float]:
    name = "star_probabilities"
    try:
        values = tuple(float(p) for p in probs)
    except (TypeError, ValueError) as exc:
        raise InvalidConfiguration(name, probs, "must be a sequence of three numbers") from exc
    if len(values) != 3:
        raise InvalidConfiguration(name, probs, "must hold exactly three weights (single, binary, ternary)")
    if any(math.isnan(p) or math.isinf(p) or p < 0 for p in values):
        raise InvalidConfiguration(name, probs, "weights must be finite and non-negative")
    total = math.fsum(values)
    if total <= 0:
        raise InvalidConfiguration(name, probs, "weights must sum to a positive value")
    if abs(total - 1.0) <= _PROBABILITY_TOLERANCE:
        return values  # type: ignore[return-value]
    logger.warning("star_probabilities %s sum to %.4f; normalizing", list(values), total)
    return tuple(p / total for p in values)  # type: ignore[return-value]
