"""Core data models, enums and errors."""

from universegen.core.enums import Domain, GalaxyLayout, GrammarSymbol, TopologyPresetId
from universegen.core.errors import InvalidConfiguration, InvalidParameter, ResourceLimitExceeded, UniverseGenError
from universegen.core.models import GeneratedBody, GeneratedUniverse, Group, TopologyNode, Vector3

__all__ = [
    "Domain",
    "GalaxyLayout",
    "GeneratedBody",
    "GeneratedUniverse",
    "GrammarSymbol",
    "Group",
    "InvalidConfiguration",
    "InvalidParameter",
    "ResourceLimitExceeded",
    "TopologyNode",
    "TopologyPresetId",
    "UniverseGenError",
    "Vector3",
]
