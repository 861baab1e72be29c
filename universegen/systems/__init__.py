"""Generation systems: seeded stream, grammar expansion, bodies, galaxy layout."""

from universegen.systems.rng import StreamState
from universegen.systems.topology import TopologyGenerator
from universegen.systems.bodies import BodyGenerator
from universegen.systems.galaxy import GalaxyComposer

__all__ = ["BodyGenerator", "GalaxyComposer", "StreamState", "TopologyGenerator"]
