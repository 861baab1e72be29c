"""Seeded procedural universe generator."""

from universegen.config import GalaxyConfig, GenerationConfig
from universegen.systems.bodies import generate_multiple_systems, generate_solar_system
from universegen.systems.galaxy import generate_galaxy
from universegen.analysis.stats import analyze_system
from universegen.analysis.validator import validate_system

__version__ = "0.1.0"

__all__ = [
    "GalaxyConfig",
    "GenerationConfig",
    "analyze_system",
    "generate_galaxy",
    "generate_multiple_systems",
    "generate_solar_system",
    "validate_system",
]
