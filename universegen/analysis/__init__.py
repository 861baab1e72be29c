"""Read-only analysis of generated universes: validation and statistics."""

from universegen.analysis.stats import UniverseStats, analyze_system, format_stats
from universegen.analysis.validator import (
    ChildCountBounds,
    ValidationReport,
    bounds_for_preset,
    validate_many,
    validate_system,
)

__all__ = [
    "ChildCountBounds",
    "UniverseStats",
    "ValidationReport",
    "analyze_system",
    "bounds_for_preset",
    "format_stats",
    "validate_many",
    "validate_system",
]
