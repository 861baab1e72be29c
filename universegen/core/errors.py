"""Exception types raised by the generator.

Structural problems in a finished universe are not exceptions: the validator
reports them as data. Only bad inputs and exhausted caps raise.
"""

from __future__ import annotations

from typing import Any


class UniverseGenError(Exception):
    """Base class for all generator errors."""


class InvalidParameter(UniverseGenError, ValueError):
    """A sampling helper received an argument outside its domain."""


class InvalidConfiguration(UniverseGenError, ValueError):
    """A generation config field is malformed or out of range."""

    def __init__(self, field: str, value: Any, reason: str) -> None:
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid configuration field '{field}' = {value!r}: {reason}")


class ResourceLimitExceeded(UniverseGenError, RuntimeError):
    """Generation would exceed a caller-supplied node cap.

    ``partial`` holds whatever was built before the cap was hit, but only
    when the caller asked for diagnostics; otherwise it is ``None``.
    """

    def __init__(self, resource: str, limit: int, attempted: int, partial: Any = None) -> None:
        self.resource = resource
        self.limit = limit
        self.attempted = attempted
        self.partial = partial
        super().__init__(f"{resource} limit exceeded: {attempted} > {limit}")


class MalformedSnapshot(UniverseGenError, ValueError):
    """A snapshot could not be parsed into a universe.

    ``problems`` lists one ``"location: message"`` line per schema error.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = tuple(problems)
        super().__init__("malformed snapshot: " + "; ".join(self.problems))
