"""Grammar building blocks: repeat distributions, child specs, production rules.

A grammar maps rule names to weighted alternatives. Each alternative lists
the child symbols it produces, how many of each (a repeat distribution),
and which rule expands each produced child (``None`` = terminal).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Union

from universegen.core.enums import GrammarSymbol
from universegen.core.errors import InvalidConfiguration
from universegen.systems import rng

if TYPE_CHECKING:
    from universegen.config import GenerationConfig
    from universegen.systems.rng import StreamState


# ---------------------------------------------------------------------------
# Repeat distributions (closed set)
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class Geometric:
    """Geometric count. ``source`` names the config field that supplies p
    (``"planet"`` or ``"moon"``); ``p`` overrides it when set."""

    source: str = "planet"
    p: float | None = None
    min_count: int = 0
    max_count: int | None = None


@dataclass(frozen=True, slots=True)
class Fixed:
    count: int


@dataclass(frozen=True, slots=True)
class Uniform:
    low: int
    high: int


@dataclass(frozen=True, slots=True)
class Multiplicity:
    """Companion-star count: index sampled from star_probabilities minus ``offset``."""

    offset: int = 1


RepeatDistribution = Union[Geometric, Fixed, Uniform, Multiplicity]


def sample_count(
    dist: RepeatDistribution,
    stream: StreamState,
    config: GenerationConfig,
) -> tuple[int, StreamState]:
    """Draw a child count. Every branch consumes at least one draw."""
    if isinstance(dist, Geometric):
        p = dist.p if dist.p is not None else _geometric_p(dist.source, config)
        n, stream = rng.next_geometric(stream, p)
        n = max(n, dist.min_count)
        if dist.max_count is not None:
            n = min(n, dist.max_count)
        return n, stream
    if isinstance(dist, Fixed):
        _, stream = rng.next_float(stream)
        return dist.count, stream
    if isinstance(dist, Uniform):
        return rng.next_int(stream, dist.low, dist.high)
    if isinstance(dist, Multiplicity):
        idx, stream = rng.next_weighted_choice(stream, config.star_probabilities)
        return idx + 1 - dist.offset, stream
    raise TypeError(f"unhandled repeat distribution {dist!r}")


def _geometric_p(source: str, config: GenerationConfig) -> float:
    if source == "planet":
        return config.planet_geometric_p
    if source == "moon":
        return config.moon_geometric_p
    raise InvalidConfiguration("grammar", source, "geometric source must be 'planet' or 'moon'")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class ChildSpec:
    """Produce ``repeat`` children of ``symbol``, each expanded by ``rule``."""

    symbol: GrammarSymbol
    repeat: RepeatDistribution
    rule: str | None = None


@dataclass(frozen=True, slots=True)
class ProductionRule:
    weight: float
    children: tuple[ChildSpec, ...] = ()


@dataclass(frozen=True, slots=True)
class Grammar:
    """A full production table.

    ``axiom`` is the rule that expands the root primary star. ``max_depth``
    caps body nesting (primary star = depth 0); ``max_group_depth`` caps
    cluster nesting when systems are composed into a galaxy. ``child_bounds``
    holds the (min, max) child count each body kind can receive from the
    productions; kinds left out are unbounded.
    """

    name: str
    axiom: str
    productions: Mapping[str, tuple[ProductionRule, ...]]
    max_depth: int = 3
    max_group_depth: int = 2
    root_symbol: GrammarSymbol = GrammarSymbol.STAR
    child_bounds: Mapping[GrammarSymbol, tuple[int, int | None]] = field(default_factory=dict)

    def rules_for(self, rule: str) -> tuple[ProductionRule, ...]:
        try:
            return self.productions[rule]
        except KeyError:
            raise InvalidConfiguration("grammar", rule, f"rule not defined in grammar '{self.name}'") from None

    def check(self) -> None:
        """Reject grammars that reference undefined rules or carry bad weights."""
        if self.max_depth < 0:
            raise InvalidConfiguration("grammar.max_depth", self.max_depth, "must be non-negative")
        self.rules_for(self.axiom)
        for symbol, (low, high) in self.child_bounds.items():
            if low < 0 or (high is not None and high < low):
                raise InvalidConfiguration("grammar.child_bounds", symbol.name, "bounds need 0 <= min <= max")
        for name, alternatives in self.productions.items():
            if not alternatives:
                raise InvalidConfiguration("grammar", name, "rule has no alternatives")
            if sum(a.weight for a in alternatives) <= 0 or any(a.weight < 0 for a in alternatives):
                raise InvalidConfiguration("grammar", name, "rule weights must be non-negative with a positive sum")
            for alt in alternatives:
                for child_spec in alt.children:
                    if child_spec.rule is not None:
                        self.rules_for(child_spec.rule)
                    repeat = child_spec.repeat
                    if isinstance(repeat, Uniform) and not (0 <= repeat.low <= repeat.high):
                        raise InvalidConfiguration("grammar", name, "uniform repeat needs 0 <= low <= high")
