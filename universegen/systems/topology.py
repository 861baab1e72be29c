"""Grammar-driven topology expansion.

Expands the axiom rule of a grammar into a TopologyNode tree. Expansion is
depth-first in child order and uses an explicit work stack, so deep presets
never touch the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from universegen.config import GenerationConfig
from universegen.core.enums import GrammarSymbol, TopologyPresetId
from universegen.core.errors import ResourceLimitExceeded
from universegen.core.models import TopologyNode
from universegen.systems import rng
from universegen.systems.grammar import Grammar, ProductionRule, sample_count
from universegen.systems.presets import get_preset

if TYPE_CHECKING:
    from universegen.systems.rng import StreamState

logger = logging.getLogger(__name__)


class _Draft:
    """Mutable node used only while a tree is being expanded."""

    __slots__ = ("symbol", "depth", "rule", "children")

    def __init__(self, symbol: GrammarSymbol, depth: int, rule: str | None) -> None:
        self.symbol = symbol
        self.depth = depth
        self.rule = rule
        self.children: list[_Draft] = []


def _freeze(root: _Draft) -> TopologyNode:
    """Convert drafts to immutable nodes bottom-up, without recursion."""
    order: list[_Draft] = []
    stack = [root]
    while stack:
        d = stack.pop()
        order.append(d)
        stack.extend(d.children)
    frozen: dict[int, TopologyNode] = {}
    for d in reversed(order):
        frozen[id(d)] = TopologyNode(
            symbol=d.symbol,
            children=tuple(frozen[id(c)] for c in d.children),
            depth=d.depth,
        )
    return frozen[id(root)]


class TopologyGenerator:
    """Expands a grammar into a typed tree, threading the stream state through."""

    __slots__ = ("_grammar",)

    def __init__(self, grammar: Grammar) -> None:
        grammar.check()
        self._grammar = grammar

    def generate(
        self,
        stream: StreamState,
        config: GenerationConfig,
        max_nodes: int | None = None,
        diagnostics: bool = False,
    ) -> tuple[TopologyNode, StreamState]:
        """Expand the axiom. Returns the tree and the advanced stream state.

        Raises ResourceLimitExceeded as soon as the node count would pass
        ``max_nodes``; the partial tree is attached only in diagnostics mode.
        """
        grammar = self._grammar
        root = _Draft(grammar.root_symbol, 0, grammar.axiom)
        count = 1
        stack: list[_Draft] = [root]

        while stack:
            draft = stack.pop()
            if draft.rule is None or draft.depth >= grammar.max_depth:
                continue

            rule, stream = self._select(grammar.rules_for(draft.rule), stream)
            for child_spec in rule.children:
                n, stream = sample_count(child_spec.repeat, stream, config)
                for _ in range(n):
                    count += 1
                    if max_nodes is not None and count > max_nodes:
                        partial = _freeze(root) if diagnostics else None
                        raise ResourceLimitExceeded("topology nodes", max_nodes, count, partial)
                    draft.children.append(_Draft(child_spec.symbol, draft.depth + 1, child_spec.rule))

            stack.extend(reversed(draft.children))

        logger.debug("Expanded %s grammar into %d nodes", grammar.name, count)
        return _freeze(root), stream

    @staticmethod
    def _select(alternatives: tuple[ProductionRule, ...], stream: StreamState) -> tuple[ProductionRule, StreamState]:
        if len(alternatives) == 1:
            return alternatives[0], stream
        idx, stream = rng.next_weighted_choice(stream, [a.weight for a in alternatives])
        return alternatives[idx], stream


def generate_topology(
    stream: StreamState,
    config: GenerationConfig | TopologyPresetId | str | None = None,
    grammar: Grammar | None = None,
    max_nodes: int | None = None,
    diagnostics: bool = False,
) -> tuple[TopologyNode, StreamState]:
    """Validate the config, then expand its preset's grammar (or ``grammar``).

    ``config`` may also be a preset id, in which case the preset's suggested
    parameters are used.
    """
    if config is None:
        config = GenerationConfig()
    elif not isinstance(config, GenerationConfig):
        config = GenerationConfig.for_preset(config)
    config = config.validated()
    if grammar is None:
        grammar = get_preset(config.topology_preset).grammar
    if max_nodes is None:
        max_nodes = config.max_bodies
    generator = TopologyGenerator(grammar)
    return generator.generate(stream, config, max_nodes=max_nodes, diagnostics=diagnostics or config.diagnostics)
