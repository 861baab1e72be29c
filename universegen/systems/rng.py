"""Counter-based seeded stream using xxhash.

The Golden Rule: a draw depends ONLY on (seed, domain, counter). The stream
state is an explicit immutable value; every helper returns the value it drew
together with the advanced state, so nothing is shared between callers.

Formula: value = Hash(Seed, Domain, Counter)
"""

from __future__ import annotations

import math
import struct
from dataclasses import dataclass
from typing import Sequence

import xxhash

from universegen.core.enums import Domain
from universegen.core.errors import InvalidParameter

_MASK64 = (1 << 64) - 1
_SEED31 = 0x7FFFFFFF
_FLOAT_SCALE = 1.0 / (1 << 53)


def _hash(seed: int, domain: int, counter: int) -> int:
    payload = struct.pack("<QiQ", seed & _MASK64, domain, counter & _MASK64)
    return xxhash.xxh64(payload).intdigest()


@dataclass(frozen=True, slots=True)
class StreamState:
    """Position in a deterministic stream. Values, not objects with identity."""

    seed: int
    domain: int = int(Domain.ROOT)
    counter: int = 0

    def advanced(self, steps: int = 1) -> StreamState:
        return StreamState(self.seed, self.domain, self.counter + steps)


def create(seed: int, domain: Domain = Domain.ROOT) -> StreamState:
    """Start a stream at counter 0."""
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise InvalidParameter(f"seed must be an integer, got {seed!r}")
    return StreamState(seed=seed, domain=int(domain), counter=0)


def next_float(state: StreamState) -> tuple[float, StreamState]:
    """Return a deterministic float in [0.0, 1.0) and the advanced state."""
    h = _hash(state.seed, state.domain, state.counter)
    # top 53 bits so the result can never round up to 1.0
    return (h >> 11) * _FLOAT_SCALE, state.advanced()


def next_uniform(state: StreamState, low: float, high: float) -> tuple[float, StreamState]:
    f, state = next_float(state)
    return low + f * (high - low), state


def next_int(state: StreamState, low: int, high: int) -> tuple[int, StreamState]:
    """Return a deterministic integer in [low, high] inclusive."""
    if low > high:
        raise InvalidParameter(f"next_int requires low <= high, got [{low}, {high}]")
    f, state = next_float(state)
    return low + int(f * (high - low + 1)), state


def next_bool(state: StreamState, probability: float = 0.5) -> tuple[bool, StreamState]:
    """Return True with the given probability."""
    f, state = next_float(state)
    return f < probability, state


def next_geometric(state: StreamState, p: float) -> tuple[int, StreamState]:
    """Number of failures before the first success; mean (1 - p) / p.

    Always consumes exactly one draw, so call sequences stay aligned even
    for the degenerate ``p == 1`` case.
    """
    if not (0.0 < p <= 1.0):
        raise InvalidParameter(f"geometric p must lie in (0, 1], got {p!r}")
    f, state = next_float(state)
    if p == 1.0:
        return 0, state
    return int(math.floor(math.log1p(-f) / math.log1p(-p))), state


def next_weighted_choice(state: StreamState, weights: Sequence[float]) -> tuple[int, StreamState]:
    """Pick an index with probability proportional to its weight."""
    if not weights:
        raise InvalidParameter("weighted choice needs at least one weight")
    if any(w < 0 or math.isnan(w) for w in weights):
        raise InvalidParameter(f"weights must be non-negative, got {list(weights)}")
    total = math.fsum(weights)
    if total <= 0:
        raise InvalidParameter(f"weights must sum to a positive value, got {list(weights)}")
    f, state = next_float(state)
    target = f * total
    acc = 0.0
    last_positive = 0
    for i, w in enumerate(weights):
        if w <= 0:
            continue
        last_positive = i
        acc += w
        if target < acc:
            return i, state
    return last_positive, state


def next_normal(state: StreamState, mu: float = 0.0, sigma: float = 1.0) -> tuple[float, StreamState]:
    """Box-Muller transform; consumes two draws."""
    u1, state = next_float(state)
    u2, state = next_float(state)
    z0 = math.sqrt(-2.0 * math.log(1.0 - u1)) * math.cos(2.0 * math.pi * u2)
    return mu + z0 * sigma, state


def fork(state: StreamState, domain: Domain) -> StreamState:
    """Derive an independent sub-stream. The parent state is not advanced."""
    child_seed = _hash(state.seed, int(domain) + 1000 * (state.domain + 1), state.counter)
    return StreamState(seed=child_seed, domain=int(domain), counter=0)


def derive_seed(master_seed: int, index: int) -> int:
    """Seed for the index-th system of a batch: xxh64(master, index) & 0x7FFFFFFF."""
    return _hash(master_seed, int(Domain.SEED_DERIVATION), index) & _SEED31
