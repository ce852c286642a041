"""Next token sampling strategies for text generation."""

import logging
import random
from abc import ABC, abstractmethod
from bisect import bisect_right
from itertools import accumulate
from typing import Final, Literal, Mapping, overload

from typing_extensions import TypeAliasType, deprecated, override

from .errors import SamplerError
from .types import Token

log = logging.getLogger(__name__)

# floor for decayed temperatures, keeps 1 / temperature finite
MIN_TEMPERATURE: Final[float] = 1e-6

# candidate tokens in id order and their cumulative weights
SamplingTable = TypeAliasType("SamplingTable", tuple[list[Token], list[int] | list[float]])

# =========================================================================================

# sampling strategies


class Sampler(ABC):
    """
    Base strategy for drawing the next token from a count distribution.

    Samplers hold no per-model state. ``prepare`` turns a distribution into a
    table that ``draw`` samples from; callers bound to a single model may keep
    prepared tables and reuse them across draws.
    """

    # prepared tables change with the generation step and must not be reused
    step_dependent: bool = False

    @abstractmethod
    def prepare(self, dist: Mapping[Token, int], step: int = 0) -> SamplingTable:
        """
        Build the sampling table of a non-empty distribution.

        :param dist: Next token -> weighted count, every count >= 1.
        :param step: Number of tokens generated so far.
        """

    @abstractmethod
    def draw(self, table: SamplingTable, rng: random.Random) -> Token:
        """Draw one token from a table built by :meth:`prepare`."""

    def choose(self, dist: Mapping[Token, int], rng: random.Random, step: int = 0) -> Token:
        """Prepare ``dist`` and draw one token from it."""
        return self.draw(self.prepare(dist, step), rng)


class WeightedSampler(Sampler):
    """
    Draw tokens proportionally to their counts.

    Cumulative counts are searched with ``bisect`` so each draw is
    O(log n). Tokens are ordered by id, so a given random seed gives the same
    draw whatever order the distribution was built or loaded in.
    """

    @override
    def prepare(self, dist: Mapping[Token, int], step: int = 0) -> SamplingTable:
        tokens = sorted(dist)
        return tokens, list(accumulate(dist[tok] for tok in tokens))

    @override
    def draw(self, table: SamplingTable, rng: random.Random) -> Token:
        """Return a token with probability ``count / total``."""
        tokens, cumulative = table
        # integer draw keeps the distribution exact for large counts
        point = rng.randrange(cumulative[-1])
        return tokens[bisect_right(cumulative, point)]


class TemperatureSampler(Sampler):
    """
    Draw tokens proportionally to ``count ** (1 / temperature)``.

    Temperatures below 1 favour frequent continuations, above 1 flatten the
    distribution towards uniform. With ``alpha`` the temperature at step ``n``
    is ``temperature * alpha ** n``, so ``alpha < 1`` makes long outputs
    increasingly conservative.
    """

    def __init__(self, temperature: float, alpha: float = 1.0) -> None:
        super().__init__()
        if temperature <= 0:
            raise SamplerError(f"temperature must be positive (got {temperature})")
        if alpha <= 0:
            raise SamplerError(f"temperature alpha must be positive (got {alpha})")
        self.temperature = temperature
        self.alpha = alpha
        self.step_dependent = alpha != 1.0

    def temperature_at(self, step: int) -> float:
        """Return the temperature used after ``step`` generated tokens."""
        return max(self.temperature * self.alpha**step, MIN_TEMPERATURE)

    @override
    def prepare(self, dist: Mapping[Token, int], step: int = 0) -> SamplingTable:
        tokens = sorted(dist)
        exponent = 1.0 / self.temperature_at(step)
        # scale by the peak count first so the power stays within [0, 1]
        peak = max(dist.values())
        return tokens, list(accumulate((dist[tok] / peak) ** exponent for tok in tokens))

    @override
    def draw(self, table: SamplingTable, rng: random.Random) -> Token:
        """Return a token with probability proportional to its tempered count."""
        tokens, cumulative = table
        idx = bisect_right(cumulative, rng.random() * cumulative[-1])
        # float rounding can push the point onto the last boundary
        return tokens[min(idx, len(tokens) - 1)]


class GreedySampler(Sampler):
    """Always pick the most frequent token, the lowest id on ties."""

    @override
    def prepare(self, dist: Mapping[Token, int], step: int = 0) -> SamplingTable:
        return [max(sorted(dist), key=dist.__getitem__)], [1]

    @override
    def draw(self, table: SamplingTable, rng: random.Random) -> Token:
        """Return the most frequent token, ignoring ``rng``."""
        return table[0][0]


@deprecated(
    "Reference implementation for documentation only. Use `WeightedSampler()` for production."
)
def slow_weighted_choice(dist: Mapping[Token, int], rng: random.Random) -> Token:
    """
    Draw a token proportionally to its count with a linear scan.

    Walks the tokens in id order subtracting counts from a random point in
    ``[0, total)`` until it drops below zero. Each draw is O(n) in the number
    of continuations, which is what ``WeightedSampler`` avoids with cumulative
    counts and binary search; both return the same token for the same random
    state.
    """
    tokens = sorted(dist)
    point = rng.randrange(sum(dist.values()))
    for tok in tokens:
        point -= dist[tok]
        if point < 0:
            return tok
    # unreachable for distributions with positive counts
    raise SamplerError("cannot sample from an empty distribution")


SamplerName = Literal["weighted", "temperature", "greedy"]

_SAMPLERS: Final[dict[str, type[Sampler]]] = {
    "weighted": WeightedSampler,
    "temperature": TemperatureSampler,
    "greedy": GreedySampler,
}


def list_samplers() -> list[str]:
    """Return available sampler names."""
    return list(_SAMPLERS.keys())


@overload
def get_sampler(name: Literal["weighted", "greedy"] = "weighted") -> Sampler:
    """Return a built-in sampler that does not need extra arguments."""
    ...


@overload
def get_sampler(
    name: Literal["temperature"], temperature: float, alpha: float = 1.0
) -> TemperatureSampler:
    """Return a tempered sampler."""
    ...


def get_sampler(
    name: SamplerName = "weighted",
    temperature: float | None = None,
    alpha: float = 1.0,
) -> Sampler:
    """
    Create a sampler by name.

    :param name: Sampler identifier: "weighted", "temperature" or "greedy".
    :param temperature: Required for "temperature".
    :param alpha: Per-token temperature decay for "temperature".
    :raises SamplerError: If name is unknown or temperature is missing or invalid.
    """
    if name not in _SAMPLERS:
        raise SamplerError(
            "unknown sampler name",
            invalid_name=name,
            available=list(_SAMPLERS.keys()),
        )

    if name == "temperature":
        if temperature is None:
            raise SamplerError("temperature is required for temperature sampler")
        return TemperatureSampler(temperature, alpha)

    return _SAMPLERS[name]()


__all__ = [
    "SamplerName",
    "SamplingTable",
    "Sampler",
    "WeightedSampler",
    "TemperatureSampler",
    "GreedySampler",
    "slow_weighted_choice",
    "list_samplers",
    "get_sampler",
]
