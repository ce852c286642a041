"""
Stochastic text generation from a transition model.
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Final, Hashable, Iterable, Iterator, Mapping

from .dictionary import END_TOKEN, START_TOKEN, TokenDictionary
from .errors import EmptyModelError, GenerationError, UnknownTokenError
from .messages import split_words
from .model import Model
from .pattern import resolve_pattern
from .sampler import Sampler, SamplerName, SamplingTable, WeightedSampler, get_sampler
from .types import Context, Token, Word

DEFAULT_MIN_LENGTH: Final[int] = 1
DEFAULT_MAX_LENGTH: Final[int] = 150
# 1.0 never rejects a repeated token
DEFAULT_REPEAT_PENALTY: Final[float] = 1.0

log = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """State of a generation run."""

    RUNNING = "running"
    # END was drawn after at least min_length tokens
    DONE = "done"
    # no indexed context has a usable continuation
    STALLED = "stalled"
    # max_length tokens were emitted without drawing END
    MAX_LENGTH = "max_length"


@dataclass(frozen=True)
class GenerationParams:
    """Generation settings, defaults match the command line."""

    min_length: int = DEFAULT_MIN_LENGTH
    max_length: int = DEFAULT_MAX_LENGTH
    # None uses the model's window
    window_size: int | None = None
    sampler: SamplerName = "weighted"
    temperature: float = 1.0
    # temperature after n tokens is temperature * temperature_alpha ** n
    temperature_alpha: float = 1.0
    # a token already seen r times is kept with probability repeat_penalty ** r
    repeat_penalty: float = DEFAULT_REPEAT_PENALTY

    def make_sampler(self) -> Sampler:
        """Create the sampler named by these params."""
        if self.sampler == "temperature":
            return get_sampler("temperature", self.temperature, self.temperature_alpha)
        return get_sampler(self.sampler)


@dataclass(frozen=True)
class GenerationResult:
    """Outcome of a finished generation run."""

    seed: tuple[Token, ...]
    tokens: tuple[Token, ...]
    status: GenerationStatus
    text: str

    @property
    def completed(self) -> bool:
        """Whether the run ended by drawing END rather than stalling or hitting the cap."""
        return self.status is GenerationStatus.DONE


class TokenStream:
    """
    Lazy iterator over generated tokens.

    Each step looks the running context up in the model, from the full window
    down to the empty context, and draws the next token from the first usable
    distribution. Until ``min_length`` tokens were emitted END is removed from
    candidate distributions; a context that only continues with END is then
    skipped like an unseen one. A drawn token that already occurs ``r`` times
    in the seed or output is kept with probability ``repeat_penalty ** r``;
    otherwise it is removed and the draw repeated while other candidates
    remain. Once exhausted, ``status`` tells why.
    """

    def __init__(
        self,
        model: Model,
        sampler: Sampler,
        rng: random.Random,
        context: Context,
        window_size: int,
        min_length: int,
        max_length: int,
        history: Iterable[Token] = (),
        repeat_penalty: float = DEFAULT_REPEAT_PENALTY,
        tables: dict[Hashable, SamplingTable] | None = None,
    ) -> None:
        self._model = model
        self._sampler = sampler
        self._rng = rng
        self._context = context
        self._window_size = window_size
        self._min_length = min_length
        self._max_length = max_length
        self._history = Counter(history)
        self._repeat_penalty = repeat_penalty
        # prepared tables of this model, keyed by (context, END allowed)
        self._tables = tables if tables is not None else {}
        self._emitted = 0
        self.status = GenerationStatus.RUNNING

    @property
    def emitted(self) -> int:
        """Number of tokens produced so far."""
        return self._emitted

    @property
    def context(self) -> Context:
        """Current sliding window of the last tokens."""
        return self._context

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        if self.status is not GenerationStatus.RUNNING:
            raise StopIteration

        if self._emitted >= self._max_length:
            self.status = GenerationStatus.MAX_LENGTH
            raise StopIteration

        allow_end = self._emitted >= self._min_length
        found = self._candidates(allow_end)
        if found is None:
            log.debug(f"generation stalled after {self._emitted} tokens")
            self.status = GenerationStatus.STALLED
            raise StopIteration

        ctx, dist = found
        tok = self._draw((ctx, allow_end), dist)
        if tok == END_TOKEN:
            self.status = GenerationStatus.DONE
            raise StopIteration

        self._emitted += 1
        self._history[tok] += 1
        if self._window_size:
            # fifo: drop the oldest token once the window is full
            self._context = (*self._context, tok)[-self._window_size :]
        return tok

    def _candidates(self, allow_end: bool) -> tuple[Context, Mapping[Token, int]] | None:
        """Return the longest context with a usable distribution, or ``None``."""
        for start in range(len(self._context) + 1):
            ctx = self._context[start:]
            dist = self._model.lookup(ctx)
            if dist is None:
                continue
            if not allow_end and END_TOKEN in dist:
                if len(dist) == 1:
                    continue
                dist = {tok: n for tok, n in dist.items() if tok != END_TOKEN}
            return ctx, dist
        return None

    def _draw(self, key: Hashable, dist: Mapping[Token, int]) -> Token:
        """Sample one token from ``dist`` and apply the repeat penalty."""
        if self._sampler.step_dependent:
            table = self._sampler.prepare(dist, self._emitted)
        else:
            table = self._tables.get(key)
            if table is None:
                table = self._tables[key] = self._sampler.prepare(dist)
        tok = self._sampler.draw(table, self._rng)

        if self._repeat_penalty >= 1.0:
            return tok

        remaining = dict(dist)
        while len(remaining) > 1:
            repeats = self._history[tok]
            if not repeats or self._rng.random() < self._repeat_penalty**repeats:
                break
            del remaining[tok]
            tok = self._sampler.choose(remaining, self._rng, self._emitted)
        return tok


class Generator:
    """
    Generate text from a model and the dictionary it was built against.

    The model and dictionary are only read. Runs share this generator's random
    source, so a fixed ``seed`` makes a sequence of runs reproducible. String
    seeds are split with the same pattern and case policy as parsed messages.
    """

    def __init__(
        self,
        model: Model,
        dictionary: TokenDictionary,
        sampler: Sampler | None = None,
        seed: int | None = None,
        *,
        pattern: str = "whitespace",
        custom_pattern: str | None = None,
        lowercase: bool = True,
    ) -> None:
        """
        :param model: Built or loaded transition model.
        :param dictionary: Dictionary used to resolve seeds and decode output.
        :param sampler: Sampling strategy, weighted by counts when ``None``.
        :param seed: Seed for the random source.
        :param pattern: Split pattern name applied to string seeds.
        :param custom_pattern: Custom regex overriding ``pattern``.
        :param lowercase: Fold string seeds to lower case.
        :raises EmptyModelError: If the model has no contexts.
        :raises PatternError: If the split pattern is unknown or invalid.
        """
        if len(model) == 0:
            raise EmptyModelError("cannot generate from a model without contexts")
        self.model = model
        self.dictionary = dictionary
        self._sampler = sampler if sampler is not None else WeightedSampler()
        self._rng = random.Random(seed)
        self._split = resolve_pattern(pattern, custom_pattern)
        self._lowercase = lowercase
        # sampling tables of self.model, shared by every run of this generator
        self._tables: dict[Hashable, SamplingTable] = {}

    @property
    def sampler(self) -> Sampler:
        return self._sampler

    @classmethod
    def from_params(
        cls,
        model: Model,
        dictionary: TokenDictionary,
        params: GenerationParams,
        seed: int | None = None,
        **seed_options,
    ) -> "Generator":
        """
        Create a generator using the sampler configured in ``params``.

        ``seed_options`` are passed on as the keyword-only seed splitting
        options of the constructor.
        """
        return cls(model, dictionary, params.make_sampler(), seed, **seed_options)

    def encode_seed(self, seed: str | Iterable[Word | Token]) -> tuple[Token, ...]:
        """
        Resolve a seed into tokens.

        A string is split into words like a parsed message line; an iterable
        may mix words and tokens.

        :raises UnknownTokenError: If a word or token is not in the dictionary.
        """
        if isinstance(seed, str):
            seed = split_words(seed, self._split, self._lowercase)

        tokens = []
        for item in seed:
            if isinstance(item, str):
                tok = self.dictionary.lookup(item)
                if tok is None:
                    raise UnknownTokenError("seed word not found in dictionary", word=item)
            else:
                tok = item
                if not self.dictionary.has_token(tok):
                    raise UnknownTokenError("seed token not found in dictionary", token=tok)
            tokens.append(tok)
        return tuple(tokens)

    def stream(
        self,
        seed: str | Iterable[Word | Token] = (),
        min_length: int = DEFAULT_MIN_LENGTH,
        max_length: int = DEFAULT_MAX_LENGTH,
        window_size: int | None = None,
        repeat_penalty: float = DEFAULT_REPEAT_PENALTY,
    ) -> TokenStream:
        """
        Start a lazy generation run.

        The starting context is the seed padded in front with START tokens and
        cut to the effective window, which is ``window_size`` capped by the
        model's window.

        :raises GenerationError: If lengths or window are negative,
            ``min_length > max_length`` or ``repeat_penalty`` is outside [0, 1].
        :raises UnknownTokenError: If the seed cannot be resolved.
        """
        if min_length < 0 or max_length < 0:
            raise GenerationError(
                f"lengths must be non-negative (min {min_length}, max {max_length})"
            )
        if min_length > max_length:
            raise GenerationError(
                f"min_length {min_length} exceeds max_length {max_length}"
            )
        if window_size is not None and window_size < 0:
            raise GenerationError(f"window size must be non-negative (got {window_size})")
        if not 0.0 <= repeat_penalty <= 1.0:
            raise GenerationError(
                f"repeat penalty must be within [0, 1] (got {repeat_penalty})"
            )

        effective = self.model.window_size
        if window_size is not None:
            if window_size > effective:
                log.warning(
                    f"window {window_size} exceeds model window {effective}, "
                    f"using {effective}"
                )
            effective = min(window_size, effective)

        tokens = self.encode_seed(seed)
        context: Context = ()
        if effective:
            context = ((START_TOKEN,) * effective + tokens)[-effective:]

        return TokenStream(
            self.model,
            self._sampler,
            self._rng,
            context,
            effective,
            min_length,
            max_length,
            history=tokens,
            repeat_penalty=repeat_penalty,
            tables=self._tables,
        )

    def generate(
        self,
        seed: str | Iterable[Word | Token] = (),
        min_length: int = DEFAULT_MIN_LENGTH,
        max_length: int = DEFAULT_MAX_LENGTH,
        window_size: int | None = None,
        repeat_penalty: float = DEFAULT_REPEAT_PENALTY,
    ) -> GenerationResult:
        """
        Run generation to completion and decode the seed plus generated tokens.

        Stalling or reaching ``max_length`` are reported through
        ``GenerationResult.status``, not raised.
        """
        seed_tokens = self.encode_seed(seed)
        stream = self.stream(seed_tokens, min_length, max_length, window_size, repeat_penalty)
        tokens = tuple(stream)

        text = self.dictionary.detokenize((*seed_tokens, *tokens))
        log.debug(f"generated {len(tokens)} tokens ({stream.status.value})")
        return GenerationResult(seed_tokens, tokens, stream.status, text)

    def generate_with(
        self, params: GenerationParams, seed: str | Iterable[Word | Token] = ()
    ) -> GenerationResult:
        """Run :meth:`generate` with lengths, window and penalty taken from ``params``."""
        return self.generate(
            seed,
            params.min_length,
            params.max_length,
            params.window_size,
            params.repeat_penalty,
        )


__all__ = [
    "GenerationStatus",
    "GenerationParams",
    "GenerationResult",
    "TokenStream",
    "Generator",
]
