"""Transition model construction from weighted datasets."""

import logging
from collections import Counter, defaultdict
from typing import Iterator

from ._decorators import measure_time
from ._progress import progress
from .dataset import Dataset
from .dictionary import END_TOKEN, START_TOKEN
from .model import Model
from .types import Context, Token

log = logging.getLogger(__name__)


def iter_windows(
    message: tuple[Token, ...], window_size: int
) -> Iterator[tuple[Context, Token]]:
    """
    Slide a window over a message and yield ``(context, next_token)`` pairs.

    The message is padded with ``window_size`` START tokens in front and
    terminated by END, so a message of ``n`` tokens yields ``n + 1`` pairs and
    every context has exactly ``window_size`` tokens.

    >>> list(iter_windows((5, 6), 2))
    [((0, 0), 5), ((0, 5), 6), ((5, 6), 1)]
    """
    history: Context = (START_TOKEN,) * window_size
    for next_tok in (*message, END_TOKEN):
        yield history, next_tok
        if window_size:
            # fifo: drop the oldest token, append the newest
            history = history[1:] + (next_tok,)


@measure_time(label="model build")
def build(dataset: Dataset, window_size: int, show_progress: bool = True) -> Model:
    """
    Build a transition model by scanning every weighted message.

    For each window position, every suffix of the context from length
    ``window_size`` down to the empty context is indexed and the transition
    to the next token is incremented by the message weight. Counts are fully
    determined by the dataset and ``window_size``; the entry order does not
    matter, which makes building from merged datasets additive.

    ``window_size == 0`` yields a unigram model keyed on the empty context.

    :param dataset: Weighted tokenized messages.
    :param window_size: Maximum context length to index.
    :param show_progress: Display a progress bar while scanning when ``True``.
    :returns: Immutable transition model.
    :raises ValueError: If ``window_size`` is negative.
    """
    if window_size < 0:
        raise ValueError(f"window size must be non-negative (got {window_size})")

    if len(dataset) == 0:
        log.warning("building model from an empty dataset, model will have no contexts")

    table: defaultdict[Context, Counter[Token]] = defaultdict(Counter)

    entries = progress(
        dataset, total=len(dataset), desc="building model", unit="msg", show=show_progress
    )
    for entry in entries:
        for history, next_tok in iter_windows(entry.message, window_size):
            # history[window_size:] is the empty context
            for start in range(window_size + 1):
                table[history[start:]][next_tok] += entry.weight

    model = Model(table, window_size)
    log.info(
        f"built model with window {window_size}: {len(model)} contexts, "
        f"{model.complexity()} transitions from {len(dataset)} messages"
    )
    return model


__all__ = ["iter_windows", "build"]
