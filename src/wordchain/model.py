"""
Immutable transition model: context -> next token -> weighted count.
"""

import logging
from collections import Counter
from pathlib import Path
from types import MappingProxyType
from typing import Iterator, Mapping, TextIO

from ._artifact import open_artifact, parse_int, write_artifact
from .dictionary import TokenDictionary
from .errors import CorruptArtifactError, UnknownTokenError
from .types import Context, RemapTable, Token, TransitionTable

log = logging.getLogger(__name__)


class Model:
    """
    Transition table built with a fixed context window.

    Every context of length 0 up to ``window_size`` observed in the dataset is
    indexed, so lookups can fall back from the longest context to shorter
    ones. Distributions are never empty and every count is at least 1.
    """

    def __init__(self, table: TransitionTable, window_size: int) -> None:
        if window_size < 0:
            raise ValueError(f"window size must be non-negative (got {window_size})")
        self._window_size = window_size
        # private copy, the model never changes after construction
        self._table: TransitionTable = {
            tuple(ctx): dict(dist) for ctx, dist in table.items()
        }

    @property
    def window_size(self) -> int:
        return self._window_size

    def lookup(self, context: Context) -> Mapping[Token, int] | None:
        """Return the read-only next token distribution of ``context`` or ``None``."""
        dist = self._table.get(context)
        if dist is None:
            return None
        return MappingProxyType(dist)

    def count(self, context: Context, token: Token) -> int:
        """Return the weighted count of ``context -> token`` (0 when unseen)."""
        return self._table.get(context, {}).get(token, 0)

    def contexts(self) -> Iterator[Context]:
        """Iterate over every indexed context."""
        return iter(self._table)

    def transitions(self) -> dict[Context, dict[Token, int]]:
        """Return a copy of the full transition table."""
        return {ctx: dict(dist) for ctx, dist in self._table.items()}

    def complexity(self) -> int:
        """Return the number of distinct ``context -> token`` transitions."""
        return sum(len(dist) for dist in self._table.values())

    def remap(self, remap: RemapTable) -> "Model":
        """
        Translate every token with a dictionary merge remap table.

        :raises UnknownTokenError: If a token of the model has no entry in ``remap``.
        """
        try:
            table = {
                tuple(remap[tok] for tok in ctx): {remap[tok]: n for tok, n in dist.items()}
                for ctx, dist in self._table.items()
            }
        except KeyError as e:
            raise UnknownTokenError(
                "model token missing from remap table", token=e.args[0]
            ) from e
        return Model(table, self._window_size)

    def combine(self, other: "Model") -> "Model":
        """
        Return the count-wise sum of two models built with the same window.

        Both models must share the same dictionary ids, remap first otherwise.
        """
        if other._window_size != self._window_size:
            raise ValueError(
                f"window size mismatch: {self._window_size} != {other._window_size}"
            )
        table: dict[Context, Counter[Token]] = {
            ctx: Counter(dist) for ctx, dist in self._table.items()
        }
        for ctx, dist in other._table.items():
            table.setdefault(ctx, Counter()).update(dist)
        return Model(table, self._window_size)

    def validate(self, dictionary: TokenDictionary) -> None:
        """
        Check that every token of the table is an id of ``dictionary``.

        :raises CorruptArtifactError: On the first unknown token.
        """
        for ctx, dist in self._table.items():
            for tok in (*ctx, *dist):
                if not dictionary.has_token(tok):
                    raise CorruptArtifactError(
                        f"model references token {tok} absent from dictionary"
                    )

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, context: object) -> bool:
        return context in self._table

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Model):
            return NotImplemented
        return self._window_size == other._window_size and self._table == other._table

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(window_size={self._window_size}, "
            f"contexts={len(self)}, transitions={self.complexity()})"
        )

    def save(self, file_prefix: str | Path) -> Path:
        """
        Save the model to ``<file_prefix>.model``.

        One line per context: ``<context ids> -> <token>:<count> ...``.
        """

        def write_body(f: TextIO) -> None:
            f.write(f"window {self._window_size}\n")
            f.write("---\n")
            f.write(f"{len(self)}\n")
            # shortest contexts first, then by ids, so files are reproducible
            for ctx in sorted(self._table, key=lambda c: (len(c), c)):
                dist = self._table[ctx]
                targets = " ".join(f"{tok}:{n}" for tok, n in sorted(dist.items()))
                f.write(f"{' '.join(map(str, ctx))} -> {targets}\n".lstrip())
            f.write("---\n")

        log.info(f"saving model to {file_prefix}")
        log.debug(f"saving {len(self)} contexts and {self.complexity()} transitions")
        return write_artifact(file_prefix, "model", write_body)

    @classmethod
    def load(
        cls, path: str | Path, dictionary: TokenDictionary | None = None
    ) -> "Model":
        """
        Load a model from a ``.model`` file.

        :param dictionary: When given, every token must belong to it.
        :raises CorruptArtifactError: If the table is malformed, a count is
            lower than 1, or a token is missing from ``dictionary``.
        """
        table: TransitionTable = {}
        with open_artifact(path, "model") as reader:
            window = reader.read_field("window")
            window_size = parse_int(reader, window, window)
            if window_size < 0:
                raise reader.corrupt("negative window size", line=window)

            for line in reader.read_section():
                ctx_part, sep, dist_part = line.partition("->")
                if not sep:
                    raise reader.corrupt("transition line missing '->'", line=line)

                ctx = tuple(parse_int(reader, tok, line) for tok in ctx_part.split())
                if len(ctx) > window_size:
                    raise reader.corrupt("context longer than window", line=line)
                if ctx in table:
                    raise reader.corrupt("duplicate context", line=line)

                dist: dict[Token, int] = {}
                for pair in dist_part.split():
                    raw_tok, colon, n = pair.partition(":")
                    if not colon:
                        raise reader.corrupt("transition must be <token>:<count>", line=line)
                    count = parse_int(reader, n, line)
                    if count < 1:
                        raise reader.corrupt("transition count must be positive", line=line)
                    tok = parse_int(reader, raw_tok, line)
                    if tok in dist:
                        raise reader.corrupt("duplicate transition", line=line)
                    dist[tok] = count
                if not dist:
                    raise reader.corrupt("context without transitions", line=line)
                table[ctx] = dist

        model = cls(table, window_size)
        if dictionary is not None:
            try:
                model.validate(dictionary)
            except CorruptArtifactError as e:
                raise CorruptArtifactError(str(e), path=str(path)) from e

        log.info(
            f"model loaded successfully: window {window_size}, {len(model)} contexts, "
            f"{model.complexity()} transitions"
        )
        return model


__all__ = ["Model"]
