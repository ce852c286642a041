"""
Weighted datasets of tokenized messages.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Iterator, TextIO

from ._artifact import open_artifact, parse_int, write_artifact
from .dictionary import TokenDictionary
from .errors import InvalidWeightError
from .messages import TokenizedMessages
from .types import Token

if TYPE_CHECKING:
    from .model import Model

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatasetEntry:
    """One tokenized message and how many times its transitions count."""

    message: tuple[Token, ...]
    weight: int = 1


def _check_weight(weight: int) -> None:
    if isinstance(weight, bool) or not isinstance(weight, int) or weight < 1:
        raise InvalidWeightError("weight must be a positive integer", weight=weight)


class Dataset:
    """
    Weighted collection of tokenized messages together with their dictionary.

    Datasets are values: ``add_messages``, ``add_tokens`` and ``merge`` return
    new datasets. Building a model from ``a.merge(b)`` yields exactly the
    count-wise sum of the models built from ``a`` and ``b``.
    """

    def __init__(
        self,
        entries: Iterable[DatasetEntry] = (),
        dictionary: TokenDictionary | None = None,
    ) -> None:
        self._entries: tuple[DatasetEntry, ...] = tuple(entries)
        self._dictionary = dictionary if dictionary is not None else TokenDictionary()

    @classmethod
    def from_messages(
        cls,
        messages: TokenizedMessages,
        dictionary: TokenDictionary,
        weight: int = 1,
    ) -> "Dataset":
        """
        Create a dataset where every message has the same weight.

        :raises InvalidWeightError: If ``weight`` is lower than 1.
        :raises UnresolvableMessageError: If messages refer to unknown tokens.
        """
        return cls(dictionary=dictionary).add_messages(messages, weight)

    @property
    def entries(self) -> tuple[DatasetEntry, ...]:
        return self._entries

    @property
    def dictionary(self) -> TokenDictionary:
        return self._dictionary

    def add_messages(
        self,
        messages: TokenizedMessages,
        weight: int = 1,
        dictionary: TokenDictionary | None = None,
    ) -> "Dataset":
        """
        Return a new dataset with ``messages`` appended at ``weight``.

        Existing entries keep their weights. When ``dictionary`` is given, the
        messages are valid against it rather than this dataset's dictionary:
        both dictionaries are merged and the messages remapped.

        :raises InvalidWeightError: If ``weight`` is lower than 1.
        :raises UnresolvableMessageError: If messages refer to unknown tokens.
        """
        _check_weight(weight)

        merged = self._dictionary
        if dictionary is not None:
            messages.validate(dictionary)
            merged, remap = self._dictionary.merge(dictionary)
            messages = messages.remap(remap)
        else:
            messages.validate(self._dictionary)

        added = [DatasetEntry(message, weight) for message in messages]
        log.debug(f"adding {len(added)} messages at weight {weight}")
        return Dataset(self._entries + tuple(added), merged)

    def add_tokens(self, dictionary: TokenDictionary) -> "Dataset":
        """Return a new dataset whose dictionary also holds the words of ``dictionary``."""
        merged, _ = self._dictionary.merge(dictionary)
        return Dataset(self._entries, merged)

    def merge(self, other: "Dataset") -> "Dataset":
        """
        Concatenate two datasets, weights preserved.

        ``other``'s dictionary is merged into this one and its entries are
        remapped onto the merged ids.

        :raises UnresolvableMessageError: If an entry of ``other`` uses an id
            missing from ``other``'s dictionary.
        """
        merged, remap = self._dictionary.merge(other._dictionary)
        messages = TokenizedMessages(entry.message for entry in other._entries).remap(remap)
        remapped = (
            DatasetEntry(message, entry.weight)
            for message, entry in zip(messages, other._entries)
        )
        log.debug(f"merging datasets: {len(self)} + {len(other)} entries")
        return Dataset(self._entries + tuple(remapped), merged)

    def total_weight(self) -> int:
        """Return the sum of all entry weights."""
        return sum(entry.weight for entry in self._entries)

    def build(self, window_size: int) -> "Model":
        """Build a transition model from this dataset, see :func:`wordchain.builder.build`."""
        from .builder import build

        return build(self, window_size)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[DatasetEntry]:
        return iter(self._entries)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Dataset):
            return NotImplemented
        return self._entries == other._entries and self._dictionary == other._dictionary

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(entries={len(self)}, "
            f"tokens={len(self._dictionary)})"
        )

    def save(self, file_prefix: str | Path) -> Path:
        """
        Save the dataset to ``<file_prefix>.dataset``.

        The file holds the dictionary section followed by one
        ``<weight> <ids...>`` line per entry.
        """

        def write_body(f: TextIO) -> None:
            self._dictionary._write_section(f)
            f.write("---\n")
            f.write(f"{len(self)}\n")
            for entry in self._entries:
                f.write(" ".join(map(str, (entry.weight, *entry.message))) + "\n")
            f.write("---\n")

        log.info(f"saving dataset to {file_prefix}")
        return write_artifact(file_prefix, "dataset", write_body)

    @classmethod
    def load(cls, path: str | Path) -> "Dataset":
        """
        Load a dataset from a ``.dataset`` file.

        :raises CorruptArtifactError: If weights are invalid or entries refer
            to ids missing from the embedded dictionary.
        """
        entries = []
        with open_artifact(path, "dataset") as reader:
            dictionary = TokenDictionary._read_section(reader)
            for line in reader.read_section():
                values = [parse_int(reader, value, line) for value in line.split()]
                if not values:
                    raise reader.corrupt("dataset entry without weight", line=line)
                weight, message = values[0], tuple(values[1:])
                if weight < 1:
                    raise reader.corrupt("dataset weight must be positive", line=line)
                if not all(dictionary.has_token(tok) for tok in message):
                    raise reader.corrupt("entry references unknown token", line=line)
                entries.append(DatasetEntry(message, weight))

        log.info(
            f"dataset loaded successfully: {len(entries)} entries, {len(dictionary)} tokens"
        )
        return cls(entries, dictionary)


__all__ = ["DatasetEntry", "Dataset"]
