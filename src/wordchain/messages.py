"""
Message sets: ordered word messages and their tokenized counterparts.
"""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, TextIO

import regex as re

from ._artifact import open_artifact, parse_int, write_artifact
from ._decorators import measure_time
from .dictionary import TokenDictionary, check_words
from .errors import UnresolvableMessageError
from .pattern import resolve_pattern
from .types import RemapTable, Token, Word

log = logging.getLogger(__name__)


def split_words(line: str, compiled: re.Pattern, lowercase: bool = True) -> list[Word]:
    """Split one raw line into words with a compiled split pattern."""
    words = [m.group(0) for m in compiled.finditer(line.strip())]
    if lowercase:
        words = [word.lower() for word in words]
    return words


class MessageSet:
    """Ordered collection of messages made of normalized words."""

    def __init__(self, messages: Iterable[Iterable[Word]] = ()) -> None:
        self._messages: tuple[tuple[Word, ...], ...] = tuple(
            tuple(message) for message in messages
        )

    @classmethod
    def parse(
        cls,
        lines: Iterable[str],
        pattern: str = "whitespace",
        custom_pattern: str | None = None,
        lowercase: bool = True,
    ) -> "MessageSet":
        """
        Parse raw lines into messages, one message per non-blank line.

        Lines are split into words with a built-in split pattern or a custom
        regex, then case folded. Lines without any word are skipped.

        :param lines: Raw text lines.
        :param pattern: Built-in split pattern name, see ``list_patterns()``.
        :param custom_pattern: Custom regex overriding ``pattern``.
        :param lowercase: Fold words to lower case.
        :raises PatternError: If the pattern is unknown or invalid.
        """
        compiled = resolve_pattern(pattern, custom_pattern)

        messages = []
        for line in lines:
            words = split_words(line, compiled, lowercase)
            if words:
                messages.append(words)

        log.debug(f"parsed {len(messages)} messages")
        return cls(messages)

    @property
    def messages(self) -> tuple[tuple[Word, ...], ...]:
        return self._messages

    def merge(self, other: "MessageSet") -> "MessageSet":
        """Concatenate two message sets, keeping order."""
        return MessageSet(self._messages + other._messages)

    def tokenize(
        self, dictionary: TokenDictionary | None = None
    ) -> tuple["TokenizedMessages", TokenDictionary]:
        """Tokenize these messages, see :func:`tokenize`."""
        return tokenize(self, dictionary)

    def words(self) -> Iterator[Word]:
        """Iterate over every word of every message."""
        for message in self._messages:
            yield from message

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[tuple[Word, ...]]:
        return iter(self._messages)

    def __getitem__(self, idx: int) -> tuple[Word, ...]:
        return self._messages[idx]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MessageSet):
            return NotImplemented
        return self._messages == other._messages

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(messages={len(self)})"

    def save(self, file_prefix: str | Path) -> Path:
        """Save messages to ``<file_prefix>.messages``, one JSON array per line."""

        def write_body(f: TextIO) -> None:
            f.write("---\n")
            f.write(f"{len(self)}\n")
            for message in self._messages:
                f.write(json.dumps(list(message), ensure_ascii=False) + "\n")
            f.write("---\n")

        log.info(f"saving {len(self)} messages to {file_prefix}")
        return write_artifact(file_prefix, "messages", write_body)

    @classmethod
    def load(cls, path: str | Path) -> "MessageSet":
        """
        Load messages from a ``.messages`` file.

        :raises CorruptArtifactError: If a line is not a JSON array of strings.
        """
        messages = []
        with open_artifact(path, "messages") as reader:
            for line in reader.read_section():
                try:
                    words = json.loads(line)
                except json.JSONDecodeError as e:
                    raise reader.corrupt("invalid message literal", line=line) from e
                if not isinstance(words, list) or not all(
                    isinstance(word, str) for word in words
                ):
                    raise reader.corrupt("message must be a list of words", line=line)
                messages.append(words)

        log.info(f"loaded {len(messages)} messages")
        return cls(messages)


class TokenizedMessages:
    """Ordered collection of messages made of dictionary tokens."""

    def __init__(self, messages: Iterable[Iterable[Token]] = ()) -> None:
        self._messages: tuple[tuple[Token, ...], ...] = tuple(
            tuple(message) for message in messages
        )

    @property
    def messages(self) -> tuple[tuple[Token, ...], ...]:
        return self._messages

    def merge(self, other: "TokenizedMessages") -> "TokenizedMessages":
        """Concatenate two tokenized message sets, keeping order."""
        return TokenizedMessages(self._messages + other._messages)

    def validate(self, dictionary: TokenDictionary) -> None:
        """
        Check that every token is an id of ``dictionary``.

        :raises UnresolvableMessageError: On the first token outside the dictionary.
        """
        for idx, message in enumerate(self._messages):
            for tok in message:
                if not dictionary.has_token(tok):
                    raise UnresolvableMessageError(
                        "message references unknown token", token=tok, message_index=idx
                    )

    def remap(self, remap: RemapTable) -> "TokenizedMessages":
        """
        Translate tokens with a dictionary merge remap table.

        :raises UnresolvableMessageError: If a token has no entry in ``remap``.
        """
        remapped = []
        for idx, message in enumerate(self._messages):
            try:
                remapped.append([remap[tok] for tok in message])
            except KeyError as e:
                raise UnresolvableMessageError(
                    "message token missing from remap table",
                    token=e.args[0],
                    message_index=idx,
                ) from e
        return TokenizedMessages(remapped)

    def detokenize(self, dictionary: TokenDictionary) -> MessageSet:
        """
        Decode every message back into words.

        :raises UnknownTokenError: If a token is not in ``dictionary``.
        """
        return MessageSet(dictionary.decode(message) for message in self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[tuple[Token, ...]]:
        return iter(self._messages)

    def __getitem__(self, idx: int) -> tuple[Token, ...]:
        return self._messages[idx]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenizedMessages):
            return NotImplemented
        return self._messages == other._messages

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(messages={len(self)})"

    def save(self, file_prefix: str | Path) -> Path:
        """Save messages to ``<file_prefix>.tokens``, space separated ids per line."""

        def write_body(f: TextIO) -> None:
            f.write("---\n")
            f.write(f"{len(self)}\n")
            for message in self._messages:
                f.write(" ".join(map(str, message)) + "\n")
            f.write("---\n")

        log.info(f"saving {len(self)} tokenized messages to {file_prefix}")
        return write_artifact(file_prefix, "tokens", write_body)

    @classmethod
    def load(
        cls, path: str | Path, dictionary: TokenDictionary | None = None
    ) -> "TokenizedMessages":
        """
        Load tokenized messages from a ``.tokens`` file.

        When ``dictionary`` is given the messages are validated against it.

        :raises CorruptArtifactError: If a line holds something other than ids.
        :raises UnresolvableMessageError: If validation against ``dictionary`` fails.
        """
        messages = []
        with open_artifact(path, "tokens") as reader:
            for line in reader.read_section():
                messages.append([parse_int(reader, tok, line) for tok in line.split()])

        tokenized = cls(messages)
        if dictionary is not None:
            tokenized.validate(dictionary)

        log.info(f"loaded {len(tokenized)} tokenized messages")
        return tokenized


@measure_time
def tokenize(
    messages: MessageSet | TokenizedMessages,
    dictionary: TokenDictionary | None = None,
) -> tuple[TokenizedMessages, TokenDictionary]:
    """
    Map every word of ``messages`` to a token, extending the dictionary as needed.

    The input dictionary is never modified, new words are interned into a copy
    that is returned alongside the tokenized messages. Already tokenized
    messages are only validated.

    :param messages: Word messages, or tokenized messages to validate.
    :param dictionary: Dictionary to extend, a fresh one when ``None``.
    :returns: Tokenized messages and the dictionary they are valid against.
    :raises UnresolvableMessageError: If tokenized input refers to unknown ids.
    :raises ReservedWordError: If a message contains a sentinel word.
    """
    if dictionary is None:
        dictionary = TokenDictionary()

    if isinstance(messages, TokenizedMessages):
        messages.validate(dictionary)
        return messages, dictionary

    extended = dictionary.copy()
    rows = []
    for idx, message in enumerate(messages):
        check_words(message, message_index=idx)
        rows.append([extended.intern(word) for word in message])
    tokenized = TokenizedMessages(rows)

    log.info(
        f"tokenized {len(tokenized)} messages "
        f"({len(extended) - len(dictionary)} new tokens, {len(extended)} total)"
    )
    return tokenized, extended


__all__ = ["split_words", "MessageSet", "TokenizedMessages", "tokenize"]
