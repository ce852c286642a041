"""
Token dictionary: a bijection between words and compact integer tokens.
"""

import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Final, Iterable, Iterator, TextIO

from ._artifact import ArtifactReader, open_artifact, parse_int, write_artifact
from .errors import ReservedWordError, UnknownTokenError
from .types import RemapTable, Token, Word

if TYPE_CHECKING:
    from .messages import MessageSet

# reserved sentinels, present in every dictionary
START_TOKEN: Final[Token] = 0
END_TOKEN: Final[Token] = 1
START_WORD: Final[Word] = "<|start|>"
END_WORD: Final[Word] = "<|end|>"
SPECIAL_TOKENS: Final[dict[Word, Token]] = {START_WORD: START_TOKEN, END_WORD: END_TOKEN}

log = logging.getLogger(__name__)


def check_words(words: Iterable[Word], message_index: int | None = None) -> None:
    """
    Reject corpus words that spell a sentinel.

    :raises ReservedWordError: If any word equals a sentinel word.
    """
    for word in words:
        if word in SPECIAL_TOKENS:
            raise ReservedWordError(
                "sentinel words cannot appear in messages",
                word=word,
                message_index=message_index,
            )


class TokenDictionary:
    """
    Bidirectional mapping between words and integer tokens.

    Regular tokens are dense and assigned in first-seen order right after the
    sentinels. Ids are never reused. Pipeline operations such as ``merge`` and
    ``tokenize`` work on a copy and return the new dictionary, leaving the
    original untouched; ``intern`` is the only mutating operation.
    """

    def __init__(self) -> None:
        # word -> token
        self._word_token: dict[Word, Token] = dict(SPECIAL_TOKENS)
        # token -> word
        self._token_word: dict[Token, Word] = {
            tok: word for word, tok in SPECIAL_TOKENS.items()
        }

    @classmethod
    def from_words(cls, words: Iterable[Word]) -> "TokenDictionary":
        """Build a dictionary interning ``words`` in iteration order."""
        dictionary = cls()
        for word in words:
            dictionary.intern(word)
        return dictionary

    @classmethod
    def from_messages(cls, messages: "MessageSet") -> "TokenDictionary":
        """
        Build a dictionary from every word of a message set.

        :raises ReservedWordError: If a message contains a sentinel word.
        """
        dictionary = cls()
        for idx, message in enumerate(messages):
            check_words(message, message_index=idx)
            for word in message:
                dictionary.intern(word)
        log.info(f"built dictionary with {len(dictionary)} tokens")
        return dictionary

    def intern(self, word: Word) -> Token:
        """Return the token for ``word``, assigning the next unused id if it is new."""
        tok = self._word_token.get(word)
        if tok is None:
            # ids are dense so the next free id is the current size
            tok = len(self._token_word)
            self._word_token[word] = tok
            self._token_word[tok] = word
        return tok

    def lookup(self, word: Word) -> Token | None:
        """Return the token of ``word`` or ``None``."""
        return self._word_token.get(word)

    def resolve(self, token: Token) -> Word | None:
        """Return the word of ``token`` or ``None``."""
        return self._token_word.get(token)

    def copy(self) -> "TokenDictionary":
        """Return an independent copy of this dictionary."""
        dictionary = TokenDictionary()
        dictionary._word_token = dict(self._word_token)
        dictionary._token_word = dict(self._token_word)
        return dictionary

    def merge(self, other: "TokenDictionary") -> tuple["TokenDictionary", RemapTable]:
        """
        Union two vocabularies.

        Words of ``other`` are interned into a copy of this dictionary in
        ``other``'s id order, so the result is deterministic.

        :returns: The merged dictionary and a table mapping every token of
            ``other`` to its token in the merged dictionary. Anything built
            against ``other`` must be remapped with it before use.
        """
        merged = self.copy()
        remap: RemapTable = {}
        for tok, word in other:
            remap[tok] = merged.intern(word)

        log.debug(
            f"merged dictionaries: {len(self)} + {len(other)} -> {len(merged)} tokens"
        )
        return merged, remap

    def encode(self, words: Iterable[Word]) -> list[Token]:
        """
        Map words to tokens without extending the dictionary.

        :raises UnknownTokenError: If any word is not in the dictionary.
        """
        tokens = []
        for word in words:
            tok = self._word_token.get(word)
            if tok is None:
                raise UnknownTokenError("word not found in dictionary", word=word)
            tokens.append(tok)
        return tokens

    def decode(self, tokens: Iterable[Token]) -> list[Word]:
        """
        Map tokens back to words.

        :raises UnknownTokenError: If any token is not in the dictionary.
        """
        words = []
        for tok in tokens:
            word = self._token_word.get(tok)
            if word is None:
                raise UnknownTokenError("token not found in dictionary", token=tok)
            words.append(word)
        return words

    def detokenize(self, tokens: Iterable[Token]) -> str:
        """Decode tokens into space separated text, dropping sentinels."""
        return " ".join(
            self.decode(tok for tok in tokens if tok not in SPECIAL_TOKENS.values())
        )

    def __len__(self) -> int:
        return len(self._token_word)

    def __contains__(self, word: object) -> bool:
        return word in self._word_token

    def __iter__(self) -> Iterator[tuple[Token, Word]]:
        """Iterate over ``(token, word)`` pairs in id order."""
        return iter(sorted(self._token_word.items()))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenDictionary):
            return NotImplemented
        return self._token_word == other._token_word

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(tokens={len(self)})"

    def has_token(self, token: Token) -> bool:
        """Return whether ``token`` is a valid id of this dictionary."""
        return token in self._token_word

    def save(self, file_prefix: str | Path) -> Path:
        """
        Save the dictionary to ``<file_prefix>.vocab``.

        :returns: Path of the written file.
        """
        log.info(f"saving dictionary to {file_prefix}")
        return write_artifact(file_prefix, "dictionary", self._write_section)

    @classmethod
    def load(cls, path: str | Path) -> "TokenDictionary":
        """
        Load a dictionary from a ``.vocab`` file.

        :raises ArtifactLoadError: If the file is missing or of another type.
        :raises CorruptArtifactError: If the mapping is not a dense bijection.
        """
        with open_artifact(path, "dictionary") as reader:
            dictionary = cls._read_section(reader)
        log.info(f"dictionary loaded successfully: {len(dictionary)} tokens")
        return dictionary

    def _write_section(self, f: TextIO) -> None:
        """Write the ``---``, count, ``<id> <json word>``, ``---`` section."""
        f.write("---\n")
        f.write(f"{len(self)}\n")
        for tok, word in self:
            # json keeps whitespace and newlines inside words on one line
            f.write(f"{tok} {json.dumps(word, ensure_ascii=False)}\n")
        f.write("---\n")

    @classmethod
    def _read_section(cls, reader: ArtifactReader) -> "TokenDictionary":
        word_token: dict[Word, Token] = {}
        token_word: dict[Token, Word] = {}

        for line in reader.read_section():
            parts = line.split(" ", maxsplit=1)
            if len(parts) != 2:
                raise reader.corrupt(
                    "token mapping must be delimited by a whitespace", line=line
                )
            tok = parse_int(reader, parts[0], line)
            try:
                word = json.loads(parts[1])
            except json.JSONDecodeError as e:
                raise reader.corrupt("invalid word literal", line=line) from e
            if not isinstance(word, str):
                raise reader.corrupt("word must be a string", line=line)
            if tok in token_word or word in word_token:
                raise reader.corrupt("duplicate token mapping", line=line)
            word_token[word] = tok
            token_word[tok] = word

        # a valid dictionary holds exactly the ids 0..n-1 with the sentinels in place
        if sorted(token_word) != list(range(len(token_word))):
            raise reader.corrupt("token ids are not dense")
        for word, tok in SPECIAL_TOKENS.items():
            if token_word.get(tok) != word:
                raise reader.corrupt(f"sentinel {word} missing or misplaced")

        dictionary = cls()
        dictionary._word_token = word_token
        dictionary._token_word = token_word
        return dictionary


__all__ = [
    "START_TOKEN",
    "END_TOKEN",
    "START_WORD",
    "END_WORD",
    "SPECIAL_TOKENS",
    "check_words",
    "TokenDictionary",
]
