"""Custom exception hierarchy for wordchain errors."""

import regex as re

from .types import Token


class WordChainError(Exception):
    """Base exception for all wordchain errors."""


class UnknownTokenError(WordChainError):
    """Raised when a token or word is not present in the dictionary."""

    def __init__(
        self,
        message: str,
        *,
        token: Token | None = None,
        word: str | None = None,
    ) -> None:
        """Initialize with optional token and word that get appended to the message."""
        extra = " "
        if token is not None:
            extra += f"(token: {token}) "
        if word is not None:
            extra += f"(word: {word!r}) "
        super().__init__(message + extra)
        self.token = token
        self.word = word


class UnresolvableMessageError(UnknownTokenError):
    """Raised when a pre-tokenized message references ids outside the dictionary."""

    def __init__(
        self,
        message: str,
        *,
        token: Token | None = None,
        message_index: int | None = None,
    ) -> None:
        if message_index is not None:
            message = f"{message} (message: {message_index})"
        super().__init__(message, token=token)
        self.message_index = message_index


class ReservedWordError(WordChainError):
    """Raised when a corpus word spells one of the START/END sentinels."""

    def __init__(
        self,
        message: str,
        *,
        word: str | None = None,
        message_index: int | None = None,
    ) -> None:
        extra = " "
        if word is not None:
            extra += f"(word: {word!r}) "
        if message_index is not None:
            extra += f"(message: {message_index}) "
        super().__init__(message + extra)
        self.word = word
        self.message_index = message_index


class EmptyModelError(WordChainError):
    """Raised when generating from a model without any context."""


class InvalidWeightError(WordChainError):
    """Raised when a dataset weight is lower than 1."""

    def __init__(self, message: str, *, weight: int | None = None) -> None:
        super().__init__(f"{message} (weight: {weight})")
        self.weight = weight


class GenerationError(WordChainError):
    """Raised when generation parameters are inconsistent."""


class ArtifactLoadError(WordChainError):
    """Raised when loading a persisted artifact fails."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        version_mismatch: tuple[str, str] | None = None,
        type_mismatch: tuple[str, list[str]] | None = None,
    ) -> None:
        extra = " "
        if path:
            extra += f"(path: {path}) "
        if version_mismatch is not None:
            extra += f"(expected: {version_mismatch[1]}) (got {version_mismatch[0]}) "
        if type_mismatch is not None:
            extra += f"(expected: {type_mismatch[1]}) (got {type_mismatch[0]}) "
        super().__init__(message + extra)
        self.path = path
        self.version_mismatch = version_mismatch
        self.type_mismatch = type_mismatch


class CorruptArtifactError(ArtifactLoadError):
    """Raised when a persisted artifact fails structural validation."""

    def __init__(
        self,
        message: str,
        *,
        path: str | None = None,
        line: str | None = None,
    ) -> None:
        if line is not None:
            message = f"{message}: {line.strip()!r}"
        super().__init__(message, path=path)
        self.line = line


class PatternError(WordChainError):
    """Raised when compiling and/or resolving split patterns."""

    def __init__(
        self,
        message: str,
        *,
        pattern: str | None = None,
        regex_err: re.error | None = None,
    ) -> None:
        """
        Initialize PatternError with pattern details.

        Args:
            message: Error message.
            pattern: The regex pattern that failed.
            regex_err: The underlying regex error from the regex library.
        """
        extra = " "
        if pattern:
            extra += f"(pattern: {pattern!r}) "
        if regex_err:
            extra += f"(reason: {regex_err}) "
        super().__init__(message + extra)
        self.pattern = pattern
        self.regex_err = regex_err


class SamplerError(WordChainError):
    """Raised when sampler lookup or configuration fails."""

    def __init__(
        self,
        message: str,
        *,
        invalid_name: str | None = None,
        available: list[str] | None = None,
    ) -> None:
        extra = " "
        if invalid_name:
            extra += f"(available: {available}) (got {invalid_name}) "
        super().__init__(message + extra)
        self.invalid_name = invalid_name
        self.available = available
