from enum import Enum

import regex as re

from .errors import PatternError


class SplitPattern(str, Enum):
    """
    Pre-defined regex patterns for splitting a message line into words.

    Every pattern must only match non-empty runs without whitespace so that
    a generated message joined with single spaces splits back into the same
    words.
    """

    # any run of non-whitespace, punctuation stays attached to the word
    WHITESPACE = r"\S+"

    # letters and digits only, inner apostrophes and hyphens are kept
    WORDS = r"[\p{L}\p{N}]+(?:['’\-][\p{L}\p{N}]+)*"

    # like WORDS, but runs of punctuation become words of their own
    PUNCTUATED = r"[\p{L}\p{N}]+(?:['’\-][\p{L}\p{N}]+)*|[^\s\p{L}\p{N}]+"

    @classmethod
    def get(cls, name: str) -> str:
        """Get patterns by name (case-insensitive)."""
        try:
            return cls[name.upper().replace("-", "_")].value
        except KeyError:
            raise PatternError(
                f"Unknown pattern: {name!r}. "
                f"Valid patterns: {', '.join(pat.name.lower() for pat in cls)}"
            )


def list_patterns() -> list[str]:
    """Return names of all available built-in split patterns."""
    return [pat.name.lower() for pat in SplitPattern]


def compile_pattern(pattern: str) -> re.Pattern:
    """
    Compile and validate a regex pattern.

    :param pattern: Regex pattern string to compile.
    :return: Compiled regex pattern.
    :raises PatternError: If pattern is invalid.
    """
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError("invalid regex pattern", pattern=pattern, regex_err=e)


def resolve_pattern(name: str | None = None, custom_pattern: str | None = None) -> re.Pattern:
    """
    Return a compiled split pattern from a built-in name or a custom regex.

    ``custom_pattern`` wins over ``name``; with neither, words are split on
    whitespace.
    """
    if custom_pattern is not None:
        return compile_pattern(custom_pattern)
    return compile_pattern(SplitPattern.get(name or "whitespace"))
