"""
Shared reading and writing helpers for persisted wordchain artifacts.

Every artifact is a UTF-8 text file that starts with a version line and a
type line, followed by sections delimited by ``---`` markers::

    WordChain 1
    type model
    window 2
    ---
    3
    ...
    ---
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Final, Iterator, TextIO

from .errors import ArtifactLoadError, CorruptArtifactError

PREFIX: Final[str] = "WordChain"
# bumped whenever the on-disk layout changes, independent of the package version
FORMAT_VERSION: Final[str] = "1"
SECTION_MARKER: Final[str] = "---"

ARTIFACT_SUFFIXES: Final[dict[str, str]] = {
    "dictionary": ".vocab",
    "messages": ".messages",
    "tokens": ".tokens",
    "dataset": ".dataset",
    "model": ".model",
}

log = logging.getLogger(__name__)


def artifact_path(file_prefix: str | Path, kind: str) -> Path:
    """Return the output path for an artifact of ``kind`` saved under ``file_prefix``."""
    return Path(file_prefix).with_suffix(ARTIFACT_SUFFIXES[kind])


def write_artifact(
    file_prefix: str | Path,
    kind: str,
    write_body: Callable[[TextIO], None],
) -> Path:
    """
    Write the artifact header and delegate the body to ``write_body``.

    :param file_prefix: Path prefix, the suffix is chosen from the artifact kind.
    :param kind: Artifact type name written into the header.
    :param write_body: Callback that writes the type specific sections.
    :returns: Path of the written file.
    """
    path = artifact_path(file_prefix, kind)
    # create directory if does not exist
    path.parent.mkdir(parents=True, exist_ok=True)

    log.debug(f"saving {kind} to {path}")

    with path.open("w", encoding="utf-8", newline="\n") as f:
        f.write(f"{PREFIX} {FORMAT_VERSION}\n")
        f.write(f"type {kind}\n")
        write_body(f)

    return path


class ArtifactReader:
    """Line cursor over an artifact body that reports structural errors."""

    def __init__(self, f: TextIO, path: Path) -> None:
        self._f = f
        self.path = path

    def readline(self) -> str:
        """Return the next line without its terminator, failing at end of file."""
        line = self._f.readline()
        if not line:
            raise CorruptArtifactError("unexpected end of file", path=str(self.path))
        return line.rstrip("\r\n")

    def corrupt(self, message: str, line: str | None = None) -> CorruptArtifactError:
        """Build a CorruptArtifactError bound to this file."""
        return CorruptArtifactError(message, path=str(self.path), line=line)

    def expect_marker(self) -> None:
        """Consume a section marker line."""
        marker = self.readline().strip()
        if marker != SECTION_MARKER:
            raise self.corrupt(
                f"section marker missing (expected {SECTION_MARKER})", line=marker
            )

    def read_count(self) -> int:
        """Consume a non-negative entry count line."""
        line = self.readline().strip()
        try:
            count = int(line)
        except ValueError as e:
            raise self.corrupt("invalid entry count", line=line) from e
        if count < 0:
            raise self.corrupt("negative entry count", line=line)
        return count

    def read_field(self, key: str) -> str:
        """Consume a ``<key> <value>`` line and return the value."""
        line = self.readline()
        if not line.startswith(f"{key} "):
            raise self.corrupt(f"expected {key!r} field", line=line)
        return line[len(key) + 1 :]

    def read_section(self) -> Iterator[str]:
        """Yield the body lines of a ``---``, count, lines, ``---`` section."""
        self.expect_marker()
        count = self.read_count()
        for _ in range(count):
            yield self.readline()
        self.expect_marker()


def _check_path(path: Path, kind: str | None) -> None:
    if not path.exists():
        raise ArtifactLoadError("artifact filepath does not exist", path=str(path))

    if kind is not None and path.suffix != ARTIFACT_SUFFIXES[kind]:
        raise ArtifactLoadError(
            f"expected {ARTIFACT_SUFFIXES[kind]} file", path=str(path)
        )


def _read_header(f: TextIO, path: Path) -> str:
    """Verify the version line and return the artifact type."""
    header = f.readline().strip().split(" ")
    if len(header) != 2 or header[0] != PREFIX:
        raise CorruptArtifactError("not a wordchain artifact", path=str(path))
    if header[1] != FORMAT_VERSION:
        raise ArtifactLoadError(
            "artifact format version mismatch",
            path=str(path),
            version_mismatch=(header[1], FORMAT_VERSION),
        )

    kind = f.readline().strip()
    if not kind.startswith("type "):
        raise CorruptArtifactError(
            "artifact type missing", path=str(path), line=kind
        )
    return kind[5:]


def detect_artifact_type(path: str | Path) -> str:
    """Read the artifact type from a file header."""
    path = Path(path)
    _check_path(path, None)
    with path.open("r", encoding="utf-8") as f:
        return _read_header(f, path)


@contextmanager
def open_artifact(path: str | Path, kind: str) -> Iterator[ArtifactReader]:
    """
    Open an artifact for reading after validating path, version and type.

    :raises ArtifactLoadError: If the file does not exist, has the wrong suffix,
        was written by another format version or holds another artifact type.
    """
    path = Path(path)
    _check_path(path, kind)

    log.info(f"loading {kind} from {path}")

    with path.open("r", encoding="utf-8") as f:
        found = _read_header(f, path)
        if found != kind:
            raise ArtifactLoadError(
                "artifact type mismatch", path=str(path), type_mismatch=(found, [kind])
            )
        yield ArtifactReader(f, path)


def parse_int(reader: ArtifactReader, value: str, line: str) -> int:
    """Parse an integer field, reporting the offending line on failure."""
    try:
        return int(value)
    except ValueError as e:
        raise reader.corrupt("token is not a number", line=line) from e
