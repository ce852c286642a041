"""Raw text readers that feed message parsing."""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator

log = logging.getLogger(__name__)


def unquote_line(line: str) -> str:
    """
    Strip a raw line and unquote it when it is a JSON string literal.

    Exported chat logs often store one message per line as ``"..."`` with
    escaped quotes and newlines; anything that does not decode to a string is
    returned as is.
    """
    line = line.strip()
    if len(line) >= 2 and line[0] == '"' and line[-1] == '"':
        try:
            value = json.loads(line)
        except json.JSONDecodeError:
            return line
        if isinstance(value, str):
            return value
    return line


def read_lines(path: str | Path) -> Iterator[str]:
    """Yield unquoted lines of a UTF-8 text file."""
    path = Path(path)
    log.debug(f"reading lines from {path}")
    with path.open("r", encoding="utf-8", errors="replace") as f:
        for line in f:
            yield unquote_line(line)


def search_files(paths: Iterable[str | Path]) -> list[Path]:
    """Expand directories into the files they contain, recursively and sorted."""
    found: list[Path] = []
    for path in map(Path, paths):
        if path.is_dir():
            found.extend(sorted(p for p in path.rglob("*") if p.is_file()))
        else:
            found.append(path)
    return found


__all__ = ["unquote_line", "read_lines", "search_files"]
