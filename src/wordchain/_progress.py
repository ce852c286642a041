"""Global switch and factory for progress bars."""

import os
from typing import Iterable, TypeVar

from tqdm import tqdm

T = TypeVar("T")

# set WORDCHAIN_DISABLE_PROGRESS=1 to silence bars regardless of this flag
ENV_DISABLE: str = "WORDCHAIN_DISABLE_PROGRESS"

_enabled: bool = True


def enable_progress() -> None:
    """Show progress bars during long running operations."""
    global _enabled
    _enabled = True


def disable_progress() -> None:
    """Hide progress bars, e.g. when output is piped or logged."""
    global _enabled
    _enabled = False


def _is_enabled() -> bool:
    if os.environ.get(ENV_DISABLE, "").strip() == "1":
        return False
    return _enabled


def progress(
    items: Iterable[T], total: int | None = None, desc: str = "", unit: str = "it", show: bool = True
) -> Iterable[T]:
    """Wrap ``items`` in a tqdm bar unless progress is disabled globally or by ``show``."""
    return tqdm(items, total=total, desc=desc, unit=unit, disable=not (show and _is_enabled()))
