"""Factory functions for loading persisted artifacts."""

from pathlib import Path
from typing import Final

from typing_extensions import TypeAliasType

from ._artifact import detect_artifact_type
from .dataset import Dataset
from .dictionary import TokenDictionary
from .errors import ArtifactLoadError
from .messages import MessageSet, TokenizedMessages
from .model import Model

Artifact = TypeAliasType("Artifact", TokenDictionary | MessageSet | TokenizedMessages | Dataset | Model)

_ARTIFACT_REGISTRY: Final[dict[str, type[Artifact]]] = {
    "dictionary": TokenDictionary,
    "messages": MessageSet,
    "tokens": TokenizedMessages,
    "dataset": Dataset,
    "model": Model,
}


def list_artifact_types() -> list[str]:
    """Return names of all artifact types that can be loaded."""
    return list(_ARTIFACT_REGISTRY.keys())


def load(path: str | Path) -> Artifact:
    """
    Load any persisted artifact from disk.

    Automatically detects the artifact type from the file header and loads
    the matching class.

    :param path: Path to a ``.vocab``, ``.messages``, ``.tokens``,
        ``.dataset`` or ``.model`` file.
    :return: The loaded artifact.
    :raises ArtifactLoadError: If the file doesn't exist, has the wrong
        extension, or contains an unknown artifact type.

    .. code-block:: python

        model = load("out/chat.model")
        dictionary = load("out/chat.vocab")
    """
    kind = detect_artifact_type(path)

    # look up class from registry
    if kind not in _ARTIFACT_REGISTRY:
        raise ArtifactLoadError(
            "unknown artifact type in file",
            path=str(path),
            type_mismatch=(kind, list(_ARTIFACT_REGISTRY.keys())),
        )

    return _ARTIFACT_REGISTRY[kind].load(path)


__all__ = ["Artifact", "list_artifact_types", "load"]
