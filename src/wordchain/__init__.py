"""WordChain: Markov chain text models with weighted datasets."""

from ._progress import disable_progress, enable_progress
from .builder import build, iter_windows
from .dataset import Dataset, DatasetEntry
from .dictionary import END_TOKEN, START_TOKEN, TokenDictionary
from .factory import list_artifact_types, load
from .generator import (
    GenerationParams,
    GenerationResult,
    GenerationStatus,
    Generator,
    TokenStream,
)
from .messages import MessageSet, TokenizedMessages, tokenize
from .model import Model
from .pattern import SplitPattern, list_patterns
from .sampler import (
    GreedySampler,
    Sampler,
    TemperatureSampler,
    WeightedSampler,
    get_sampler,
    list_samplers,
)

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("wordchain")
except PackageNotFoundError:
    __version__ = "dev"

__all__ = [
    "START_TOKEN",
    "END_TOKEN",
    "TokenDictionary",
    "MessageSet",
    "TokenizedMessages",
    "tokenize",
    "Dataset",
    "DatasetEntry",
    "Model",
    "build",
    "iter_windows",
    "Generator",
    "GenerationParams",
    "GenerationResult",
    "GenerationStatus",
    "TokenStream",
    "Sampler",
    "WeightedSampler",
    "TemperatureSampler",
    "GreedySampler",
    "SplitPattern",
    "get_sampler",
    "list_samplers",
    "list_patterns",
    "list_artifact_types",
    "load",
    "enable_progress",
    "disable_progress",
]
