"""Command line interface covering every pipeline stage."""

import argparse
import logging
import sys
from pathlib import Path

from ._progress import disable_progress
from .builder import build
from .dataset import Dataset
from .dictionary import TokenDictionary
from .errors import WordChainError
from .generator import (
    DEFAULT_MAX_LENGTH,
    DEFAULT_MIN_LENGTH,
    DEFAULT_REPEAT_PENALTY,
    GenerationParams,
    Generator,
)
from .messages import MessageSet, TokenizedMessages, tokenize
from .model import Model
from .pattern import list_patterns
from .readers import read_lines, search_files
from .sampler import list_samplers

log = logging.getLogger(__name__)


# messages
# ===================================================================================


def _messages_parse(args: argparse.Namespace) -> None:
    messages = MessageSet()
    for path in search_files(args.path):
        log.info(f"parsing {path}")
        parsed = MessageSet.parse(
            read_lines(path),
            pattern=args.pattern,
            custom_pattern=args.custom_pattern,
            lowercase=not args.keep_case,
        )
        messages = messages.merge(parsed)
    messages.save(args.output)


def _messages_merge(args: argparse.Namespace) -> None:
    messages = MessageSet()
    for path in search_files(args.path):
        messages = messages.merge(MessageSet.load(path))
    messages.save(args.output)


def _messages_tokenize(args: argparse.Namespace) -> None:
    messages = MessageSet.load(args.messages)
    dictionary = TokenDictionary.load(args.tokens) if args.tokens else None
    tokenized, extended = tokenize(messages, dictionary)
    tokenized.save(args.output)
    # the extended dictionary is needed to read the tokenized messages back
    extended.save(args.output)


# tokens
# ===================================================================================


def _tokens_parse(args: argparse.Namespace) -> None:
    messages = MessageSet.load(args.path)
    TokenDictionary.from_messages(messages).save(args.output)


# dataset
# ===================================================================================


def _dataset_create(args: argparse.Namespace) -> None:
    dictionary = TokenDictionary.load(args.tokens)
    messages = TokenizedMessages.load(args.messages, dictionary)
    Dataset.from_messages(messages, dictionary, args.weight).save(args.output)


def _dataset_add_messages(args: argparse.Namespace) -> None:
    dataset = Dataset.load(args.path)
    dictionary = TokenDictionary.load(args.tokens) if args.tokens else None
    for path in args.messages:
        dataset = dataset.add_messages(TokenizedMessages.load(path), args.weight, dictionary)
    dataset.save(args.output)


def _dataset_add_tokens(args: argparse.Namespace) -> None:
    dataset = Dataset.load(args.path)
    for path in args.tokens:
        dataset = dataset.add_tokens(TokenDictionary.load(path))
    dataset.save(args.output)


def _dataset_merge(args: argparse.Namespace) -> None:
    dataset = Dataset()
    for path in args.path:
        dataset = dataset.merge(Dataset.load(path))
    dataset.save(args.output)


# model
# ===================================================================================


def _model_build(args: argparse.Namespace) -> None:
    dataset = Dataset.load(args.dataset)
    model = build(dataset, args.window)
    model.save(args.output)
    # generation needs the dictionary the model was built against
    dataset.dictionary.save(args.output)


def _model_info(args: argparse.Namespace) -> None:
    model = Model.load(args.model)
    print(f"Window size: {model.window_size}")
    print(f"   Contexts: {len(model)}")
    print(f" Complexity: {model.complexity()}")
    if args.tokens:
        dictionary = TokenDictionary.load(args.tokens)
        model.validate(dictionary)
        print(f"     Tokens: {len(dictionary)}")


def _model_generate(args: argparse.Namespace) -> None:
    dictionary = TokenDictionary.load(args.tokens)
    model = Model.load(args.model, dictionary)
    params = GenerationParams(
        min_length=args.min_length,
        max_length=args.max_length,
        window_size=args.window,
        sampler=args.sampler,
        temperature=args.temperature,
        temperature_alpha=args.temperature_alpha,
        repeat_penalty=args.repeat_penalty,
    )
    generator = Generator.from_params(
        model,
        dictionary,
        params,
        seed=args.random_seed,
        pattern=args.pattern,
        custom_pattern=args.custom_pattern,
        lowercase=not args.keep_case,
    )

    if args.interactive:
        while True:
            try:
                request = input("> ")
            except EOFError:
                break
            if not request.strip():
                continue
            try:
                result = generator.generate_with(params, request)
            except WordChainError as e:
                print(f"  {e}")
                continue
            print(f"\n  model: {result.text}\n")
        return

    for _ in range(args.count):
        result = generator.generate_with(params, args.seed or ())
        print(result.text)
        if not result.completed:
            log.info(f"generation ended early: {result.status.value}")


# parser
# ===================================================================================


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="wordchain", description="Build Markov chain text models and generate text."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    parser.add_argument(
        "--no-progress", action="store_true", help="Disable progress bars."
    )
    groups = parser.add_subparsers(dest="group", required=True)

    # messages
    messages = groups.add_parser("messages", help="Work with messages.")
    messages_cmds = messages.add_subparsers(dest="command", required=True)

    cmd = messages_cmds.add_parser("parse", help="Parse raw text files into a messages bundle.")
    cmd.add_argument("-p", "--path", nargs="+", required=True, help="Text files or directories.")
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.add_argument("--pattern", default="whitespace", choices=list_patterns())
    cmd.add_argument("--custom-pattern", default=None, help="Custom regex overriding --pattern.")
    cmd.add_argument("--keep-case", action="store_true", help="Do not lower-case words.")
    cmd.set_defaults(func=_messages_parse)

    cmd = messages_cmds.add_parser("merge", help="Merge messages bundles into one.")
    cmd.add_argument("-p", "--path", nargs="+", required=True)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_messages_merge)

    cmd = messages_cmds.add_parser("tokenize", help="Tokenize a messages bundle.")
    cmd.add_argument("-m", "--messages", type=Path, required=True)
    cmd.add_argument("-t", "--tokens", type=Path, default=None, help="Dictionary to extend.")
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_messages_tokenize)

    # tokens
    tokens = groups.add_parser("tokens", help="Work with token dictionaries.")
    tokens_cmds = tokens.add_subparsers(dest="command", required=True)

    cmd = tokens_cmds.add_parser("parse", help="Build a dictionary from a messages bundle.")
    cmd.add_argument("-p", "--path", type=Path, required=True)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_tokens_parse)

    # dataset
    dataset = groups.add_parser("dataset", help="Work with datasets.")
    dataset_cmds = dataset.add_subparsers(dest="command", required=True)

    cmd = dataset_cmds.add_parser("create", help="Create a dataset from tokenized messages.")
    cmd.add_argument("-m", "--messages", type=Path, required=True)
    cmd.add_argument("-t", "--tokens", type=Path, required=True)
    cmd.add_argument("-w", "--weight", type=int, default=1)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_dataset_create)

    cmd = dataset_cmds.add_parser("add-messages", help="Extend a dataset with messages.")
    cmd.add_argument("-p", "--path", type=Path, required=True)
    cmd.add_argument("-m", "--messages", type=Path, nargs="+", required=True)
    cmd.add_argument(
        "-t", "--tokens", type=Path, default=None,
        help="Dictionary the messages were tokenized with, when it is not the dataset's.",
    )
    cmd.add_argument("-w", "--weight", type=int, default=1)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_dataset_add_messages)

    cmd = dataset_cmds.add_parser("add-tokens", help="Extend a dataset's dictionary.")
    cmd.add_argument("-p", "--path", type=Path, required=True)
    cmd.add_argument("-t", "--tokens", type=Path, nargs="+", required=True)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_dataset_add_tokens)

    cmd = dataset_cmds.add_parser("merge", help="Merge datasets into one.")
    cmd.add_argument("-p", "--path", type=Path, nargs="+", required=True)
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_dataset_merge)

    # model
    model = groups.add_parser("model", help="Work with language models.")
    model_cmds = model.add_subparsers(dest="command", required=True)

    cmd = model_cmds.add_parser("build", help="Build a model from a dataset.")
    cmd.add_argument("-d", "--dataset", type=Path, required=True)
    cmd.add_argument("-W", "--window", type=int, default=2, help="Context window size.")
    cmd.add_argument("-o", "--output", type=Path, required=True)
    cmd.set_defaults(func=_model_build)

    cmd = model_cmds.add_parser("info", help="Print model statistics.")
    cmd.add_argument("-m", "--model", type=Path, required=True)
    cmd.add_argument("-t", "--tokens", type=Path, default=None)
    cmd.set_defaults(func=_model_info)

    cmd = model_cmds.add_parser("generate", help="Generate text from a model.")
    cmd.add_argument("-m", "--model", type=Path, required=True)
    cmd.add_argument("-t", "--tokens", type=Path, required=True)
    cmd.add_argument("-s", "--seed", default=None, help="Text the generated message starts with.")
    cmd.add_argument("-n", "--count", type=int, default=1, help="Number of messages.")
    cmd.add_argument("-i", "--interactive", action="store_true", help="Read seeds from stdin.")
    cmd.add_argument("--min-length", type=int, default=DEFAULT_MIN_LENGTH)
    cmd.add_argument("--max-length", type=int, default=DEFAULT_MAX_LENGTH)
    cmd.add_argument("--window", type=int, default=None, help="Override the model window.")
    cmd.add_argument("--sampler", default="weighted", choices=list_samplers())
    cmd.add_argument("--temperature", type=float, default=1.0)
    cmd.add_argument(
        "--temperature-alpha", type=float, default=1.0, help="Temperature decay per token."
    )
    cmd.add_argument(
        "--repeat-penalty",
        type=float,
        default=DEFAULT_REPEAT_PENALTY,
        help="Chance of keeping a token already seen once, 1 disables.",
    )
    cmd.add_argument("--pattern", default="whitespace", choices=list_patterns())
    cmd.add_argument("--custom-pattern", default=None, help="Custom regex overriding --pattern.")
    cmd.add_argument("--keep-case", action="store_true", help="Do not lower-case seed words.")
    cmd.add_argument("--random-seed", type=int, default=None)
    cmd.set_defaults(func=_model_generate)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the command line interface and return the exit code."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.no_progress:
        disable_progress()

    try:
        args.func(args)
    except WordChainError as e:
        log.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
