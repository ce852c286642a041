"""Build a word model from a Hugging Face text dataset and print a few samples."""

import argparse
import logging
from pathlib import Path

from datasets import load_dataset

import wordchain as wc

# Configure logging to show INFO level and above.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%H:%M:%S",
)

HF_DATASET = "stevez80/Sci-Fi-Books-gutenberg"


def load_corpus(name: str, num_docs: int | None) -> list[str]:
    """Load up to `num_docs` documents and split them into lines."""
    ds = load_dataset(name, split="train")
    docs = ds[:num_docs]["text"] if num_docs is not None else ds["text"]
    return [line for doc in docs for line in doc.splitlines()]


def main() -> None:
    """Parse lines, tokenize, build, save and sample a model."""
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--dataset", default=HF_DATASET)
    parser.add_argument("--num-docs", type=int, default=100)
    parser.add_argument("--window", type=int, default=2)
    parser.add_argument("--samples", type=int, default=5)
    parser.add_argument("--output", type=Path, default=Path("out/scifi"))
    args = parser.parse_args()

    lines = load_corpus(args.dataset, args.num_docs)
    print(f"number of lines {len(lines)}")

    messages = wc.MessageSet.parse(lines, pattern="punctuated")
    tokenized, dictionary = wc.tokenize(messages)
    dataset = wc.Dataset.from_messages(tokenized, dictionary)

    model = wc.build(dataset, args.window)
    model.save(args.output)
    dictionary.save(args.output)

    generator = wc.Generator(model, dictionary, seed=0, pattern="punctuated")
    for _ in range(args.samples):
        result = generator.generate(min_length=8, max_length=60)
        print(f"[{result.status.value}] {result.text}")


if __name__ == "__main__":
    main()
