"""Shared fixtures for wordchain tests."""

import pytest

import wordchain as wc


@pytest.fixture(autouse=True)
def _no_progress(monkeypatch):
    """Keep progress bars out of test output."""
    monkeypatch.setenv("WORDCHAIN_DISABLE_PROGRESS", "1")


@pytest.fixture
def abc_messages():
    """Return the two-message corpus used throughout the examples."""
    return wc.MessageSet.parse(["a b c", "a b d"])


@pytest.fixture
def abc_dataset(abc_messages):
    """Return a weight-1 dataset of the two-message corpus."""
    tokenized, dictionary = wc.tokenize(abc_messages)
    return wc.Dataset.from_messages(tokenized, dictionary)


@pytest.fixture
def make_dataset():
    """Return a helper that parses, tokenizes and wraps lines into a dataset."""

    def _make(lines, dictionary=None, weight=1):
        tokenized, extended = wc.tokenize(wc.MessageSet.parse(lines), dictionary)
        return wc.Dataset.from_messages(tokenized, extended, weight)

    return _make
