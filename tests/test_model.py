"""Unit tests for model building, combination and persistence."""

import logging
from collections import Counter

import pytest

import wordchain as wc
from wordchain import END_TOKEN, START_TOKEN
from wordchain.errors import CorruptArtifactError, EmptyModelError, UnknownTokenError


def _tok(dataset, *words):
    return tuple(dataset.dictionary.lookup(w) for w in words)


# Sliding window
# ---------------------------------------------------------------------------


def test_iter_windows_pads_with_start_and_ends_with_end():
    """A message of n tokens gives n + 1 full-width windows."""
    assert list(wc.iter_windows((5, 6), 2)) == [
        ((START_TOKEN, START_TOKEN), 5),
        ((START_TOKEN, 5), 6),
        ((5, 6), END_TOKEN),
    ]


def test_iter_windows_zero_width():
    """Window 0 always yields the empty context."""
    assert list(wc.iter_windows((5,), 0)) == [((), 5), ((), END_TOKEN)]


# Building
# ---------------------------------------------------------------------------


def test_build_example_context(abc_dataset):
    """With W=1, context [b] continues to c and d once each."""
    model = wc.build(abc_dataset, 1)
    b, c, d = _tok(abc_dataset, "b", "c", "d")

    assert dict(model.lookup((b,))) == {c: 1, d: 1}


def test_build_indexes_every_suffix(make_dataset):
    """All context lengths from 0 to W are indexed."""
    dataset = make_dataset(["a b"])
    a, b = _tok(dataset, "a", "b")
    model = wc.build(dataset, 1)

    assert model.transitions() == {
        (): {a: 1, b: 1, END_TOKEN: 1},
        (START_TOKEN,): {a: 1},
        (a,): {b: 1},
        (b,): {END_TOKEN: 1},
    }


def test_build_larger_window_keeps_short_contexts(make_dataset):
    """A W=3 model still answers lookups for shorter contexts."""
    dataset = make_dataset(["a b c d"])
    a, b, c, d = _tok(dataset, "a", "b", "c", "d")
    model = wc.build(dataset, 3)

    assert model.window_size == 3
    assert dict(model.lookup((a, b, c))) == {d: 1}
    assert dict(model.lookup((c,))) == {d: 1}
    assert dict(model.lookup((START_TOKEN, START_TOKEN, START_TOKEN))) == {a: 1}


def test_build_window_zero_is_unigram(make_dataset):
    """W=0 counts every token, END included, on the empty context only."""
    dataset = make_dataset(["a b a"])
    a, b = _tok(dataset, "a", "b")
    model = wc.build(dataset, 0)

    assert list(model.contexts()) == [()]
    assert dict(model.lookup(())) == {a: 2, b: 1, END_TOKEN: 1}


def test_build_empty_messages_only_end():
    """Empty messages contribute only END on the empty context."""
    dataset = wc.Dataset.from_messages(wc.TokenizedMessages([[], [], []]), wc.TokenDictionary())
    model = wc.build(dataset, 0)

    assert model.transitions() == {(): {END_TOKEN: 3}}


def test_build_zero_messages_gives_empty_model():
    """A dataset without messages builds a model without contexts."""
    model = wc.build(wc.Dataset(), 2)
    assert len(model) == 0
    with pytest.raises(EmptyModelError):
        wc.Generator(model, wc.TokenDictionary())


def test_build_negative_window_raises(abc_dataset):
    """Negative windows are rejected."""
    with pytest.raises(ValueError):
        wc.build(abc_dataset, -1)


def test_build_logs_elapsed_time(abc_dataset, caplog):
    """Building reports its wall time on the builder logger."""
    with caplog.at_level(logging.INFO, logger="wordchain.builder"):
        wc.build(abc_dataset, 1, show_progress=False)
    assert "model build completed in" in caplog.text


def test_counts_are_positive_and_non_empty(make_dataset):
    """Every stored distribution is non-empty with counts >= 1."""
    model = wc.build(make_dataset(["a b c", "c b a", "a a a"]), 2)
    for ctx in model.contexts():
        dist = model.lookup(ctx)
        assert dist
        assert all(n >= 1 for n in dist.values())


# Additivity and weights
# ---------------------------------------------------------------------------


@pytest.mark.parametrize("window", [0, 1, 2, 3])
def test_merge_is_additive_with_shared_dictionary(make_dataset, window):
    """build(A + B) equals the count-wise sum of build(A) and build(B)."""
    left = make_dataset(["the cat sat", "the dog ran far"])
    right = make_dataset(["the cat ran", "a dog sat"], dictionary=left.dictionary)
    # left rebuilt against the shared, extended dictionary
    left = wc.Dataset.from_messages(
        wc.TokenizedMessages(entry.message for entry in left), right.dictionary
    )

    merged = wc.build(left.merge(right), window)
    summed = Counter()
    for part in (wc.build(left, window), wc.build(right, window)):
        for ctx, dist in part.transitions().items():
            for tok, n in dist.items():
                summed[(ctx, tok)] += n

    flat = Counter(
        {(ctx, tok): n for ctx, dist in merged.transitions().items() for tok, n in dist.items()}
    )
    assert flat == summed


def test_merge_is_additive_with_separate_dictionaries(make_dataset):
    """Independently tokenized datasets combine after remapping."""
    left = make_dataset(["a b c", "b c d"])
    right = make_dataset(["c d e", "e a"], weight=2)
    _, remap = left.dictionary.merge(right.dictionary)

    merged = wc.build(left.merge(right), 2)
    combined = wc.build(left, 2).combine(wc.build(right, 2).remap(remap))

    assert merged == combined


def test_merge_order_does_not_change_counts(make_dataset):
    """Merging in either order yields the same words and counts."""
    left = make_dataset(["x y z"])
    right = make_dataset(["z y x"], dictionary=left.dictionary)
    left = wc.Dataset.from_messages(
        wc.TokenizedMessages(entry.message for entry in left), right.dictionary
    )

    assert wc.build(left.merge(right), 2) == wc.build(right.merge(left), 2)


def test_weight_scales_counts(make_dataset):
    """Weight 10 contributes exactly ten times the counts of weight 1."""
    base = make_dataset(["a b c", "c a"])
    message = wc.TokenizedMessages([list(_tok(base, "a", "c", "b"))])

    baseline = wc.build(base, 2)
    once = wc.build(base.add_messages(message, 1), 2)
    tenfold = wc.build(base.add_messages(message, 10), 2)

    for ctx in once.contexts():
        for tok in once.lookup(ctx):
            delta_once = once.count(ctx, tok) - baseline.count(ctx, tok)
            delta_ten = tenfold.count(ctx, tok) - baseline.count(ctx, tok)
            assert delta_ten == 10 * delta_once


# Model operations
# ---------------------------------------------------------------------------


def test_complexity_counts_distinct_transitions(abc_dataset):
    """Complexity is the number of (context, token) pairs."""
    model = wc.build(abc_dataset, 0)
    # a, b, c, d and END on the empty context
    assert model.complexity() == 5


def test_combine_requires_same_window(abc_dataset):
    """Only models with the same window can be summed."""
    with pytest.raises(ValueError):
        wc.build(abc_dataset, 1).combine(wc.build(abc_dataset, 2))


def test_remap_missing_token_raises():
    """A model token absent from the remap table is a typed failure."""
    model = wc.Model({(): {2: 1}, (2,): {END_TOKEN: 1}}, 1)
    with pytest.raises(UnknownTokenError) as exc:
        model.remap({END_TOKEN: END_TOKEN})
    assert exc.value.token == 2


def test_lookup_is_read_only(abc_dataset):
    """Distributions handed out by the model cannot be modified."""
    model = wc.build(abc_dataset, 1)
    with pytest.raises(TypeError):
        model.lookup(())[END_TOKEN] = 100


# Save and load
# ---------------------------------------------------------------------------


def test_save_load_roundtrip(tmp_path, abc_dataset):
    """The table and window survive a save/load cycle."""
    model = wc.build(abc_dataset, 2)
    path = model.save(tmp_path / "chat")

    assert path.suffix == ".model"
    loaded = wc.Model.load(path, abc_dataset.dictionary)
    assert loaded == model
    assert loaded.window_size == 2


def test_load_rejects_tokens_absent_from_dictionary(tmp_path, abc_dataset):
    """Loading against a smaller dictionary is a corrupt artifact."""
    path = wc.build(abc_dataset, 1).save(tmp_path / "chat")
    with pytest.raises(CorruptArtifactError):
        wc.Model.load(path, wc.TokenDictionary.from_words(["a"]))


def _write_model(path, window, lines):
    body = "\n".join(
        ["WordChain 1", "type model", f"window {window}", "---", str(len(lines)), *lines, "---"]
    )
    path.write_text(body + "\n", encoding="utf-8")


@pytest.mark.parametrize(
    "line",
    [
        "2 -> 3:0",  # zero count
        "2 -> 3:-1",  # negative count
        "2 ->",  # empty distribution
        "2 3:1",  # missing arrow
        "2 3 -> 4:1",  # context longer than window
        "2 -> x:1",  # non numeric token
        "2 -> 3:1 3:2",  # duplicate transition
    ],
)
def test_load_rejects_malformed_lines(tmp_path, line):
    """Structural problems are reported, never coerced."""
    path = tmp_path / "bad.model"
    _write_model(path, 1, [line])
    with pytest.raises(CorruptArtifactError):
        wc.Model.load(path)


def test_load_accepts_empty_context(tmp_path):
    """The empty context is written as a bare arrow."""
    path = tmp_path / "uni.model"
    _write_model(path, 0, [f"-> {END_TOKEN}:4"])
    assert wc.Model.load(path).transitions() == {(): {END_TOKEN: 4}}
