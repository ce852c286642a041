"""Unit tests for loading artifacts by their header."""

import pytest

import wordchain as wc
from wordchain.errors import ArtifactLoadError, CorruptArtifactError


def test_list_artifact_types():
    """Every persisted type is registered."""
    assert wc.list_artifact_types() == ["dictionary", "messages", "tokens", "dataset", "model"]


def test_load_detects_every_type(tmp_path, abc_messages, abc_dataset):
    """The factory returns the class named in the file header."""
    tokenized, dictionary = wc.tokenize(abc_messages)
    model = wc.build(abc_dataset, 2)

    saved = {
        abc_messages.save(tmp_path / "corpus"): abc_messages,
        tokenized.save(tmp_path / "corpus"): tokenized,
        dictionary.save(tmp_path / "corpus"): dictionary,
        abc_dataset.save(tmp_path / "corpus"): abc_dataset,
        model.save(tmp_path / "corpus"): model,
    }

    for path, artifact in saved.items():
        loaded = wc.load(path)
        assert type(loaded) is type(artifact)
        assert loaded == artifact


def test_load_unknown_type_raises(tmp_path):
    """A valid header with an unregistered type is refused."""
    path = tmp_path / "thing.model"
    path.write_text("WordChain 1\ntype spaceship\n", encoding="utf-8")
    with pytest.raises(ArtifactLoadError) as exc:
        wc.load(path)
    assert exc.value.type_mismatch[0] == "spaceship"


def test_load_foreign_file_is_corrupt(tmp_path):
    """Files without the wordchain header are reported as corrupt."""
    path = tmp_path / "notes.model"
    path.write_text("just some notes\n", encoding="utf-8")
    with pytest.raises(CorruptArtifactError):
        wc.load(path)


def test_load_mismatched_suffix_raises(tmp_path, abc_dataset):
    """The header type and the file suffix must agree."""
    path = abc_dataset.dictionary.save(tmp_path / "corpus")
    renamed = path.rename(tmp_path / "corpus.model")
    with pytest.raises(ArtifactLoadError):
        wc.load(renamed)
