"""Unit tests for message parsing, tokenization and readers."""

import pytest

import wordchain as wc
from wordchain.errors import (
    PatternError,
    ReservedWordError,
    UnknownTokenError,
    UnresolvableMessageError,
)
from wordchain.readers import read_lines, search_files, unquote_line


# Parsing
# ---------------------------------------------------------------------------


def test_parse_lowercases_and_splits_on_whitespace():
    """Default parsing keeps punctuation attached and folds case."""
    messages = wc.MessageSet.parse(["Hello, World!", "Example text"])
    assert messages.messages == (("hello,", "world!"), ("example", "text"))


def test_parse_skips_blank_lines():
    """Lines without words do not produce messages."""
    messages = wc.MessageSet.parse(["one", "", "   ", "two three"])
    assert len(messages) == 2


def test_parse_keep_case():
    """Case folding can be turned off."""
    messages = wc.MessageSet.parse(["Hello World"], lowercase=False)
    assert messages[0] == ("Hello", "World")


def test_parse_words_pattern_trims_punctuation():
    """The words pattern drops punctuation but keeps inner apostrophes."""
    messages = wc.MessageSet.parse(["Hello, World! It's fine."], pattern="words")
    assert messages[0] == ("hello", "world", "it's", "fine")


def test_parse_punctuated_pattern_splits_punctuation():
    """The punctuated pattern turns punctuation runs into words."""
    messages = wc.MessageSet.parse(["Hello, World!"], pattern="punctuated")
    assert messages[0] == ("hello", ",", "world", "!")


def test_parse_custom_pattern():
    """A custom regex overrides the named pattern."""
    messages = wc.MessageSet.parse(["a1b22c"], custom_pattern=r"\d+")
    assert messages[0] == ("1", "22")


def test_parse_unknown_pattern_raises():
    """Unknown pattern names are reported."""
    with pytest.raises(PatternError):
        wc.MessageSet.parse(["a"], pattern="nope")


def test_parse_invalid_custom_pattern_raises():
    """Invalid regexes are reported with the regex error attached."""
    with pytest.raises(PatternError) as exc:
        wc.MessageSet.parse(["a"], custom_pattern="(")
    assert exc.value.regex_err is not None


def test_merge_concatenates_in_order():
    """Merging keeps both message sets in order, duplicates included."""
    first = wc.MessageSet.parse(["a b", "c"])
    second = wc.MessageSet.parse(["a b"])
    merged = first.merge(second)
    assert merged.messages == (("a", "b"), ("c",), ("a", "b"))


# Tokenization
# ---------------------------------------------------------------------------


def test_tokenize_detokenize_roundtrip(abc_messages):
    """Tokenizing then detokenizing gives back the normalized words."""
    tokenized, dictionary = wc.tokenize(abc_messages)
    assert tokenized.detokenize(dictionary) == abc_messages


def test_tokenize_does_not_mutate_input_dictionary(abc_messages):
    """New words go into a new dictionary value."""
    base = wc.TokenDictionary.from_words(["a"])
    tokenized, extended = wc.tokenize(abc_messages, base)

    assert len(base) == 3
    assert len(extended) == 6
    # known words keep their ids
    assert tokenized[0][0] == base.lookup("a")


def test_tokenize_validates_pretokenized_messages():
    """Already tokenized input is checked against the dictionary."""
    dictionary = wc.TokenDictionary.from_words(["a"])
    good = wc.TokenizedMessages([[2, 2]])
    assert wc.tokenize(good, dictionary) == (good, dictionary)

    with pytest.raises(UnresolvableMessageError) as exc:
        wc.tokenize(wc.TokenizedMessages([[2], [2, 7]]), dictionary)
    assert exc.value.token == 7
    assert exc.value.message_index == 1
    assert isinstance(exc.value, UnknownTokenError)


def test_tokenized_remap():
    """Remapping translates every token and fails on missing entries."""
    tokenized = wc.TokenizedMessages([[2, 3], [3]])
    assert tokenized.remap({2: 5, 3: 6}) == wc.TokenizedMessages([[5, 6], [6]])
    with pytest.raises(UnresolvableMessageError):
        tokenized.remap({2: 5})


def test_tokenize_rejects_sentinel_words():
    """Corpus words spelling START or END are not folded onto the sentinels."""
    messages = wc.MessageSet([["a", "b"], ["a", "<|end|>"]])
    with pytest.raises(ReservedWordError) as exc:
        wc.tokenize(messages)
    assert exc.value.word == "<|end|>"
    assert exc.value.message_index == 1


def test_parsed_sentinel_words_fail_at_tokenize():
    """A raw line containing a sentinel word parses but does not tokenize."""
    messages = wc.MessageSet.parse(["hello <|start|> there"])
    with pytest.raises(ReservedWordError):
        messages.tokenize()


def test_empty_message_is_valid():
    """An empty tokenized message is kept as is."""
    tokenized = wc.TokenizedMessages([[]])
    tokenized.validate(wc.TokenDictionary())
    assert len(tokenized) == 1


# Save and load
# ---------------------------------------------------------------------------


def test_message_set_save_load_roundtrip(tmp_path):
    """Word messages survive a save/load cycle."""
    messages = wc.MessageSet([["hello", "wörld"], ["with space"], []])
    path = messages.save(tmp_path / "corpus")
    assert path.suffix == ".messages"
    assert wc.MessageSet.load(path) == messages


def test_tokenized_save_load_roundtrip(tmp_path, abc_messages):
    """Tokenized messages survive a save/load cycle, empty ones included."""
    tokenized, dictionary = wc.tokenize(abc_messages)
    tokenized = tokenized.merge(wc.TokenizedMessages([[]]))
    path = tokenized.save(tmp_path / "corpus")
    assert path.suffix == ".tokens"
    assert wc.TokenizedMessages.load(path, dictionary) == tokenized


def test_tokenized_load_validates_against_dictionary(tmp_path):
    """Loading with a dictionary rejects unknown ids."""
    path = wc.TokenizedMessages([[2, 9]]).save(tmp_path / "bad")
    with pytest.raises(UnresolvableMessageError):
        wc.TokenizedMessages.load(path, wc.TokenDictionary.from_words(["a"]))


# Readers
# ---------------------------------------------------------------------------


def test_unquote_line():
    """JSON string lines are unquoted, anything else is only stripped."""
    assert unquote_line('  "say \\"hi\\""\n') == 'say "hi"'
    assert unquote_line("plain text  ") == "plain text"
    assert unquote_line('"a" and "b"') == '"a" and "b"'


def test_read_lines_and_search_files(tmp_path):
    """Directories expand to their files and lines are unquoted."""
    (tmp_path / "sub").mkdir()
    (tmp_path / "sub" / "b.txt").write_text('"quoted line"\nplain\n', encoding="utf-8")
    (tmp_path / "a.txt").write_text("first\n", encoding="utf-8")

    files = search_files([tmp_path])
    assert [f.name for f in files] == ["a.txt", "b.txt"]
    assert list(read_lines(files[1])) == ["quoted line", "plain"]
