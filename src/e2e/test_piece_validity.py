import pytest
from spcorpus.config import TrainerConfig
from spcorpus.pieces import (
    PieceValidityChecker,
    UNK_CHAR,
    WS_CHAR,
    is_valid_piece,
    script_of,
)


def _cfg(**kw) -> TrainerConfig:
    return TrainerConfig(**kw)


def test_length_boundary():
    cfg = _cfg(max_sentencepiece_length=4)
    assert is_valid_piece("abcd", cfg)
    assert not is_valid_piece("abcde", cfg)
    # code points, not bytes
    assert is_valid_piece("日本語で", cfg)
    assert not is_valid_piece("", cfg)


def test_whitespace_straddle_only_invalid_when_splitting():
    assert not is_valid_piece("a b", _cfg(split_by_whitespace=True))
    assert is_valid_piece("a b", _cfg(split_by_whitespace=False))
    assert not is_valid_piece(f"a{WS_CHAR}b", _cfg(split_by_whitespace=True))


def test_leading_whitespace_marker_allowed():
    cfg = _cfg(split_by_whitespace=True)
    assert is_valid_piece(f"{WS_CHAR}hello", cfg)
    assert is_valid_piece(WS_CHAR, cfg)
    assert not is_valid_piece(f"hello{WS_CHAR}", cfg)
    assert not is_valid_piece(WS_CHAR * 2, cfg)


def test_whitespace_as_suffix():
    cfg = _cfg(split_by_whitespace=True, treat_whitespace_as_suffix=True)
    assert is_valid_piece(f"hello{WS_CHAR}", cfg)
    assert not is_valid_piece(f"{WS_CHAR}hello", cfg)


def test_script_boundary():
    on = _cfg(split_by_unicode_script=True)
    off = _cfg(split_by_unicode_script=False)
    assert not is_valid_piece("abд", on)
    assert is_valid_piece("abд", off)
    assert is_valid_piece("дом", on)


def test_digits_and_punctuation_are_script_neutral():
    cfg = _cfg(split_by_unicode_script=True)
    assert is_valid_piece("ab1", cfg)
    assert is_valid_piece("1д", cfg)
    assert is_valid_piece("a-b", cfg)
    assert not is_valid_piece("a1д", cfg)


def test_kana_attaches_to_han():
    cfg = _cfg(split_by_unicode_script=True)
    assert is_valid_piece("日本ご", cfg)
    assert is_valid_piece("カード", cfg)
    assert not is_valid_piece("日本a", cfg)


def test_unknown_marker_never_valid():
    assert not is_valid_piece(f"a{UNK_CHAR}", _cfg())


def test_split_by_number_and_digits():
    assert not is_valid_piece("ab1", _cfg(split_by_number=True))
    assert is_valid_piece("123", _cfg(split_by_number=True))
    assert not is_valid_piece("12", _cfg(split_digits=True))
    assert is_valid_piece("1", _cfg(split_digits=True))


def test_checks_compose_with_and():
    cfg = _cfg(max_sentencepiece_length=3, split_by_whitespace=True, split_by_unicode_script=True)
    assert not is_valid_piece("abcd", cfg)       # length only
    assert not is_valid_piece("a b", cfg)        # whitespace only
    assert not is_valid_piece("aд", cfg)         # script only
    assert is_valid_piece(f"{WS_CHAR}ab", cfg)


@pytest.mark.parametrize("ch, script", [
    ("a", "LATIN"), ("Ａ", "LATIN"), ("д", "CYRILLIC"), ("α", "GREEK"),
    ("日", "HAN"), ("ひ", "HAN"), ("ー", "HAN"), ("한", "HANGUL"),
    ("1", "COMMON"), (" ", "COMMON"), (WS_CHAR, "COMMON"), ("!", "COMMON"),
    ("µ", "COMMON"), ("ℓ", "COMMON"), ("ℕ", "COMMON"), ("ª", "LATIN"), ("º", "LATIN"),
    ("\u212a", "LATIN"), ("\u2126", "GREEK"),
])
def test_script_of(ch, script):
    assert script_of(ch) == script


def test_checker_object_binds_config():
    check = PieceValidityChecker(_cfg(max_sentencepiece_length=2))
    assert check("ab")
    assert not check.is_valid("abc")


def test_common_letters_attach_to_either_script():
    cfg = _cfg(split_by_unicode_script=True)
    assert is_valid_piece("µm", cfg)
    assert is_valid_piece("5ℓ", cfg)
    assert is_valid_piece("1ª", cfg)
    assert not is_valid_piece("ªд", cfg)
