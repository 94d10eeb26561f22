# spcorpus/pieces.py
from __future__ import annotations
import logging
import unicodedata
from collections import Counter
from functools import lru_cache
from typing import Dict, Iterable, Iterator, Tuple, Union

from .config import TrainerConfig
from .models import SentenceRecord
from .ranking import rank

log = logging.getLogger(__name__)

WS_CHAR = "▁"             # canonical whitespace marker
UNK_CHAR = "⁇"            # unknown-character marker
UPP_BOUNDARY_CHAR = "\t"       # boundary between user pre-tokenized pieces

COMMON = "COMMON"

# Scripts folded together (Japanese kana attach to Han)
_FOLD = {"CJK": "HAN", "HIRAGANA": "HAN", "KATAKANA": "HAN", "IDEOGRAPHIC": "HAN",
         "KATAKANA-HIRAGANA": "HAN"}
# Name prefixes that are width/style variants of another script
_VARIANT = {"HALFWIDTH", "FULLWIDTH"}
# Name prefixes made of two words (OLD ITALIC, LINEAR B, ...)
_TWO_WORD = {"OLD", "LINEAR", "CANADIAN", "TAI", "NEW"}
# Letter-like characters whose Unicode script is Common
_NEUTRAL = {"MODIFIER", "MATHEMATICAL", "SUPERSCRIPT", "SUBSCRIPT"}
# Letters whose script is not the first word of their name
_OVERRIDES = {"\u00aa": "LATIN", "\u00ba": "LATIN", "\u00b5": COMMON,
              "\u2126": "GREEK", "\u212a": "LATIN", "\u212b": "LATIN",
              "\u2132": "LATIN", "\u214e": "LATIN"}
# Letterlike Symbols block: letters not listed above are Common
_LETTERLIKE = range(0x2100, 0x2150)


@lru_cache(maxsize=65536)
def script_of(ch: str) -> str:
    """
    Coarse Unicode script of a single character, derived from its name.

    Digits, punctuation, symbols, marks, separators and controls are COMMON
    (script-neutral). Hiragana, Katakana and U+30FC fold into HAN.
    """
    if ch == "ー":  # prolonged sound mark
        return "HAN"
    cat = unicodedata.category(ch)
    if cat[0] != "L":
        return COMMON
    if ch in _OVERRIDES:
        return _OVERRIDES[ch]
    if ord(ch) in _LETTERLIKE:
        return COMMON
    words = unicodedata.name(ch, "").split()
    if not words:
        return COMMON
    if words[0] in _VARIANT and len(words) > 1:
        words = words[1:]
    head = words[0]
    if head in _NEUTRAL:
        return COMMON
    if head in _TWO_WORD and len(words) > 1:
        head = f"{head} {words[1]}"
    return _FOLD.get(head, head)


def is_whitespace(ch: str) -> bool:
    return ch == WS_CHAR or ch.isspace()


def _is_digit(ch: str) -> bool:
    return unicodedata.category(ch) == "Nd"


def is_valid_piece(span: str, config: TrainerConfig) -> bool:
    """
    True if `span` is an admissible vocabulary candidate under `config`.

    Checks (all enabled checks must pass):
      * non-empty and at most max_sentencepiece_length code points
      * no unknown marker
      * split_by_whitespace: whitespace only as the first code point
        (the last one with treat_whitespace_as_suffix)
      * split_by_unicode_script: at most one non-COMMON script
      * split_by_number: digits and non-digits do not mix
      * split_digits: a digit only as a single-code-point piece
    """
    n = len(span)
    if n == 0 or n > config.max_sentencepiece_length:
        return False

    prev_script = None
    prev_digit = None
    for pos, ch in enumerate(span):
        if ch == UNK_CHAR:
            return False

        if is_whitespace(ch):
            if config.split_by_whitespace:
                edge = n - 1 if config.treat_whitespace_as_suffix else 0
                if pos != edge:
                    return False
            continue

        digit = _is_digit(ch)
        if digit and config.split_digits and n > 1:
            return False
        if config.split_by_number and prev_digit is not None and digit != prev_digit:
            return False
        prev_digit = digit

        if config.split_by_unicode_script:
            s = script_of(ch)
            if s != COMMON:
                if prev_script is not None and s != prev_script:
                    return False
                prev_script = s
    return True


class PieceValidityChecker:
    """Binds is_valid_piece() to one configuration."""
    def __init__(self, config: TrainerConfig) -> None:
        self.config = config

    def is_valid(self, span: str) -> bool:
        return is_valid_piece(span, self.config)

    __call__ = is_valid


CorpusLike = Union[object, Iterable[Union[SentenceRecord, Tuple[int, SentenceRecord], Tuple[str, int]]]]


def iter_records(corpus: CorpusLike) -> Iterator[SentenceRecord]:
    """
    Normalize the accepted corpus shapes to SentenceRecord:
      - a CorpusStore (scanned once, ascending index order)
      - SentenceRecord items
      - (index, SentenceRecord) pairs, as yielded by scan_all()
      - (text, count) pairs
    """
    if hasattr(corpus, "scan_all"):
        corpus = corpus.scan_all()
    for item in corpus:
        if isinstance(item, SentenceRecord):
            yield item
        elif isinstance(item[1], SentenceRecord):
            yield item[1]
        else:
            text, count = item
            yield SentenceRecord(text, int(count))


def fold_whitespace(text: str) -> str:
    return "".join(WS_CHAR if ch.isspace() else ch for ch in text)


def derive_required_characters(corpus: CorpusLike) -> Dict[str, int]:
    """
    Character frequency table over the whole corpus.

    Each code point adds the record's count, not 1. Whitespace is folded into
    WS_CHAR first; the unknown marker is never required.

    >>> derive_required_characters([("ab", 3), ("b", 2)])
    {'a': 3, 'b': 5}
    """
    table: Dict[str, int] = {}
    for record in iter_records(corpus):
        for ch in fold_whitespace(record.text):
            if ch == UNK_CHAR:
                continue
            table[ch] = table.get(ch, 0) + record.count
    return table


def select_required_characters(table: Dict[str, int], coverage: float) -> Tuple[Dict[str, int], int]:
    """
    Keep the most frequent characters until `coverage` of the total character
    mass is reached. Returns (kept table, number of rejected characters).
    """
    total = sum(table.values())
    kept: Dict[str, int] = {}
    accumulated = 0
    for ch, freq in rank(table):
        if coverage < 1.0 and total and accumulated / total >= coverage:
            break
        accumulated += freq
        kept[ch] = freq
    rejected = len(table) - len(kept)
    if total:
        log.info("Character coverage %.4f%% with %d characters (%d rejected)",
                 100.0 * accumulated / total, len(kept), rejected)
    return kept, rejected


def split_sentences_by_whitespace(corpus: CorpusLike) -> Dict[str, int]:
    """
    Word counts weighted by sentence counts.

    [("hello world ", 1), ("hi world", 1)] -> {"hello": 1, "hi": 1, "world": 2}
    """
    words: Counter = Counter()
    for record in iter_records(corpus):
        for w in record.text.replace(WS_CHAR, " ").split():
            words[w] += record.count
    return dict(words)
