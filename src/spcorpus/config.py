# spcorpus/config.py
from __future__ import annotations
import os
from dataclasses import dataclass, field
from typing import Tuple

# Piece validity
MAX_SENTENCEPIECE_LENGTH: int = 16
SPLIT_BY_WHITESPACE: bool = True
SPLIT_BY_UNICODE_SCRIPT: bool = True
SPLIT_BY_NUMBER: bool = False
SPLIT_DIGITS: bool = False
TREAT_WHITESPACE_AS_SUFFIX: bool = False

# Ingestion
INPUT_SENTENCE_SIZE: int = 0          # 0 = no cap
MAX_SENTENCE_LENGTH: int = 4192       # bytes (UTF-8); longer lines are skipped
INPUT_FORMAT: str = "text"            # "text" | "tsv" (text<TAB>count)
DEDUPLICATE: bool = True

# Required characters
CHARACTER_COVERAGE: float = 0.9995

# Meta pieces (-1 disables an id)
VOCAB_SIZE: int = 8000
UNK_ID: int = 0
BOS_ID: int = 1
EOS_ID: int = 2
PAD_ID: int = -1
UNK_PIECE: str = "<unk>"
BOS_PIECE: str = "<s>"
EOS_PIECE: str = "</s>"
PAD_PIECE: str = "<pad>"

# Storage
STORE_DSN: str = "sqlite:///./sentences.db"
SCAN_BATCH_SIZE: int = 1_000
INSERT_BATCH_SIZE: int = 10_000

# Progress logging (set SPCORPUS_VERBOSE=1 to enable)
PROGRESS_EVERY_SENTENCES: int = 100_000


def verbose_enabled() -> bool:
    return os.environ.get("SPCORPUS_VERBOSE") == "1"


@dataclass(frozen=True)
class TrainerConfig:
    """Read-only trainer options consumed by the corpus layer.

    Attributes:
        max_sentencepiece_length: Longest admissible piece, in code points
        split_by_whitespace: Pieces may not cross a whitespace boundary
        split_by_unicode_script: Pieces may not mix two Unicode scripts
        split_by_number: Pieces may not mix digits with non-digits
        split_digits: Digits only appear as single-character pieces
        treat_whitespace_as_suffix: Whitespace attaches to the end of a piece
        input_sentence_size: Cap on loaded sentences (0 = no cap)
        max_sentence_length: Lines longer than this many bytes are skipped
        input_format: "text" (one sentence per line) or "tsv" (text<TAB>count)
        deduplicate: Merge identical sentences into one counted record
        skip_unreadable_sources: Continue with the next file on read failure
        skip_corrupt_records: Log and skip undecodable records during scans
        character_coverage: Share of character mass kept as required
    """
    max_sentencepiece_length: int = MAX_SENTENCEPIECE_LENGTH
    split_by_whitespace: bool = SPLIT_BY_WHITESPACE
    split_by_unicode_script: bool = SPLIT_BY_UNICODE_SCRIPT
    split_by_number: bool = SPLIT_BY_NUMBER
    split_digits: bool = SPLIT_DIGITS
    treat_whitespace_as_suffix: bool = TREAT_WHITESPACE_AS_SUFFIX
    input_sentence_size: int = INPUT_SENTENCE_SIZE
    max_sentence_length: int = MAX_SENTENCE_LENGTH
    input_format: str = INPUT_FORMAT
    deduplicate: bool = DEDUPLICATE
    skip_unreadable_sources: bool = True
    skip_corrupt_records: bool = False
    character_coverage: float = CHARACTER_COVERAGE
    vocab_size: int = VOCAB_SIZE
    unk_id: int = UNK_ID
    bos_id: int = BOS_ID
    eos_id: int = EOS_ID
    pad_id: int = PAD_ID
    unk_piece: str = UNK_PIECE
    bos_piece: str = BOS_PIECE
    eos_piece: str = EOS_PIECE
    pad_piece: str = PAD_PIECE
    control_symbols: Tuple[str, ...] = field(default_factory=tuple)
    user_defined_symbols: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if self.max_sentencepiece_length < 1:
            raise ValueError("max_sentencepiece_length must be >= 1")
        if self.input_sentence_size < 0:
            raise ValueError("input_sentence_size must be >= 0")
        if self.input_format not in ("text", "tsv"):
            raise ValueError(f"unsupported input_format: {self.input_format!r}")
        if not 0.0 < self.character_coverage <= 1.0:
            raise ValueError("character_coverage must be in (0, 1]")


@dataclass(frozen=True)
class RunConfig:
    """Per-run resources.

    Attributes:
        store_dsn: "sqlite:///path/to/sentences.db" or "memory://"
        keep_store: Keep the on-disk store after the run ends
        scan_batch_size: Rows fetched per round-trip during scans
        insert_batch_size: Distinct sentences buffered before a flush
        verbose: Enable INFO logging and progress lines
    """
    store_dsn: str = STORE_DSN
    keep_store: bool = False
    scan_batch_size: int = SCAN_BATCH_SIZE
    insert_batch_size: int = INSERT_BATCH_SIZE
    verbose: bool = False
