# spcorpus/models.py
"""
Data models for the corpus substrate.

- SentenceRecord: one distinct observed sentence and how often it was seen.
- PieceType / MetaPiece: reserved vocabulary entries outside the counted corpus.
- Status: the outcome returned by sources and by a pipeline run.

These classes carry no storage or ranking logic; they only shape the data
passed between the source, the store and the pipeline.
"""

from __future__ import annotations
import enum
from dataclasses import dataclass
from typing import Optional

from .errors import (
    CorpusError,
    CorruptRecord,
    RecordNotFound,
    SourceReadFailure,
    StoreWriteFailure,
)

INT64_MIN = -(1 << 63)
INT64_MAX = (1 << 63) - 1


@dataclass(frozen=True, slots=True)
class SentenceRecord:
    """
    A sentence (or line) and its occurrence count.

    Attributes
    ----------
    text : str
        The sentence text, verbatim. May contain NUL bytes, newlines or any
        Unicode; the store encoding is length-prefixed.
    count : int
        Number of observations. Persisted records always have count >= 1;
        a count of 0 means "logically absent" and only appears as an update
        request that deletes the record.
    """
    text: str
    count: int = 1

    def __post_init__(self) -> None:
        if not isinstance(self.text, str):
            raise TypeError(f"text must be str, got {type(self.text).__name__}")
        if isinstance(self.count, bool) or not isinstance(self.count, int):
            raise TypeError(f"count must be int, got {type(self.count).__name__}")
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")
        if self.count > INT64_MAX:
            raise ValueError(f"count {self.count} does not fit in a signed 64-bit integer")


class PieceType(enum.Enum):
    NORMAL = "normal"
    UNKNOWN = "unknown"
    CONTROL = "control"
    USER_DEFINED = "user_defined"


@dataclass(frozen=True, slots=True)
class MetaPiece:
    piece: str
    type: PieceType


class StatusCode(enum.Enum):
    OK = "ok"
    SOURCE_READ_FAILURE = "source_read_failure"
    STORE_WRITE_FAILURE = "store_write_failure"
    RECORD_NOT_FOUND = "record_not_found"
    CORRUPT_RECORD = "corrupt_record"
    INVALID_ARGUMENT = "invalid_argument"


_ERROR_CODES = (
    (SourceReadFailure, StatusCode.SOURCE_READ_FAILURE),
    (StoreWriteFailure, StatusCode.STORE_WRITE_FAILURE),
    (RecordNotFound, StatusCode.RECORD_NOT_FOUND),
    (CorruptRecord, StatusCode.CORRUPT_RECORD),
)


@dataclass(frozen=True, slots=True)
class Status:
    """Tagged outcome: OK, or a specific failure kind with a message."""
    code: StatusCode = StatusCode.OK
    message: str = ""
    error: Optional[BaseException] = None

    @classmethod
    def ok(cls) -> "Status":
        return cls()

    @classmethod
    def from_error(cls, exc: BaseException) -> "Status":
        for kind, code in _ERROR_CODES:
            if isinstance(exc, kind):
                return cls(code, str(exc), exc)
        if isinstance(exc, (ValueError, TypeError)):
            return cls(StatusCode.INVALID_ARGUMENT, str(exc), exc)
        raise exc

    @property
    def is_ok(self) -> bool:
        return self.code is StatusCode.OK

    def __bool__(self) -> bool:
        return self.is_ok

    def raise_for_status(self) -> None:
        if self.is_ok:
            return
        if isinstance(self.error, CorpusError):
            raise self.error
        raise CorpusError(f"{self.code.value}: {self.message}")
