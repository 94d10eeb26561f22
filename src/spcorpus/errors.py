# spcorpus/errors.py
from __future__ import annotations
from typing import Optional


class CorpusError(Exception):
    """Base class for every failure the corpus layer reports."""


class SourceReadFailure(CorpusError):
    """A backing input (file or injected provider) could not be read."""
    def __init__(self, source: str, reason: str) -> None:
        super().__init__(f"failed to read {source}: {reason}")
        self.source = source
        self.reason = reason


class StoreWriteFailure(CorpusError):
    """A durable write did not commit. Always fatal for the run."""
    def __init__(self, op: str, reason: str, index: Optional[int] = None) -> None:
        where = f" (index {index})" if index is not None else ""
        super().__init__(f"store {op} failed{where}: {reason}")
        self.op = op
        self.index = index


class RecordNotFound(CorpusError, KeyError):
    """Lookup/update/remove on an index that was never assigned or was removed."""
    def __init__(self, index: int) -> None:
        super().__init__(index)
        self.index = index

    def __str__(self) -> str:
        return f"no sentence record at index {self.index}"


class CorruptRecord(CorpusError, ValueError):
    """A stored value failed to decode."""
    def __init__(self, index: Optional[int], reason: str) -> None:
        super().__init__(f"corrupt record at index {index}: {reason}")
        self.index = index
        self.reason = reason
