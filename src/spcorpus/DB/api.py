# spcorpus/DB/api.py
from __future__ import annotations
import contextlib
import logging
import os
from typing import Protocol, Iterable, Iterator, Optional, Tuple

from ..errors import StoreWriteFailure
from ..models import SentenceRecord

log = logging.getLogger(__name__)


class CorpusStore(Protocol):
    # Create
    def insert(self, text: str, count: int = 1) -> int: ...
    def bulk_insert(self, items: Iterable[SentenceRecord]) -> list[int]: ...
    # Read
    def get(self, index: int) -> SentenceRecord: ...
    def scan_all(self, start_after: Optional[int] = None) -> Iterator[Tuple[int, SentenceRecord]]: ...
    def find(self, text: str) -> Optional[int]: ...
    def size(self) -> int: ...
    # Update
    def update(self, index: int, record: SentenceRecord) -> None: ...
    # Delete
    def remove(self, index: int) -> None: ...
    # lifecycle
    def close(self) -> None: ...


def dsn_path(dsn: str) -> Optional[str]:
    """Filesystem path behind a DSN, or None for non-durable stores."""
    if dsn.startswith("sqlite:///"):
        return dsn.removeprefix("sqlite:///")
    return None


def make_store(dsn: str, *, skip_corrupt: bool = False, scan_batch_size: Optional[int] = None) -> CorpusStore:
    """
    Factory:
      - sqlite:///path -> SQLiteStore (file created if missing; reopening resumes indices)
      - memory://      -> MemoryStore
    """
    if dsn.startswith("sqlite:///"):
        path = dsn.removeprefix("sqlite:///")
        if not path:
            raise ValueError(f"sqlite DSN without a path: {dsn!r}")
        try:
            os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        except OSError as e:
            raise StoreWriteFailure("open", f"{path}: {e}") from e
        # Lazy import to avoid a circular import
        from .sqlite_store import SQLiteStore
        kw = {} if scan_batch_size is None else {"batch_size": scan_batch_size}
        return SQLiteStore(path, skip_corrupt=skip_corrupt, **kw)

    if dsn.startswith("memory://"):
        from .memory_store import MemoryStore
        return MemoryStore()

    raise ValueError(f"Unsupported store DSN: {dsn}")


def remove_store_files(dsn: str) -> None:
    """Delete the on-disk files of a durable store (no-op for memory://)."""
    path = dsn_path(dsn)
    if path is None:
        return
    for p in (path, f"{path}-journal", f"{path}-wal", f"{path}-shm"):
        try:
            os.remove(p)
            log.info("Removed store file %s", p)
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StoreWriteFailure("remove", f"{p}: {e}") from e


@contextlib.contextmanager
def open_store(dsn: str, **kw) -> Iterator[CorpusStore]:
    """Scoped acquisition: the store is closed on every exit path."""
    store = make_store(dsn, **kw)
    try:
        yield store
    finally:
        store.close()
