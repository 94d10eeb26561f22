# spcorpus/DB/memory_store.py
from __future__ import annotations
import bisect
import threading
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from ..errors import RecordNotFound
from ..models import SentenceRecord


class MemoryStore:
    """Simple in-memory CorpusStore (useful for tests or ephemeral runs)."""
    def __init__(self) -> None:
        # indices only grow, so dict insertion order is ascending index order
        self._rows: Dict[int, SentenceRecord] = {}
        # text -> ascending indices of the records holding it
        self._by_text: Dict[str, List[int]] = {}
        self._next_index = 0
        self._lock = threading.RLock()

    # C
    def insert(self, text: str, count: int = 1) -> int:
        return self.bulk_insert([SentenceRecord(text, count)])[0]

    def bulk_insert(self, items: Iterable[SentenceRecord]) -> list[int]:
        records = list(items)
        for r in records:
            if r.count < 1:
                raise ValueError(f"cannot insert a record with count {r.count}")
        out = []
        with self._lock:
            for r in records:
                self._rows[self._next_index] = r
                self._by_text.setdefault(r.text, []).append(self._next_index)
                out.append(self._next_index)
                self._next_index += 1
        return out

    # R
    def get(self, index: int) -> SentenceRecord:
        try:
            return self._rows[int(index)]
        except KeyError:
            raise RecordNotFound(int(index)) from None

    def scan_all(self, start_after: Optional[int] = None) -> Iterator[Tuple[int, SentenceRecord]]:
        with self._lock:
            snapshot = list(self._rows)
        for index in snapshot:
            if start_after is not None and index <= start_after:
                continue
            record = self._rows.get(index)
            if record is not None:
                yield index, record

    def find(self, text: str) -> Optional[int]:
        with self._lock:
            indices = self._by_text.get(text)
            return indices[0] if indices else None

    def size(self) -> int:
        return len(self._rows)

    # U
    def update(self, index: int, record: SentenceRecord) -> None:
        index = int(index)
        with self._lock:
            if index not in self._rows:
                raise RecordNotFound(index)
            if record.count == 0:
                self._drop(index)
                return
            old = self._rows[index]
            self._rows[index] = record
            if old.text != record.text:
                self._unlink(old.text, index)
                bisect.insort(self._by_text.setdefault(record.text, []), index)

    # D
    def remove(self, index: int) -> None:
        index = int(index)
        with self._lock:
            if index not in self._rows:
                raise RecordNotFound(index)
            self._drop(index)

    def _drop(self, index: int) -> None:
        self._unlink(self._rows.pop(index).text, index)

    def _unlink(self, text: str, index: int) -> None:
        indices = self._by_text[text]
        indices.remove(index)
        if not indices:
            del self._by_text[text]

    def close(self) -> None:
        self._rows.clear()
        self._by_text.clear()

    def __enter__(self) -> "MemoryStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
