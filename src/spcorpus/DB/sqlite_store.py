# spcorpus/DB/sqlite_store.py
from __future__ import annotations
import logging
import sqlite3
import threading
from typing import Iterable, Iterator, Optional, Tuple

from . import codec
from ..config import SCAN_BATCH_SIZE
from ..errors import CorruptRecord, RecordNotFound, StoreWriteFailure
from ..models import SentenceRecord

log = logging.getLogger(__name__)

# k: 8-byte big-endian index, so BLOB (memcmp) order == numeric order
_SCHEMA = """
CREATE TABLE IF NOT EXISTS sentences (
  k BLOB PRIMARY KEY,
  v BLOB NOT NULL
) WITHOUT ROWID;
-- h: text digest, so duplicates are found through the store
CREATE TABLE IF NOT EXISTS text_index (
  k BLOB PRIMARY KEY,
  h BLOB NOT NULL
) WITHOUT ROWID;
CREATE INDEX IF NOT EXISTS text_index_h ON text_index(h, k);
CREATE TABLE IF NOT EXISTS meta (
  name TEXT PRIMARY KEY,
  value INTEGER NOT NULL
);
"""


class SQLiteStore:
    """Durable CorpusStore: one SQLite file per training run, write-through commits."""
    def __init__(self, db_path: str, *, skip_corrupt: bool = False,
                 batch_size: int = SCAN_BATCH_SIZE) -> None:
        self.db_path = db_path
        self.skip_corrupt = skip_corrupt
        self.batch_size = max(1, int(batch_size))
        self._lock = threading.RLock()
        try:
            self.conn: sqlite3.Connection = sqlite3.connect(db_path, check_same_thread=False)
            self.conn.execute("PRAGMA synchronous=FULL")
            self.conn.executescript(_SCHEMA)
            self._next_index = self._load_next_index()
        except sqlite3.Error as e:
            raise StoreWriteFailure("open", f"{db_path}: {e}") from e
        log.info("Opened corpus store %s (next index %d)", db_path, self._next_index)

    def _load_next_index(self) -> int:
        row = self.conn.execute("SELECT value FROM meta WHERE name='next_index'").fetchone()
        stored = int(row[0]) if row else 0
        last = self.conn.execute("SELECT k FROM sentences ORDER BY k DESC LIMIT 1").fetchone()
        # meta is written in the same transaction as each insert; the max key
        # covers files written before the meta row existed.
        after_last = codec.decode_key(last[0]) + 1 if last else 0
        return max(stored, after_last)

    # ---- Create ----
    def insert(self, text: str, count: int = 1) -> int:
        return self.bulk_insert([SentenceRecord(text, count)])[0]

    def bulk_insert(self, items: Iterable[SentenceRecord]) -> list[int]:
        records = list(items)
        for r in records:
            if r.count < 1:
                raise ValueError(f"cannot insert a record with count {r.count}")
        with self._lock:
            first = self._next_index
            keys = [codec.encode_key(first + i) for i in range(len(records))]
            rows = [(k, codec.encode_record(r)) for k, r in zip(keys, records)]
            hashes = [(k, codec.text_hash(r.text)) for k, r in zip(keys, records)]
            nxt = first + len(rows)
            try:
                with self.conn:
                    self.conn.executemany("INSERT INTO sentences(k, v) VALUES (?,?)", rows)
                    self.conn.executemany("INSERT INTO text_index(k, h) VALUES (?,?)", hashes)
                    self.conn.execute(
                        "INSERT INTO meta(name, value) VALUES ('next_index', ?) "
                        "ON CONFLICT(name) DO UPDATE SET value=excluded.value",
                        (nxt,),
                    )
            except sqlite3.Error as e:
                raise StoreWriteFailure("insert", str(e), first) from e
            self._next_index = nxt
            return list(range(first, nxt))

    # ---- Read ----
    def get(self, index: int) -> SentenceRecord:
        index = int(index)
        if index < 0:
            raise RecordNotFound(index)
        with self._lock:
            row = self.conn.execute(
                "SELECT v FROM sentences WHERE k=?", (codec.encode_key(index),)
            ).fetchone()
        if row is None:
            raise RecordNotFound(index)
        return codec.decode_record(row[0], index)

    def scan_all(self, start_after: Optional[int] = None) -> Iterator[Tuple[int, SentenceRecord]]:
        """Yield (index, record) in ascending index order, one batch per round-trip."""
        cursor = b"" if start_after is None else codec.encode_key(int(start_after))
        while True:
            with self._lock:
                rows = self.conn.execute(
                    "SELECT k, v FROM sentences WHERE k > ? ORDER BY k LIMIT ?",
                    (cursor, self.batch_size),
                ).fetchall()
            if not rows:
                return
            for k, v in rows:
                index = codec.decode_key(k)
                try:
                    record = codec.decode_record(v, index)
                except CorruptRecord as e:
                    if not self.skip_corrupt:
                        raise
                    log.warning("Skipping %s", e)
                    continue
                yield index, record
            cursor = rows[-1][0]

    def find(self, text: str) -> Optional[int]:
        """Lowest index whose record holds exactly `text`, or None."""
        with self._lock:
            rows = self.conn.execute(
                "SELECT s.k, s.v FROM text_index t JOIN sentences s ON s.k = t.k "
                "WHERE t.h = ? ORDER BY t.k",
                (codec.text_hash(text),),
            ).fetchall()
        for k, v in rows:
            index = codec.decode_key(k)
            try:
                record = codec.decode_record(v, index)
            except CorruptRecord as e:
                if not self.skip_corrupt:
                    raise
                log.warning("Skipping %s", e)
                continue
            # digests can collide; the stored text decides
            if record.text == text:
                return index
        return None

    def size(self) -> int:
        if self.skip_corrupt:
            # corrupt rows are invisible to scan_all() in this mode
            return sum(1 for _ in self.scan_all())
        with self._lock:
            return int(self.conn.execute("SELECT COUNT(*) FROM sentences").fetchone()[0])

    # ---- Update ----
    def update(self, index: int, record: SentenceRecord) -> None:
        index = int(index)
        if record.count == 0:
            self.remove(index)
            return
        if index < 0:
            raise RecordNotFound(index)
        key = codec.encode_key(index)
        with self._lock:
            try:
                with self.conn:
                    cur = self.conn.execute(
                        "UPDATE sentences SET v=? WHERE k=?",
                        (codec.encode_record(record), key),
                    )
                    if cur.rowcount:
                        self.conn.execute(
                            "INSERT INTO text_index(k, h) VALUES (?,?) "
                            "ON CONFLICT(k) DO UPDATE SET h=excluded.h",
                            (key, codec.text_hash(record.text)),
                        )
            except sqlite3.Error as e:
                raise StoreWriteFailure("update", str(e), index) from e
        if cur.rowcount == 0:
            raise RecordNotFound(index)

    # ---- Delete ----
    def remove(self, index: int) -> None:
        index = int(index)
        if index < 0:
            raise RecordNotFound(index)
        key = codec.encode_key(index)
        with self._lock:
            try:
                with self.conn:
                    cur = self.conn.execute("DELETE FROM sentences WHERE k=?", (key,))
                    self.conn.execute("DELETE FROM text_index WHERE k=?", (key,))
            except sqlite3.Error as e:
                raise StoreWriteFailure("remove", str(e), index) from e
        if cur.rowcount == 0:
            raise RecordNotFound(index)

    # ---- lifecycle ----
    def close(self) -> None:
        with self._lock:
            self.conn.close()

    def __enter__(self) -> "SQLiteStore":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
