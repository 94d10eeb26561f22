# spcorpus/source.py
from __future__ import annotations
import logging
import os
from typing import IO, Iterable, Iterator, List, Optional

from .errors import SourceReadFailure
from .models import Status

log = logging.getLogger(__name__)


class SentenceSource:
    """
    Lazy, finite sequence of raw text lines.

    Protocol: check done(), read current(), call advance(). status() reports
    the first unrecoverable failure, if any. A source is restartable only by
    constructing it again over the same inputs.
    """

    name: str = "<source>"

    def __init__(self) -> None:
        self._value: Optional[str] = None
        self._done = False
        self._status = Status.ok()
        # inputs that failed but were skipped; they do not fail status()
        self.skipped: List[str] = []

    def done(self) -> bool:
        return self._done

    def current(self) -> str:
        if self._done or self._value is None:
            raise RuntimeError("current() called on an exhausted sentence source")
        return self._value

    def advance(self) -> None:
        if self._done:
            return
        self._read_next()

    def status(self) -> Status:
        return self._status

    def __iter__(self) -> Iterator[str]:
        while not self.done():
            yield self.current()
            self.advance()

    # ---- internals ----
    def _record_failure(self, exc: SourceReadFailure, *, recovered: bool) -> None:
        if recovered:
            log.warning("%s; skipping", exc)
            self.skipped.append(exc.source)
            return
        log.error("%s", exc)
        if self._status.is_ok:
            self._status = Status.from_error(exc)

    def _read_next(self) -> None:  # pragma: no cover
        raise NotImplementedError


def _strip_eol(line: str) -> str:
    return line.rstrip("\r\n")


class MultiFileSentenceSource(SentenceSource):
    """Reads files in the given order, one sentence per line."""
    def __init__(self, paths: Iterable[str], *, skip_unreadable: bool = True,
                 encoding: str = "utf-8") -> None:
        super().__init__()
        self.files: List[str] = [os.fspath(p) for p in paths]
        self.skip_unreadable = skip_unreadable
        self.encoding = encoding
        self._file_index = 0
        self._fp: Optional[IO[str]] = None
        self.name = ",".join(self.files) or "<no files>"
        self._read_next()

    @property
    def current_file(self) -> Optional[str]:
        if self._file_index < len(self.files):
            return self.files[self._file_index]
        return None

    def _read_next(self) -> None:
        while self._file_index < len(self.files):
            path = self.files[self._file_index]
            try:
                if self._fp is None:
                    log.info("Loading %s", path)
                    self._fp = open(path, "r", encoding=self.encoding, newline="\n")
                line = self._fp.readline()
            except (OSError, UnicodeDecodeError) as e:
                self._close_current()
                self._file_index += 1
                self._record_failure(SourceReadFailure(path, str(e)), recovered=self.skip_unreadable)
                if not self.skip_unreadable:
                    break
                continue
            if line:
                self._value = _strip_eol(line)
                return
            self._close_current()
            self._file_index += 1
        self._value = None
        self._done = True

    def _close_current(self) -> None:
        if self._fp is not None:
            try:
                self._fp.close()
            finally:
                self._fp = None

    def close(self) -> None:
        self._close_current()
        self._done = True


class IteratorSentenceSource(SentenceSource):
    """Wraps an externally supplied iterable of lines."""
    def __init__(self, lines: Iterable[str], name: str = "<iterator>") -> None:
        super().__init__()
        self.name = name
        self._it = iter(lines)
        self._read_next()

    def _read_next(self) -> None:
        try:
            value = next(self._it)
        except StopIteration:
            self._value = None
            self._done = True
            return
        except Exception as e:
            self._record_failure(SourceReadFailure(self.name, repr(e)), recovered=False)
            self._value = None
            self._done = True
            return
        if not isinstance(value, str):
            value = str(value)
        self._value = _strip_eol(value)
