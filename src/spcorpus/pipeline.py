# spcorpus/pipeline.py
from __future__ import annotations

import os
import logging
from typing import Dict, Iterable, List, Optional, Tuple, Union

from . import config as CFG
from .config import RunConfig, TrainerConfig
from .errors import CorpusError
from .meta import init_meta_pieces
from .models import MetaPiece, SentenceRecord, Status
from .pieces import (
    PieceValidityChecker,
    derive_required_characters,
    select_required_characters,
    split_sentences_by_whitespace,
)
from .ranking import top_k
from .source import MultiFileSentenceSource, SentenceSource
from .DB.api import CorpusStore, make_store, remove_store_files

log = logging.getLogger(__name__)

SourceLike = Union[SentenceSource, Iterable[str]]


class TrainingPipeline:
    """
    Thin orchestration layer that glues together:
      - a SentenceSource (files or an injected iterator),
      - the durable CorpusStore (SQLite or in-memory),
      - required-character derivation and frequency-ranked candidate views.

    Public API:
      * open() / close() or `with TrainingPipeline(...) as p:`
      * load_sentences(source) -> Status
      * derive_required_characters() -> {char: freq}
      * required_characters()        -> coverage-filtered table
      * candidate_ranking(k)         -> [(piece, freq), ...]
      * run(source) -> Status        (load + derive, errors as Status)

    Storage DSNs (via spcorpus.DB.api.make_store):
      - "sqlite:///path/to/sentences.db"
      - "memory://"
    """

    # ------------- lifecycle -------------

    def __init__(self, trainer_config: Optional[TrainerConfig] = None,
                 run_config: Optional[RunConfig] = None) -> None:
        self.config = trainer_config or TrainerConfig()
        self.run_config = run_config or RunConfig()
        self.meta_pieces: Dict[int, MetaPiece] = init_meta_pieces(self.config)
        self.checker = PieceValidityChecker(self.config)
        self.required_chars: Optional[Dict[str, int]] = None
        self.sentences_loaded = 0
        self.sentences_skipped = 0
        self.skipped_sources: List[str] = []
        self._store: Optional[CorpusStore] = None
        self._complete = False

    def open(self) -> "TrainingPipeline":
        if self._store is not None:
            return self
        rc = self.run_config
        if rc.verbose:
            logging.basicConfig(level=logging.INFO)
        if not rc.keep_store:
            # a run starts from an empty corpus unless asked to resume
            remove_store_files(rc.store_dsn)
        log.info("Initializing corpus store: %s", rc.store_dsn)
        self._store = make_store(
            rc.store_dsn,
            skip_corrupt=self.config.skip_corrupt_records,
            scan_batch_size=rc.scan_batch_size,
        )
        self._complete = self._store.size() > 0
        return self

    def close(self) -> None:
        store, self._store = self._store, None
        if store is None:
            return
        try:
            store.close()
        finally:
            self._complete = False
            self.required_chars = None
            if not self.run_config.keep_store:
                remove_store_files(self.run_config.store_dsn)
            log.info("Pipeline closed")

    def __enter__(self) -> "TrainingPipeline":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()

    @property
    def store(self) -> CorpusStore:
        if self._store is None:
            raise RuntimeError("Pipeline not open. Call open() or use it as a context manager.")
        return self._store

    @property
    def complete(self) -> bool:
        return self._complete

    # ------------- ingestion -------------

    def load_sentences(self, source: SourceLike) -> Status:
        """
        Ingest `source` into the store, at most input_sentence_size sentences.

        Empty lines and lines longer than max_sentence_length bytes are
        skipped. With deduplicate, identical texts share one record whose
        count is the number of observations (indices follow first
        appearance). Existing records are found through the store, so a
        resumed store merges too and only one batch is buffered. A failed
        load leaves the corpus marked incomplete.
        """
        src = self._as_source(source)
        cfg = self.config
        store = self.store
        self._complete = False
        self.required_chars = None
        cap = cfg.input_sentence_size
        batch_size = max(1, self.run_config.insert_batch_size)
        verbose = self.run_config.verbose or CFG.verbose_enabled()

        pending: Dict[str, int] = {}
        plain: List[SentenceRecord] = []
        line_no = 0
        log.info("Loading sentences from %s", src.name)
        try:
            for line in src:
                line_no += 1
                if cap and self.sentences_loaded >= cap:
                    log.info("Reached input_sentence_size=%d; remaining input ignored", cap)
                    break
                parsed = self._parse_line(line, src.name, line_no)
                if parsed is None:
                    self.sentences_skipped += 1
                    continue
                text, count = parsed
                if cfg.deduplicate:
                    pending[text] = pending.get(text, 0) + count
                    if len(pending) >= batch_size:
                        self._flush_counts(pending)
                else:
                    plain.append(SentenceRecord(text, count))
                    if len(plain) >= batch_size:
                        store.bulk_insert(plain)
                        plain.clear()
                self.sentences_loaded += 1
                if verbose and self.sentences_loaded % CFG.PROGRESS_EVERY_SENTENCES == 0:
                    log.info("[loaded] sentences=%d", self.sentences_loaded)
            self._flush_counts(pending)
            if plain:
                store.bulk_insert(plain)
        except (CorpusError, ValueError) as e:
            return self._fail(e)

        if src.skipped:
            self.skipped_sources.extend(src.skipped)
            log.warning("Skipped %d unreadable sources: %s", len(src.skipped), ", ".join(src.skipped))
        status = src.status()
        if not status.is_ok:
            log.error("Ingestion incomplete: %s", status.message)
            return status
        if self.sentences_skipped:
            log.warning("Skipped %d empty or too long sentences", self.sentences_skipped)
        self._complete = True
        log.info("Loaded %d sentences into %d records", self.sentences_loaded, store.size())
        return Status.ok()

    def _as_source(self, source: SourceLike) -> SentenceSource:
        if isinstance(source, SentenceSource):
            return source
        if isinstance(source, (str, os.PathLike)):
            source = [source]
        return MultiFileSentenceSource(source, skip_unreadable=self.config.skip_unreadable_sources)

    def _parse_line(self, line: str, name: str, line_no: int) -> Optional[Tuple[str, int]]:
        count = 1
        if self.config.input_format == "tsv":
            text, tab, freq = line.rpartition("\t")
            if not tab:
                raise ValueError(f"{name}:{line_no}: expected <text>TAB<count>, got {line!r}")
            try:
                count = int(freq)
            except ValueError:
                raise ValueError(f"{name}:{line_no}: count {freq!r} is not an integer") from None
            if count < 1:
                raise ValueError(f"{name}:{line_no}: count must be >= 1, got {count}")
        else:
            text = line
        if not text:
            return None
        if len(text.encode("utf-8", errors="surrogatepass")) > self.config.max_sentence_length:
            log.debug("%s:%d: sentence longer than %d bytes skipped",
                      name, line_no, self.config.max_sentence_length)
            return None
        return text, count

    def _flush_counts(self, pending: Dict[str, int]) -> None:
        """Merge one batch of distinct texts into the store; only the batch is held in memory."""
        if not pending:
            return
        store = self.store
        fresh = []
        for text, count in pending.items():
            idx = store.find(text)
            if idx is None:
                fresh.append(SentenceRecord(text, count))
            else:
                prev = store.get(idx)
                store.update(idx, SentenceRecord(text, prev.count + count))
        store.bulk_insert(fresh)
        pending.clear()

    def _fail(self, exc: BaseException) -> Status:
        status = Status.from_error(exc)
        log.error("Ingestion failed (%s): %s", status.code.value, status.message)
        return status

    # ------------- derived views -------------

    def _require_complete(self) -> None:
        if not self._complete:
            raise RuntimeError("Corpus is incomplete; load_sentences() must succeed first.")

    def derive_required_characters(self) -> Dict[str, int]:
        self._require_complete()
        self.required_chars = derive_required_characters(self.store)
        log.info("Derived %d distinct characters", len(self.required_chars))
        return self.required_chars

    def required_characters(self) -> Dict[str, int]:
        """Required characters after applying character_coverage."""
        if self.required_chars is None:
            self.derive_required_characters()
        kept, _ = select_required_characters(self.required_chars, self.config.character_coverage)
        return kept

    def candidate_ranking(self, max_candidates: Optional[int] = None) -> List[Tuple[str, int]]:
        """
        Frequency-ranked candidates for vocabulary construction: whitespace
        words (or whole sentences when split_by_whitespace is off), meta
        pieces excluded.
        """
        self._require_complete()
        if self.config.split_by_whitespace:
            counts = split_sentences_by_whitespace(self.store)
        else:
            counts = {}
            for _, r in self.store.scan_all():
                counts[r.text] = counts.get(r.text, 0) + r.count
        for mp in self.meta_pieces.values():
            counts.pop(mp.piece, None)
        return top_k(counts, max_candidates)

    def is_valid_piece(self, span: str) -> bool:
        return self.checker.is_valid(span)

    def stats(self) -> dict:
        return {
            "store": self.run_config.store_dsn,
            "records": self.store.size(),
            "sentences_loaded": self.sentences_loaded,
            "sentences_skipped": self.sentences_skipped,
            "skipped_sources": list(self.skipped_sources),
            "complete": self._complete,
            "required_chars": None if self.required_chars is None else len(self.required_chars),
            "meta_pieces": {vid: mp.piece for vid, mp in self.meta_pieces.items()},
        }

    # ------------- one-shot -------------

    def run(self, source: SourceLike) -> Status:
        """Open (if needed), load and derive; failures come back as a Status."""
        try:
            self.open()
            status = self.load_sentences(source)
            if not status.is_ok:
                return status
            self.derive_required_characters()
        except (CorpusError, ValueError) as e:
            return self._fail(e)
        return Status.ok()
