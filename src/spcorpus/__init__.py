"""
Sentence corpus substrate for sentence-piece vocabulary training.

Raw text lines are read from one or more sources, counted into sentence
records, and persisted in a durable keyed store so corpus size is not bound
by memory. On top of the store the package derives the required character
set, validates candidate pieces, and produces deterministic frequency-ranked
views for the vocabulary-construction algorithm.

Main entry points:
    TrainingPipeline: open a store, load sentences, derive views
    make_store(dsn): "sqlite:///path" (durable) or "memory://"
    rank(mapping): value descending, key ascending
    is_valid_piece(span, config)

Example:
    from spcorpus import TrainingPipeline, TrainerConfig, RunConfig

    with TrainingPipeline(TrainerConfig(), RunConfig("sqlite:///run/sentences.db")) as p:
        p.load_sentences(["corpus_a.txt", "corpus_b.txt"]).raise_for_status()
        chars = p.required_characters()
        candidates = p.candidate_ranking(1000)
"""

from .config import RunConfig, TrainerConfig
from .errors import CorpusError, CorruptRecord, RecordNotFound, SourceReadFailure, StoreWriteFailure
from .models import MetaPiece, PieceType, SentenceRecord, Status, StatusCode
from .pieces import PieceValidityChecker, derive_required_characters, is_valid_piece
from .pipeline import TrainingPipeline
from .ranking import rank, top_k
from .source import IteratorSentenceSource, MultiFileSentenceSource, SentenceSource
from .DB.api import CorpusStore, make_store, open_store

__version__ = "0.1.0"
__all__ = [
    "RunConfig", "TrainerConfig",
    "CorpusError", "CorruptRecord", "RecordNotFound", "SourceReadFailure", "StoreWriteFailure",
    "MetaPiece", "PieceType", "SentenceRecord", "Status", "StatusCode",
    "PieceValidityChecker", "derive_required_characters", "is_valid_piece",
    "TrainingPipeline",
    "rank", "top_k",
    "IteratorSentenceSource", "MultiFileSentenceSource", "SentenceSource",
    "CorpusStore", "make_store", "open_store",
]
