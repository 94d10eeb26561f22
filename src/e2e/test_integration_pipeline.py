import os
from pathlib import Path

import pytest
from spcorpus.config import RunConfig, TrainerConfig
from spcorpus.models import SentenceRecord, StatusCode
from spcorpus.pieces import WS_CHAR
from spcorpus.pipeline import TrainingPipeline
from spcorpus.source import IteratorSentenceSource


def _seed(tmp: Path, name: str, text: str) -> str:
    p = tmp / name
    p.write_text(text, encoding="utf-8")
    return str(p)


def _records(pipe: TrainingPipeline):
    return [(i, r.text, r.count) for i, r in pipe.store.scan_all()]


@pytest.mark.e2e
def test_duplicates_merged_in_first_appearance_order(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "a\na\nb\n")
    with TrainingPipeline(TrainerConfig(), RunConfig("memory://")) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert _records(pipe) == [(0, "a", 2), (1, "b", 1)]
        assert pipe.sentences_loaded == 3


@pytest.mark.e2e
def test_without_dedup_every_line_is_a_record(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "a\na\nb\n")
    with TrainingPipeline(TrainerConfig(deduplicate=False), RunConfig("memory://")) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert _records(pipe) == [(0, "a", 1), (1, "a", 1), (2, "b", 1)]


@pytest.mark.e2e
def test_dedup_across_flush_batches(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "x\ny\nz\nx\ny\nx\n")
    run = RunConfig(f"sqlite:///{tmp_path / 'db' / 's.db'}", insert_batch_size=2)
    with TrainingPipeline(TrainerConfig(), run) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert _records(pipe) == [(0, "x", 3), (1, "y", 2), (2, "z", 1)]


@pytest.mark.e2e
def test_input_sentence_size_caps_ingestion(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "".join(f"line {i}\n" for i in range(10)))
    cfg = TrainerConfig(input_sentence_size=4, deduplicate=False)
    with TrainingPipeline(cfg, RunConfig("memory://")) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert [t for _, t, _ in _records(pipe)] == ["line 0", "line 1", "line 2", "line 3"]


@pytest.mark.e2e
def test_empty_and_too_long_lines_skipped(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "ok\n\n" + "é" * 6 + "\nfine\n")
    cfg = TrainerConfig(max_sentence_length=10)
    with TrainingPipeline(cfg, RunConfig("memory://")) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert [t for _, t, _ in _records(pipe)] == ["ok", "fine"]
        assert pipe.sentences_skipped == 2


@pytest.mark.e2e
def test_tsv_counts(tmp_path: Path):
    src = _seed(tmp_path, "c.tsv", "hello world\t5\nhi\t2\nhello world\t1\n")
    with TrainingPipeline(TrainerConfig(input_format="tsv"), RunConfig("memory://")) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert _records(pipe) == [(0, "hello world", 6), (1, "hi", 2)]


@pytest.mark.e2e
def test_bad_tsv_line_fails_with_location(tmp_path: Path):
    src = _seed(tmp_path, "c.tsv", "good\t1\nbad line\n")
    with TrainingPipeline(TrainerConfig(input_format="tsv"), RunConfig("memory://")) as pipe:
        st = pipe.load_sentences([src])
        assert st.code is StatusCode.INVALID_ARGUMENT
        assert "c.tsv:2" in st.message
        assert not pipe.complete


@pytest.mark.e2e
def test_required_characters_and_candidates(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "ab\nab\nab\nb\nb\n")
    with TrainingPipeline(TrainerConfig(character_coverage=1.0), RunConfig("memory://")) as pipe:
        st = pipe.run([src])
        assert st.is_ok
        assert pipe.required_chars == {"a": 3, "b": 5}
        assert pipe.required_characters() == {"b": 5, "a": 3}
        assert pipe.candidate_ranking() == [("ab", 3), ("b", 2)]


@pytest.mark.e2e
def test_candidates_exclude_meta_pieces():
    lines = ["<s> hello world", "hello there", "<unk>"]
    with TrainingPipeline(TrainerConfig(), RunConfig("memory://")) as pipe:
        assert pipe.run(IteratorSentenceSource(lines)).is_ok
        ranked = pipe.candidate_ranking()
        assert ranked == [("hello", 2), ("there", 1), ("world", 1)]
        assert pipe.candidate_ranking(1) == [("hello", 2)]
        assert WS_CHAR in pipe.required_chars


@pytest.mark.e2e
def test_candidates_are_sentences_without_whitespace_split():
    cfg = TrainerConfig(split_by_whitespace=False)
    with TrainingPipeline(cfg, RunConfig("memory://")) as pipe:
        assert pipe.run(IteratorSentenceSource(["a b", "c", "a b"])).is_ok
        assert pipe.candidate_ranking() == [("a b", 2), ("c", 1)]
        assert pipe.is_valid_piece("a b")


@pytest.mark.e2e
def test_strict_source_failure_aborts_run(tmp_path: Path):
    good = _seed(tmp_path, "good.txt", "x\n")
    missing = str(tmp_path / "missing.txt")
    cfg = TrainerConfig(skip_unreadable_sources=False)
    with TrainingPipeline(cfg, RunConfig("memory://")) as pipe:
        st = pipe.run([good, missing])
        assert st.code is StatusCode.SOURCE_READ_FAILURE
        assert "missing.txt" in st.message
        assert not pipe.complete
        with pytest.raises(RuntimeError):
            pipe.derive_required_characters()
        with pytest.raises(RuntimeError):
            pipe.candidate_ranking()


@pytest.mark.e2e
def test_unreadable_source_skipped_by_default(tmp_path: Path):
    good = _seed(tmp_path, "good.txt", "x\ny\n")
    missing = str(tmp_path / "missing.txt")
    with TrainingPipeline(TrainerConfig(), RunConfig("memory://")) as pipe:
        assert pipe.run([missing, good]).is_ok
        assert pipe.complete
        assert pipe.stats()["skipped_sources"] == [missing]
        assert pipe.store.size() == 2


@pytest.mark.e2e
def test_store_files_released_unless_kept(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "a\nb\n")
    db = tmp_path / "run" / "sentences.db"
    with TrainingPipeline(TrainerConfig(), RunConfig(f"sqlite:///{db}")) as pipe:
        assert pipe.run([src]).is_ok
        assert db.exists()
    assert not db.exists()

    kept = RunConfig(f"sqlite:///{db}", keep_store=True)
    with TrainingPipeline(TrainerConfig(), kept) as pipe:
        assert pipe.run([src]).is_ok
    assert db.exists()

    # reopening a kept store resumes it; new records get new indices
    with TrainingPipeline(TrainerConfig(), kept) as pipe:
        assert pipe.complete
        assert pipe.store.size() == 2
        i = pipe.store.insert("c")
        assert i == 2
        assert pipe.store.get(0) == SentenceRecord("a", 1)


def test_store_requires_open_pipeline():
    pipe = TrainingPipeline(TrainerConfig(), RunConfig("memory://"))
    with pytest.raises(RuntimeError):
        pipe.store
    pipe.close()  # closing an unopened pipeline is a no-op


@pytest.mark.e2e
def test_only_one_batch_of_texts_is_buffered(tmp_path: Path):
    lines = [f"sentence {i}" for i in range(500)]
    src = _seed(tmp_path, "c.txt", "\n".join(lines + lines[:50]) + "\n")
    run = RunConfig(f"sqlite:///{tmp_path / 'db' / 's.db'}", insert_batch_size=10)
    with TrainingPipeline(TrainerConfig(), run) as pipe:
        assert pipe.load_sentences([src]).is_ok
        assert pipe.store.size() == 500
        assert pipe.store.get(0) == SentenceRecord("sentence 0", 2)
        assert pipe.store.get(499) == SentenceRecord("sentence 499", 1)
        # duplicates are looked up in the store, not in a per-run text map
        sized = [v for v in vars(pipe).values() if isinstance(v, (dict, list, set))]
        assert all(len(v) <= 10 for v in sized)


@pytest.mark.e2e
def test_resumed_store_merges_known_texts(tmp_path: Path):
    src = _seed(tmp_path, "c.txt", "a\nb\n")
    kept = RunConfig(f"sqlite:///{tmp_path / 'run' / 's.db'}", keep_store=True)
    with TrainingPipeline(TrainerConfig(), kept) as pipe:
        assert pipe.load_sentences([src]).is_ok
    with TrainingPipeline(TrainerConfig(), kept) as pipe:
        assert pipe.load_sentences([_seed(tmp_path, "d.txt", "b\nc\n")]).is_ok
        assert _records(pipe) == [(0, "a", 1), (1, "b", 2), (2, "c", 1)]


@pytest.mark.e2e
def test_verbose_run_leaves_environment_alone(monkeypatch):
    monkeypatch.delenv("SPCORPUS_VERBOSE", raising=False)
    with TrainingPipeline(TrainerConfig(), RunConfig("memory://", verbose=True)) as pipe:
        assert pipe.run(IteratorSentenceSource(["a b"])).is_ok
    assert "SPCORPUS_VERBOSE" not in os.environ
