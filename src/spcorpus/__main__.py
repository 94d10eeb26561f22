from __future__ import annotations
import argparse, json, sys

from .config import RunConfig, TrainerConfig, STORE_DSN
from .pipeline import TrainingPipeline
from .ranking import top_k


def _print_table(title: str, rows) -> None:
    print(title)
    if not rows:
        print("  (empty)"); return
    print("#    Freq        Item")
    for i, (item, freq) in enumerate(rows, 1):
        print(f"{i:<4} {freq:<11} {item!r}")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Load a sentence corpus and show ranked views")
    p.add_argument("--input", nargs="+", required=True, help="Text files, one sentence per line")
    p.add_argument("--db", default=STORE_DSN, help='Store DSN: "sqlite:///path" or "memory://"')
    p.add_argument("--top", type=int, default=20, help="Rows per table")
    p.add_argument("--tsv", action="store_true", help="Input lines are <text>TAB<count>")
    p.add_argument("--no-dedup", action="store_true", help="Store every observation as its own record")
    p.add_argument("--max-sentences", type=int, default=0, help="input_sentence_size (0 = no cap)")
    p.add_argument("--max-piece-length", type=int, default=None)
    p.add_argument("--coverage", type=float, default=None, help="character_coverage")
    p.add_argument("--strict", action="store_true", help="Fail on the first unreadable input file")
    p.add_argument("--keep-store", action="store_true", help="Keep the on-disk store after the run")
    p.add_argument("--json", action="store_true", help="Emit JSON")
    p.add_argument("--verbose", action="store_true")
    args = p.parse_args(argv)

    overrides = {}
    if args.max_piece_length is not None:
        overrides["max_sentencepiece_length"] = args.max_piece_length
    if args.coverage is not None:
        overrides["character_coverage"] = args.coverage
    try:
        tcfg = TrainerConfig(
            input_format="tsv" if args.tsv else "text",
            deduplicate=not args.no_dedup,
            input_sentence_size=args.max_sentences,
            skip_unreadable_sources=not args.strict,
            **overrides,
        )
    except ValueError as e:
        p.error(str(e))
    rcfg = RunConfig(store_dsn=args.db, keep_store=args.keep_store, verbose=args.verbose)

    # run() opens the store, so a bad --db comes back as a failed Status
    pipe = TrainingPipeline(tcfg, rcfg)
    try:
        status = pipe.run(args.input)
        if not status.is_ok:
            print(f"error: {status.code.value}: {status.message}", file=sys.stderr)
            return 1
        chars = pipe.required_characters()
        ranked_chars = top_k(chars, args.top)
        candidates = pipe.candidate_ranking(args.top)
        stats = pipe.stats()
    finally:
        pipe.close()

    if args.json:
        print(json.dumps({
            "stats": stats,
            "required_chars": ranked_chars,
            "candidates": candidates,
        }, ensure_ascii=False, indent=2))
    else:
        print(f"records={stats['records']} loaded={stats['sentences_loaded']} "
              f"skipped={stats['sentences_skipped']}")
        _print_table("Required characters", ranked_chars)
        _print_table("Candidates", candidates)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
