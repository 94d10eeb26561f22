from __future__ import annotations
import argparse
from flask import Flask, request, jsonify, Response

from spcorpus.config import RunConfig, TrainerConfig, STORE_DSN
from spcorpus.errors import RecordNotFound
from spcorpus.pipeline import TrainingPipeline
from spcorpus.ranking import top_k

DEFAULT_K = 50

app = Flask(__name__)
_pipeline: TrainingPipeline | None = None


def _require_pipeline() -> TrainingPipeline:
    if _pipeline is None:
        raise RuntimeError("No pipeline attached. Set spcorpus_web.web._pipeline first.")
    return _pipeline


# ---------- API ----------
@app.get("/api/health")
def api_health():
    return jsonify({"ok": _pipeline is not None})


@app.get("/api/stats")
def api_stats():
    return jsonify(_require_pipeline().stats())


@app.get("/api/sentences/<int:index>")
def api_sentence(index: int):
    try:
        rec = _require_pipeline().store.get(index)
    except RecordNotFound as e:
        return jsonify({"error": str(e)}), 404
    return jsonify({"index": index, "text": rec.text, "count": rec.count})


@app.get("/api/required-chars")
def api_required_chars():
    k = request.args.get("k", DEFAULT_K, type=int)
    try:
        chars = _require_pipeline().required_characters()
    except RuntimeError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify([[ch, freq] for ch, freq in top_k(chars, k)])


@app.get("/api/candidates")
def api_candidates():
    k = request.args.get("k", DEFAULT_K, type=int)
    try:
        rows = _require_pipeline().candidate_ranking(k)
    except RuntimeError as e:
        return jsonify({"error": str(e)}), 409
    return jsonify([[piece, freq] for piece, freq in rows])


@app.get("/api/valid")
def api_valid():
    piece = request.args.get("piece", "", type=str)
    return jsonify({"piece": piece, "valid": _require_pipeline().is_valid_piece(piece)})


# ---------- UI ----------
@app.get("/")
def home():
    html = r"""
<!doctype html>
<html lang="en">
<head>
<meta charset="utf-8" />
<title>Corpus inspector</title>
<style>
body{margin:0;background:#0b0f14;color:#cfd8e3;font:15px/1.45 system-ui,sans-serif}
.container{max-width:900px;margin:24px auto;padding:0 16px}
pre{background:#0f141b;border:1px solid #1c2530;border-radius:12px;padding:12px;white-space:pre-wrap}
input{padding:8px 10px;border-radius:8px;border:1px solid #1c2530;background:#0b1117;color:#cfd8e3}
</style>
</head>
<body>
<div class="container">
<h1>Corpus inspector</h1>
<pre id="stats">Loading…</pre>
<form id="check"><input id="piece" placeholder="Check a piece…" autocomplete="off" /></form>
<pre id="valid"></pre>
<h2>Required characters</h2><pre id="chars"></pre>
<h2>Candidates</h2><pre id="cands"></pre>
</div>
<script>
async function j(u){const r=await fetch(u);return r.json();}
function rows(data){return data.error ? data.error : data.map(([k,v],i)=>`${i+1}\t${v}\t${JSON.stringify(k)}`).join("\n");}
(async()=>{
  document.getElementById("stats").textContent = JSON.stringify(await j("/api/stats"), null, 2);
  document.getElementById("chars").textContent = rows(await j("/api/required-chars?k=30"));
  document.getElementById("cands").textContent = rows(await j("/api/candidates?k=30"));
})();
document.getElementById("check").addEventListener("submit", async (ev)=>{
  ev.preventDefault();
  const p = document.getElementById("piece").value;
  const r = await j("/api/valid?piece=" + encodeURIComponent(p));
  document.getElementById("valid").textContent = `${JSON.stringify(r.piece)} -> ${r.valid ? "valid" : "invalid"}`;
});
</script>
</body>
</html>
"""
    return Response(html, mimetype="text/html")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run the Flask corpus inspector on top of TrainingPipeline")
    ap.add_argument("--input", nargs="+", required=True)
    ap.add_argument("--db", dest="db", default=STORE_DSN)  # DSN: "sqlite:///path" or "memory://"
    ap.add_argument("--tsv", action="store_true")
    ap.add_argument("--no-dedup", action="store_true")
    ap.add_argument("--keep-store", action="store_true")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    global _pipeline
    _pipeline = TrainingPipeline(
        TrainerConfig(input_format="tsv" if args.tsv else "text", deduplicate=not args.no_dedup),
        RunConfig(store_dsn=args.db, keep_store=args.keep_store, verbose=args.verbose),
    )
    try:
        status = _pipeline.run(args.input)
        if not status.is_ok:
            ap.exit(1, f"error: {status.code.value}: {status.message}\n")
        app.run(host=args.host, port=args.port, debug=args.verbose, use_reloader=False)
    finally:
        _pipeline.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
