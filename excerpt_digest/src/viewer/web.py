from __future__ import annotations
import argparse
from dataclasses import asdict

from flask import Flask, Response, jsonify, request
from markupsafe import escape

from digest.config import FETCH_WORKERS, SUMMARY_BOX_HEADERS, SUMMARY_BOX_SENTENCES, TICK_INTERVAL
from digest.engine import DigestEngine
from viewer import open_session

app = Flask(__name__)
_engine: DigestEngine | None = None


def _eng() -> DigestEngine:
    if _engine is None:
        raise RuntimeError("No session. Call open_session() first.")
    # every request first ingests what has arrived
    _engine.drain()
    return _engine

# ---------- API ----------
@app.get("/api/health")
def api_health():
    return jsonify({"ok": _engine is not None, "epoch": _engine.epoch if _engine else None})


@app.get("/api/excerpts")
def api_excerpts():
    eng = _eng()
    return jsonify({"epoch": eng.epoch, "caption": eng.caption,
                    "pending": eng.pending, "excerpts": eng.results()})


@app.get("/api/summary")
def api_summary():
    headers = request.args.get("headers", SUMMARY_BOX_HEADERS, type=int)
    sentences = request.args.get("sentences", SUMMARY_BOX_SENTENCES, type=int)
    entries = _eng().summary(headers, sentences)
    return jsonify([asdict(e) for e in entries])


@app.get("/api/phrase")
def api_phrase():
    phrase = request.args.get("p", "", type=str)
    detail = _eng().renderer.phrase_detail(phrase)
    if detail is None:
        return jsonify({"error": f"unknown phrase: {phrase}"}), 404
    return jsonify(asdict(detail))


@app.get("/api/phrase/sentence")
def api_phrase_sentence():
    phrase = request.args.get("p", "", type=str)
    k = request.args.get("k", 0, type=int)
    return jsonify({"html": _eng().renderer.display_phrase_sentence(phrase, k)})


@app.get("/api/excerpt/<int:slot>")
def api_excerpt(slot: int):
    view = _eng().renderer.expand_excerpt(slot)
    if view is None:
        return jsonify({"error": f"no excerpt at slot {slot}"}), 404
    return jsonify(asdict(view))


@app.get("/api/excerpt/<int:slot>/sentence/<int:k>")
def api_excerpt_sentence(slot: int, k: int):
    return jsonify({"html": _eng().renderer.display_sentence(slot, k)})


@app.get("/api/facets")
def api_facets():
    eng = _eng()
    return jsonify({"selected": eng.breadcrumbs(), "candidates": eng.candidate_labels(),
                    "eligible": len(eng.facets.eligible)})


@app.post("/api/facets")
def api_add_facet():
    data = request.get_json(silent=True) or {}
    if "keyword_id" not in data:
        return jsonify({"error": "keyword_id is required"}), 400
    changed = _eng().add_facet(int(data["keyword_id"]))
    return jsonify({"changed": changed, "epoch": _engine.epoch})


@app.delete("/api/facets/<int:index>")
def api_remove_facet(index: int):
    changed = _eng().remove_facet(index)
    return jsonify({"changed": changed, "epoch": _engine.epoch})


@app.post("/api/keywords")
def api_keywords():
    data = request.get_json(silent=True) or {}
    changed = _eng().add_keywords(str(data.get("text", "")))
    return jsonify({"changed": changed, "epoch": _engine.epoch})


@app.post("/api/more")
def api_more():
    return jsonify({"requested": _eng().fetch_more(), "pending": _engine.pending})

# ---------- UI ----------
@app.get("/")
def home():
    eng = _eng()
    rows = "".join(
        f'<div class="excerpt" data-slot="{r["slot"]}">{r["summary"]}</div>' for r in eng.results()
    )
    html = (
        "<!doctype html><html lang=\"en\"><head><meta charset=\"utf-8\" />"
        f"<title>{escape(eng.config.query)}</title></head><body>"
        f"<h1>{escape(eng.caption)}</h1>{rows or '<p>No excerpts yet.</p>'}</body></html>"
    )
    return Response(html, mimetype="text/html")


def main(argv=None) -> int:
    ap = argparse.ArgumentParser(description="Run the Flask viewer over one query session")
    ap.add_argument("--session", required=True, help="Session JSON file")
    ap.add_argument("--source", default=None, help='Collaborator DSN: "http://host" or "memory://"')
    ap.add_argument("--workers", type=int, default=FETCH_WORKERS)
    ap.add_argument("--tick", type=float, default=TICK_INTERVAL, help="Pagination interval (s)")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    global _engine
    _engine = open_session(args.session, source=args.source, workers=args.workers,
                           autotick=True, tick_interval=args.tick, verbose=args.verbose)

    try:
        app.run(host=args.host, port=args.port, debug=args.verbose)
    finally:
        _engine.shutdown()
    return 0

if __name__ == "__main__":
    raise SystemExit(main())
