import pytest

from digest import DigestEngine
from digest.models import ResultDocument, SessionConfig
from digest.sources import StaticSources
from viewer.web import app as flask_app


def _seed() -> DigestEngine:
    docs = [ResultDocument(200 + i, keywords=frozenset({7, 8})) for i in range(3)]
    annotations = {
        d.doc_id: (
            f"<a href='#'>Doc {d.doc_id}</a> cats rest number {d.doc_id}. cats play number {d.doc_id}."
            f"`cats`[cat]s`1`cats rest number {d.doc_id}`2"
            f"`cats`[cat]s`1`cats play number {d.doc_id}`1"
            f"`summary of {d.doc_id}"
        )
        for d in docs
    }
    cfg = SessionConfig(query="cats", documents=docs, annotations=annotations,
                        labels={7: "house^cat", 8: "pet"})
    eng = DigestEngine(cfg, StaticSources(annotations, cfg.labels), workers=0)
    eng.start()
    return eng


@pytest.mark.e2e
def test_frontend_read_routes():
    eng = _seed()

    import viewer.web as webmod
    webmod._engine = eng
    client = flask_app.test_client()
    try:
        r = client.get("/api/health")
        assert r.status_code == 200
        assert r.get_json()["ok"] is True

        r = client.get("/api/excerpts")
        data = r.get_json()
        assert data["caption"] == "cats"
        assert len(data["excerpts"]) == 3
        for key in ("slot", "excerpt_id", "doc_id", "summary"):
            assert key in data["excerpts"][0]

        r = client.get("/api/summary?headers=1&sentences=2")
        summary = r.get_json()
        assert [e["phrase"] for e in summary] == ["cat"]
        assert summary[0]["sentence_count"] == 6
        assert len(summary[0]["sentences"]) == 2

        r = client.get("/api/phrase?p=cat")
        assert r.status_code == 200
        assert r.get_json()["search_query"] == "cat"
        assert client.get("/api/phrase?p=zebra").status_code == 404

        r = client.get("/api/phrase/sentence?p=cat&k=0")
        assert 'id="focus"' in r.get_json()["html"]

        r = client.get("/api/excerpt/0")
        assert r.status_code == 200
        view = r.get_json()
        assert view["slot"] == 0
        assert [g["phrase"] for g in view["groups"]] == ["cat"]
        assert client.get("/api/excerpt/99").status_code == 404

        r = client.get("/api/excerpt/0/sentence/1")
        assert "data-phrase" in r.get_json()["html"]
        assert client.get("/api/excerpt/0/sentence/9").get_json()["html"] == ""

        r = client.get("/")
        assert r.status_code == 200
        assert b"summary of 200" in r.data
    finally:
        eng.shutdown()


@pytest.mark.e2e
def test_frontend_facet_routes():
    eng = _seed()

    import viewer.web as webmod
    webmod._engine = eng
    client = flask_app.test_client()
    try:
        r = client.get("/api/facets")
        facets = r.get_json()
        assert facets["selected"] == []
        assert facets["eligible"] == 3
        assert {c["keyword_id"] for c in facets["candidates"]} == {7, 8}

        assert client.post("/api/facets", json={}).status_code == 400

        r = client.post("/api/facets", json={"keyword_id": 7})
        assert r.get_json() == {"changed": True, "epoch": 1}
        r = client.get("/api/excerpts")
        assert r.get_json()["caption"] == "house^cat+"
        assert len(r.get_json()["excerpts"]) == 3

        r = client.delete("/api/facets/5")
        assert r.get_json()["changed"] is False
        r = client.delete("/api/facets/0")
        assert r.get_json() == {"changed": True, "epoch": 2}

        r = client.post("/api/keywords", json={"text": "tabby"})
        assert r.get_json() == {"changed": True, "epoch": 3}

        r = client.post("/api/more")
        assert r.get_json()["requested"] is True
    finally:
        eng.shutdown()


def test_frontend_without_session_reports_not_ok():
    import viewer.web as webmod
    webmod._engine = None
    client = flask_app.test_client()
    r = client.get("/api/health")
    assert r.status_code == 200
    assert r.get_json() == {"ok": False, "epoch": None}


def test_home_page_escapes_query_and_caption():
    cfg = SessionConfig(query="<script>cats</script>", documents=[])
    eng = DigestEngine(cfg, StaticSources(), workers=0)

    import viewer.web as webmod
    webmod._engine = eng
    client = flask_app.test_client()
    try:
        r = client.get("/")
        assert r.status_code == 200
        assert b"<script>" not in r.data
        assert b"&lt;script&gt;cats&lt;/script&gt;" in r.data
    finally:
        eng.shutdown()
        webmod._engine = None


def test_web_main_defaults_to_configured_workers(monkeypatch):
    import viewer.web as webmod
    from digest.config import FETCH_WORKERS

    seen = {}

    class _Stub:
        def shutdown(self):
            seen["shutdown"] = True

    def fake_open_session(path, **kwargs):
        seen.update(kwargs, path=path)
        return _Stub()

    monkeypatch.setattr(webmod, "open_session", fake_open_session)
    monkeypatch.setattr(flask_app, "run", lambda **kwargs: None)
    try:
        assert webmod.main(["--session", "s.json"]) == 0
    finally:
        webmod._engine = None
    assert seen["path"] == "s.json"
    assert seen["workers"] == FETCH_WORKERS
    assert seen["autotick"] is True
    assert seen["shutdown"] is True
