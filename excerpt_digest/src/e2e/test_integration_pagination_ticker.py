import pytest

from digest import DigestEngine, config
from digest.models import ResultDocument, SessionConfig
from digest.sources import StaticSources


def _seed():
    docs = [ResultDocument(100 + i, keywords=frozenset({1})) for i in range(4)]
    annotations = {d.doc_id: f"b`owls`[owl]s`1`owls of {d.doc_id}`1`s" for d in docs}
    cfg = SessionConfig(query="owls", documents=docs, annotations=annotations)
    return cfg, StaticSources(annotations)


@pytest.mark.e2e
def test_tick_paginates_one_document_at_a_time(monkeypatch):
    monkeypatch.setattr(config, "INITIAL_FETCH_LIMIT", 2)
    cfg, sources = _seed()
    eng = DigestEngine(cfg, sources, workers=0)
    try:
        eng.start()
        assert eng.pending == 2

        assert eng.tick() is True
        assert len(eng.excerpts) == 2
        assert eng.pending == 1

        # stale epoch: nothing drained, nothing requested
        assert eng.tick(epoch=eng.epoch + 1) is False
        assert eng.pending == 1

        assert eng.fetch_more() is True
        assert len(eng.excerpts) == 3

        # eligible list exhausted: the tick still drains
        assert eng.tick() is True
        assert eng.pending == 0
        assert [d for d, _ in sources.requests] == [100, 101, 102, 103]
        assert len(eng.excerpts) == 4
    finally:
        eng.shutdown()


@pytest.mark.e2e
def test_ticker_stops_when_epoch_is_superseded():
    cfg, sources = _seed()
    eng = DigestEngine(cfg, sources, workers=0)
    try:
        eng.start()
        t = eng.start_ticker(0.01)
        assert t.epoch == 0

        eng.add_facet(1)
        t.join(timeout=2)
        assert not t.is_alive()
    finally:
        eng.shutdown()


@pytest.mark.e2e
def test_autotick_restarts_ticker_for_new_epoch():
    cfg, sources = _seed()
    eng = DigestEngine(cfg, sources, workers=0, autotick=True, tick_interval=0.01)
    try:
        eng.start()
        first = eng._tickers[-1]
        eng.add_facet(1)
        second = eng._tickers[-1]

        assert second is not first
        assert second.epoch == 1
        first.join(timeout=2)
        assert not first.is_alive()
    finally:
        eng.shutdown()


@pytest.mark.e2e
def test_shutdown_stops_tickers_and_further_fetches():
    cfg, sources = _seed()
    eng = DigestEngine(cfg, sources, workers=2, autotick=True, tick_interval=0.01)
    eng.start()
    tickers = list(eng._tickers)
    extra = eng.start_ticker(0.01)

    eng.shutdown()
    for t in tickers + [extra]:
        assert not t.is_alive()

    assert eng.tick() is False
    assert eng.fetch_more() is False
    eng.add_facet(1)
    assert eng.pending == 0
    assert eng._tickers == []
