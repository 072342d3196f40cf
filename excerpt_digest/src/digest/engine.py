# digest/engine.py
from __future__ import annotations

import logging
import os
import re
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, List, Optional

import requests

from . import config as CFG
from .DB.excerpts import ExcerptStore
from .DB.phrases import PhraseIndex
from .errors import MalformedAnnotation
from .facets import FacetNavigator
from .loader import parse_annotation
from .models import Excerpt, ResultDocument, SessionConfig, SummaryEntry
from .ranking import RankingEngine
from .snippets import SnippetRenderer
from .sources import make_sources

log = logging.getLogger(__name__)


@dataclass
class PendingFetch:
    epoch: int
    doc: ResultDocument
    future: Future


class DigestEngine:
    """
    One query session: glues together
      - the result-set facets (FacetNavigator),
      - the per-session indices (ExcerptStore + PhraseIndex),
      - ranking (RankingEngine) and rendering (SnippetRenderer),
      - the annotation/keyword collaborators (digest.sources).

    Fetches run on worker threads and only produce payloads. Every index
    mutation happens in drain(), under the session lock, in the caller's
    thread. Each fetch is tagged with the epoch it was issued in; reset()
    bumps the epoch so late completions from a superseded facet state are
    dropped.

    Public API (used by CLI/Flask):
      * start():                 first batch of fetches
      * drain() / settle():      ingest completed fetches (settle waits first)
      * add_facet / remove_facet / add_keywords: refine and refetch
      * tick() / fetch_more():   pagination
      * results(), summary(), ...: read side
      * shutdown()
    """

    # ------------- lifecycle -------------

    def __init__(
        self,
        config: SessionConfig,
        sources=None,
        *,
        workers: int = CFG.FETCH_WORKERS,
        feedback_top_n: int = CFG.FEEDBACK_TOP_N,
        autotick: bool = False,
        tick_interval: float = CFG.TICK_INTERVAL,
        verbose: bool = False,
    ) -> None:
        if verbose:
            logging.basicConfig(level=logging.INFO)
            os.environ["DIGEST_VERBOSE"] = "1"

        self.config = config
        self._sources = sources or make_sources(
            config.source_dsn or "memory://",
            annotations=config.annotations,
            labels=config.labels,
        )

        self.phrases = PhraseIndex()
        self.excerpts = ExcerptStore(self.phrases)
        self.ranking = RankingEngine(self.excerpts, self.phrases, feedback_top_n=feedback_top_n)
        self.renderer = SnippetRenderer(self.excerpts, self.phrases)
        self.facets = FacetNavigator(config.documents, config.global_weights, config.selected_facets)

        self.epoch = 0
        self.cluster_keywords = config.cluster_keywords
        self.extra_terms: List[str] = []
        self.caption = config.query
        self.summary_panel: List[SummaryEntry] = []

        self._next_doc = 0                    # next eligible document to paginate in
        self._pending: List[PendingFetch] = []
        self._labels: Dict[int, str] = {}     # keyword id -> raw label, session lifetime
        self._lock = threading.RLock()
        self._executor = ThreadPoolExecutor(max_workers=workers) if workers > 0 else None
        self._autotick = autotick
        self._tick_interval = tick_interval
        self._tickers: List[Ticker] = []
        self._closed = False

    def start(self) -> None:
        with self._lock:
            budget = CFG.FACET_FETCH_LIMIT if self.facets.selected else CFG.INITIAL_FETCH_LIMIT
            self._refetch(min(budget, len(self.facets.eligible)))
        log.info("Session started: query=%r eligible=%d", self.config.query, len(self.facets.eligible))

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            tickers, self._tickers = self._tickers, []
            for t in tickers:
                t.stop()
        try:
            # joined outside the lock: a running tick may be waiting on it
            for t in tickers:
                if t is not threading.current_thread():
                    t.join(timeout=CFG.TICKER_JOIN_TIMEOUT)
            if self._executor is not None:
                self._executor.shutdown(wait=False, cancel_futures=True)
            close = getattr(self._sources, "close", None)
            if callable(close):
                close()
        finally:
            self._pending = []
            log.info("Session shutdown complete")

    def reset(self) -> None:
        """Discard both indices atomically and start a new epoch."""
        with self._lock:
            self.excerpts.reset()
            self.phrases.reset()
            self.summary_panel = []
            self.epoch += 1
            log.info("Reset: epoch=%d", self.epoch)

    # ------------- fetching -------------

    def _submit(self, doc: ResultDocument) -> Future:
        args = (doc.doc_id, self.caption, doc.node_id, self.cluster_keywords,
                len(self.excerpts) + len(self._pending))
        if self._executor is not None:
            return self._executor.submit(self._sources.fetch_annotation, *args)

        # workers=0: run inline; the result still goes through drain()
        fut: Future = Future()
        try:
            fut.set_result(self._sources.fetch_annotation(*args))
        except (requests.RequestException, LookupError, OSError) as exc:
            fut.set_exception(exc)
        return fut

    def _request(self, doc: ResultDocument) -> None:
        if self._closed:
            log.debug("session closed; not fetching doc %s", doc.doc_id)
            return
        self._pending.append(PendingFetch(self.epoch, doc, self._submit(doc)))

    def _refetch(self, count: int) -> None:
        eligible = self.facets.eligible
        for doc in eligible[:count]:
            self._request(doc)
        self._next_doc = count
        if self._autotick and not self._closed:
            self.start_ticker(self._tick_interval)

    def drain(self) -> int:
        """Ingest every completed fetch. Returns the number of excerpts added."""
        added = 0
        with self._lock:
            # one done() check per fetch: a worker may finish mid-scan
            snap = [(p, p.future.done()) for p in self._pending]
            done = [p for p, finished in snap if finished]
            self._pending = [p for p, finished in snap if not finished]
            for p in done:
                if p.epoch != self.epoch:
                    log.debug("dropping stale fetch: doc=%s epoch=%d (now %d)",
                              p.doc.doc_id, p.epoch, self.epoch)
                    continue
                try:
                    payload = p.future.result()
                except (requests.RequestException, LookupError, OSError) as exc:
                    log.warning("fetch failed for doc %s: %s", p.doc.doc_id, exc)
                    continue
                if self._ingest(p.doc, payload) is not None:
                    added += 1
        return added

    def settle(self, timeout: Optional[float] = None) -> int:
        """Wait for the in-flight fetches, then drain them."""
        futures = [p.future for p in self._pending]
        if futures:
            wait(futures, timeout=timeout)
        return self.drain()

    def _ingest(self, doc: ResultDocument, payload: str) -> Optional[Excerpt]:
        try:
            parsed = parse_annotation(payload)
        except MalformedAnnotation as exc:
            log.warning("skipping doc %s: %s", doc.doc_id, exc)
            return None

        excerpt = self.excerpts.append_occurrences(doc.doc_id, parsed, doc.term_weight)
        full = excerpt.id % CFG.RERANK_EVERY == 0
        if full:
            self.summary_panel = self.renderer.summary(CFG.SUMMARY_HEADERS, CFG.SUMMARY_SENTENCES, True)
        self.ranking.rank(sort=full)
        return excerpt

    # ------------- pagination -------------

    def tick(self, epoch: Optional[int] = None) -> bool:
        """
        Periodic step: ingest what has arrived and request the next eligible
        document. Returns False (and does nothing) when `epoch` is stale or
        the session has been shut down.
        """
        with self._lock:
            if self._closed or (epoch is not None and epoch != self.epoch):
                return False
            self.drain()
            if self._next_doc < len(self.facets.eligible):
                self._request(self.facets.eligible[self._next_doc])
                self._next_doc += 1
            return True

    def fetch_more(self) -> bool:
        """Scroll-triggered pagination: same as one tick of the current epoch."""
        return self.tick()

    def start_ticker(self, interval: float = CFG.TICK_INTERVAL) -> "Ticker":
        t = Ticker(self, interval)
        self._tickers = [x for x in self._tickers if x.is_alive()]
        self._tickers.append(t)
        t.start()
        return t

    # ------------- refinement -------------

    def add_facet(self, keyword_id: int) -> bool:
        with self._lock:
            budget = self.facets.add_facet(keyword_id)
            if budget is None:
                return False
            self.reset()
            self.caption = self._facet_caption()
            self._refetch(budget)
            return True

    def remove_facet(self, index: int) -> bool:
        with self._lock:
            budget = self.facets.remove_facet(index)
            if budget is None:
                return False
            self.reset()
            self.caption = self._facet_caption() if self.facets.selected else self.config.query
            self._refetch(budget)
            return True

    def add_keywords(self, text: str) -> bool:
        """Free-text refinement: extend the cluster keyword set and refetch."""
        toks = text.split()
        if not toks:
            return False
        term = "+".join(toks) + "+"
        with self._lock:
            self.cluster_keywords += term
            self.extra_terms.append(term)
            self.reset()
            self._refetch(min(CFG.INITIAL_FETCH_LIMIT, len(self.facets.eligible)))
        return True

    # ------------- visibility -------------

    def hide_excerpt(self, slot: int) -> None:
        with self._lock:
            self.excerpts.deactivate(slot)
            self.ranking.rank(sort=False)

    def show_all(self) -> None:
        with self._lock:
            self.excerpts.activate_all()
            self.ranking.rank(sort=False)

    def rerank(self) -> List[Excerpt]:
        with self._lock:
            return self.ranking.rank(sort=True)

    # ------------- keyword labels -------------

    def label(self, keyword_id: int) -> str:
        """Raw label from the keyword collaborator, cached for the session."""
        raw = self._labels.get(keyword_id)
        if raw is None:
            try:
                raw = self._sources.fetch_label(keyword_id)
            except (requests.RequestException, LookupError, OSError) as exc:
                log.warning("label fetch failed for keyword %s: %s", keyword_id, exc)
                return str(keyword_id)
            self._labels[keyword_id] = raw
        return raw

    def display_label(self, keyword_id: int) -> str:
        return self.label(keyword_id).replace("^", " ")

    def _facet_caption(self) -> str:
        parts = [re.sub(r"\s+", "+", self.label(k)) for k in self.facets.selected[:CFG.MAX_BREADCRUMBS]]
        return "".join(p + "+" for p in parts)

    def breadcrumbs(self) -> List[dict]:
        return [
            {"index": i, "keyword_id": k, "label": "> " + self.display_label(k), "search_query": self.label(k)}
            for i, k in enumerate(self.facets.selected[:CFG.MAX_BREADCRUMBS])
        ]

    def candidate_labels(self) -> List[dict]:
        return [
            {"keyword_id": k, "label": self.display_label(k),
             "occurrence": self.facets.state.keyword_occurrence.get(k, 0)}
            for k in self.facets.candidates[:CFG.MAX_CANDIDATES]
        ]

    # ------------- read side -------------

    def results(self) -> List[dict]:
        with self._lock:
            return [
                {"slot": self.excerpts.slot_of(e.id), "excerpt_id": e.id,
                 "doc_id": e.source_id, "summary": e.summary_text}
                for e in self.excerpts.active_excerpts()
            ]

    def summary(self, header_num: int = CFG.SUMMARY_BOX_HEADERS,
                sentence_num: int = CFG.SUMMARY_BOX_SENTENCES) -> List[SummaryEntry]:
        with self._lock:
            return self.renderer.summary(header_num, sentence_num, drilldown=False)

    @property
    def pending(self) -> int:
        return len(self._pending)


class Ticker(threading.Thread):
    """Calls engine.tick() every `interval` seconds until its epoch is superseded."""

    def __init__(self, engine: DigestEngine, interval: float = CFG.TICK_INTERVAL) -> None:
        super().__init__(daemon=True)
        self._engine = engine
        self._interval = interval
        self.epoch = engine.epoch
        self._halt = threading.Event()

    def run(self) -> None:
        while not self._halt.wait(self._interval):
            if not self._engine.tick(self.epoch):
                log.debug("ticker for epoch %d stopped", self.epoch)
                break

    def stop(self) -> None:
        self._halt.set()
