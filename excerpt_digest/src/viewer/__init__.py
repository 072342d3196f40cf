"""Session bootstrap shared by the Flask app and the CLI."""
from __future__ import annotations
import logging
import time

from digest import DigestEngine, load_session
from digest.config import FETCH_WORKERS, TICK_INTERVAL
from digest.sources import make_sources

log = logging.getLogger(__name__)


def open_session(path: str,
                 source: str | None = None,
                 workers: int = FETCH_WORKERS,
                 autotick: bool = False,
                 tick_interval: float = TICK_INTERVAL,
                 verbose: bool = False) -> DigestEngine:
    """
    Load a session file and start fetching.

    `source` overrides the file's collaborator DSN ("http://host" or
    "memory://"); without either, the annotations embedded in the file are used.
    """
    t0 = time.perf_counter()
    cfg = load_session(path)
    dsn = source or cfg.source_dsn or "memory://"
    sources = make_sources(dsn, annotations=cfg.annotations, labels=cfg.labels)

    eng = DigestEngine(cfg, sources, workers=workers, autotick=autotick,
                       tick_interval=tick_interval, verbose=verbose)
    eng.start()
    log.info("[ready] session %s opened in %.2fs", path, time.perf_counter() - t0)
    return eng
