"""
Ranking and summarization core for an incremental multi-document result viewer.

As annotated documents arrive, phrases and sentences are indexed per session,
documents are ranked with a two-pass feedback score, phrases are aggregated
into a cluster summary, and highlighted snippets are produced for display.
Keyword facets narrow the result set; every facet change resets the session
indices and starts a new fetch epoch.

Example Usage:
    from digest import DigestEngine, load_session

    eng = DigestEngine(load_session("session.json"))
    eng.start()
    eng.settle()
    for entry in eng.summary():
        print(entry.display_text, entry.sentence_count)
    eng.shutdown()
"""

from .engine import DigestEngine, Ticker
from .errors import DigestError, MalformedAnnotation, UnknownPhraseReference
from .loader import load_session, parse_annotation, session_from_dict

__version__ = "1.0.0"
__all__ = [
    "DigestEngine",
    "Ticker",
    "DigestError",
    "MalformedAnnotation",
    "UnknownPhraseReference",
    "load_session",
    "parse_annotation",
    "session_from_dict",
]
