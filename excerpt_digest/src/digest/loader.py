from __future__ import annotations
import json
import logging
import os
from typing import Any, Dict, List

from .errors import MalformedAnnotation
from .models import AnnotatedDocument, Annotation, ResultDocument, SessionConfig

log = logging.getLogger(__name__)

# Progress logging (set DIGEST_VERBOSE=1 to enable)
VERBOSE = os.environ.get("DIGEST_VERBOSE") == "1"

TOKEN_SEP = "`"
GROUP_SIZE = 5


def _int_field(tok: str, what: str) -> int:
    try:
        return int(tok.strip())
    except ValueError:
        raise MalformedAnnotation(f"{what} is not an integer: {tok!r}") from None


def parse_annotation(payload: str) -> AnnotatedDocument:
    """
    Split a DocumentQuery response into its parts.

    Token 0 is the full-excerpt body, token N-1 the summary body; the tokens in
    between form groups of five:
        snippet ` [stem]med phrase ` word count ` sentence ` keyword count
    """
    toks = payload.split(TOKEN_SEP)
    if len(toks) < 2:
        raise MalformedAnnotation(f"expected at least 2 tokens, got {len(toks)}")

    middle = toks[1:-1]
    if len(middle) % GROUP_SIZE:
        raise MalformedAnnotation(
            f"phrase groups must have {GROUP_SIZE} tokens; {len(middle) % GROUP_SIZE} left over"
        )

    annotations: List[Annotation] = []
    for i in range(0, len(middle), GROUP_SIZE):
        snippet, marked, words, sentence, keywords = middle[i:i + GROUP_SIZE]
        annotations.append(Annotation(
            snippet=snippet,
            marked_phrase=marked,
            word_count=_int_field(words, "word count"),
            sentence=sentence,
            keyword_count=_int_field(keywords, "keyword count"),
        ))

    if VERBOSE:
        log.info("[parsed] groups=%d body=%d chars", len(annotations), len(toks[0]))
    return AnnotatedDocument(body=toks[0], summary=toks[-1], annotations=annotations)


# ---------- session files ----------

def _documents(rows: List[Dict[str, Any]]) -> List[ResultDocument]:
    docs: List[ResultDocument] = []
    for row in rows:
        docs.append(ResultDocument(
            doc_id=int(row["doc_id"]),
            node_id=int(row.get("node_id", 0)),
            term_weight=float(row.get("term_weight", 1)),
            keywords=frozenset(int(k) for k in row.get("keywords", [])),
        ))
    return docs


def session_from_dict(data: Dict[str, Any]) -> SessionConfig:
    """Build a SessionConfig from the JSON shape supplied by the hosting page."""
    if "query" not in data:
        raise ValueError("session: 'query' is required")
    return SessionConfig(
        query=str(data["query"]),
        documents=_documents(data.get("documents", [])),
        cluster_keywords=str(data.get("cluster_keywords", "")),
        global_weights={int(k): v for k, v in data.get("global_weights", {}).items()},
        selected_facets=[int(k) for k in data.get("selected_facets", [])],
        annotations={int(k): v for k, v in data.get("annotations", {}).items()},
        labels={int(k): v for k, v in data.get("labels", {}).items()},
        source_dsn=data.get("source"),
    )


def load_session(path: str) -> SessionConfig:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    cfg = session_from_dict(data)
    log.info("Loaded session %s: documents=%d", path, len(cfg.documents))
    return cfg
