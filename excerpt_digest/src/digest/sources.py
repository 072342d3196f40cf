# digest/sources.py
from __future__ import annotations
import logging
from typing import Mapping, Optional, Protocol

import requests

from . import config as CFG

log = logging.getLogger(__name__)


class AnnotationSource(Protocol):
    def fetch_annotation(
        self,
        doc_id: int,
        query: str,
        node_id: int,
        keywords: Optional[str],
        excerpt_id: int,
    ) -> str: ...


class KeywordSource(Protocol):
    def fetch_label(self, keyword_id: int) -> str: ...


class HttpSources:
    """
    Client for the annotation backend:
      GET {base}/cgi-bin/DocumentQuery?doc=&q=&node=&excerpt=[&keywords=]
      GET {base}/cgi-bin/KeywordQuery?node=
    """

    def __init__(self, base_url: str, *, timeout: int = CFG.HTTP_TIMEOUT,
                 session: Optional[requests.Session] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._http = session or requests.Session()

    def _get(self, endpoint: str, params: dict) -> str:
        url = f"{self.base_url}/cgi-bin/{endpoint}"
        resp = self._http.get(url, params=params, timeout=self.timeout)
        resp.raise_for_status()
        return resp.text

    def fetch_annotation(self, doc_id: int, query: str, node_id: int,
                         keywords: Optional[str], excerpt_id: int) -> str:
        params = {"doc": doc_id, "q": query.lower(), "node": node_id, "excerpt": excerpt_id}
        if keywords is not None:
            params["keywords"] = keywords.lower()
        return self._get("DocumentQuery", params)

    def fetch_label(self, keyword_id: int) -> str:
        return self._get("KeywordQuery", {"node": keyword_id})

    def close(self) -> None:
        self._http.close()


class StaticSources:
    """In-memory collaborator (tests, offline session files)."""

    def __init__(self, annotations: Optional[Mapping[int, str]] = None,
                 labels: Optional[Mapping[int, str]] = None) -> None:
        self.annotations = dict(annotations or {})
        self.labels = dict(labels or {})
        self.requests: list[tuple[int, str]] = []

    def fetch_annotation(self, doc_id: int, query: str, node_id: int,
                         keywords: Optional[str], excerpt_id: int) -> str:
        self.requests.append((doc_id, query))
        try:
            return self.annotations[doc_id]
        except KeyError:
            raise LookupError(f"no annotation for document {doc_id}") from None

    def fetch_label(self, keyword_id: int) -> str:
        return self.labels.get(keyword_id, str(keyword_id))

    def close(self) -> None:
        pass


def make_sources(dsn: str, *, annotations: Optional[Mapping[int, str]] = None,
                 labels: Optional[Mapping[int, str]] = None):
    """
    Factory:
      - http://host, https://host -> HttpSources
      - memory://                 -> StaticSources (seeded with annotations/labels)
    """
    if dsn.startswith(("http://", "https://")):
        log.info("Using annotation backend at %s", dsn)
        return HttpSources(dsn)
    if dsn.startswith("memory://"):
        return StaticSources(annotations, labels)
    raise ValueError(f"Unsupported source DSN: {dsn}")
