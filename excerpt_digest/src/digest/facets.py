from __future__ import annotations
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from . import config as CFG
from .models import FacetState, ResultDocument

log = logging.getLogger(__name__)


class FacetNavigator:
    """
    Keyword-facet drill-down over the session's result documents.

    Every change recomputes the eligible documents, the co-occurring keyword
    counts and the next candidate facets from scratch. Fetching and resetting
    the indices is left to the caller (DigestEngine).
    """

    def __init__(
        self,
        documents: Sequence[ResultDocument],
        global_weights: Optional[Mapping[int, float]] = None,
        selected: Iterable[int] = (),
        *,
        max_candidates: int = CFG.MAX_CANDIDATES,
    ) -> None:
        self._documents = list(documents)
        self.max_candidates = max_candidates
        self.state = FacetState(
            selected=list(selected),
            global_weight=dict(global_weights or {}),
        )
        self.recompute()

    # ------------- queries -------------

    @property
    def selected(self) -> List[int]:
        return self.state.selected

    @property
    def candidates(self) -> List[int]:
        return self.state.candidates

    @property
    def eligible(self) -> List[ResultDocument]:
        return self.state.eligible

    # ------------- transitions -------------

    def add_facet(self, keyword_id: int) -> Optional[int]:
        """
        Pin `keyword_id`. Returns how many eligible documents to fetch,
        or None when the keyword is already selected.
        """
        if keyword_id in self.state.selected:
            log.info("facet %s already selected", keyword_id)
            return None
        self.state.selected.append(keyword_id)
        self.recompute()
        log.info("facet added: %s -> eligible=%d", keyword_id, len(self.state.eligible))
        return min(CFG.FACET_FETCH_LIMIT, len(self.state.eligible))

    def remove_facet(self, index: int) -> Optional[int]:
        """
        Unpin the facet at position `index`. Returns how many eligible
        documents to fetch, or None when `index` is out of range.
        """
        if index < 0 or index >= len(self.state.selected):
            return None
        removed = self.state.selected.pop(index)
        self.recompute()
        log.info("facet removed: %s -> eligible=%d", removed, len(self.state.eligible))
        if not self.state.selected:
            return min(CFG.INITIAL_FETCH_LIMIT, len(self.state.eligible))
        return min(CFG.FACET_FETCH_LIMIT, len(self.state.eligible))

    def recompute(self) -> None:
        self.find_keyword_occurrence()
        self.find_max_keyword()

    # ------------- recomputation -------------

    def find_keyword_occurrence(self) -> None:
        """
        Eligible documents carry every selected facet. For those, count the
        non-selected keyword tags they carry.
        """
        chosen = set(self.state.selected)
        eligible: List[ResultDocument] = []
        occur: Dict[int, int] = {}

        for doc in self._documents:
            count = sum(1 for k in doc.keywords if k in chosen)
            if count != len(self.state.selected):
                continue
            eligible.append(doc)
            for k in doc.keywords:
                if k in chosen:
                    continue
                occur[k] = occur.get(k, 0) + 1

        self.state.eligible = eligible
        self.state.keyword_occurrence = occur

    def find_max_keyword(self) -> None:
        """
        Greedily pick up to `max_candidates` keywords by occurrence x global
        weight (missing weight = 1). A picked keyword is zeroed in a working
        copy so it cannot be picked again; keywords seen in at most one
        eligible document are dropped. Ties go to the keyword seen first.
        """
        weights = self.state.global_weight
        work = dict(self.state.keyword_occurrence)
        out: List[int] = []

        picked = set()
        for _ in range(min(self.max_candidates, len(work))):
            best_key = None
            best = float("-inf")
            for k, occur in work.items():
                if k in picked:
                    continue
                weighted = occur * weights.get(k, 1)
                if weighted > best:
                    best, best_key = weighted, k
            if best_key is None:
                break
            picked.add(best_key)
            if work[best_key] > 1:
                out.append(best_key)
            work[best_key] = 0

        self.state.candidates = out
