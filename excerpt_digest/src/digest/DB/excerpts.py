# digest/DB/excerpts.py
from __future__ import annotations
import logging
from typing import Dict, Iterator, List, Optional, Sequence, Set

from ..errors import UnknownPhraseReference
from ..markup import full_phrase, stem_phrase
from ..models import AnnotatedDocument, Excerpt, Occurrence
from .phrases import PhraseIndex

log = logging.getLogger(__name__)


class ExcerptStore:
    """
    One Excerpt per fetched document, kept in ranked display order.

    Slots are positions in display order. Excerpt ids are dense allocation
    indices that never change; three tables survive reordering:
      remap   : slot -> excerpt id
      lookup  : excerpt id -> slot   (rebuilt from remap after every ranking)
      doc_map : source id -> slot
    """

    def __init__(self, phrases: PhraseIndex) -> None:
        self._phrases = phrases
        self._slots: List[Excerpt] = []
        self.remap: List[int] = []
        self.lookup: Dict[int, int] = {}
        self.doc_map: Dict[int, int] = {}
        self._by_source: Dict[int, int] = {}   # source id -> excerpt id

    # ------------- ingest -------------

    def append_occurrences(self, source_id: int, document: AnnotatedDocument, term_weight: float) -> Excerpt:
        """
        Create (or replace) the excerpt for `source_id` and index its phrases.

        First sight of a document allocates the next dense slot and marks it
        active. A repeated fetch of the same document replaces the record in
        place; the phrase index keeps deduplicating by sentence text.
        """
        excerpt_id = self._by_source.get(source_id)
        excerpt = Excerpt(
            id=len(self._slots) if excerpt_id is None else excerpt_id,
            source_id=source_id,
            summary_text=document.summary,
            full_text=document.body,
        )
        if excerpt_id is None:
            slot = len(self._slots)
            self._slots.append(excerpt)
            self.remap.append(excerpt.id)
            self._by_source[source_id] = excerpt.id
        else:
            slot = self.lookup[excerpt_id]
            self._slots[slot] = excerpt
        self.lookup[excerpt.id] = slot
        self.doc_map[source_id] = slot

        seen: Set[str] = set()
        for a in document.annotations:
            phrase = stem_phrase(a.marked_phrase)
            self._phrases.record(
                phrase,
                full_phrase(a.marked_phrase),
                a.sentence,
                a.keyword_count,
                a.snippet,
                a.word_count,
                excerpt.id,
                seen,
                term_weight,
            )
            excerpt.occurrences.append(Occurrence(phrase, a.sentence, a.keyword_count, a.snippet))

        log.debug("excerpt %d (doc %s) at slot %d: %d occurrences",
                  excerpt.id, source_id, slot, len(excerpt.occurrences))
        return excerpt

    # ------------- visibility -------------

    def deactivate(self, slot: int) -> None:
        self.get(slot).active = False

    def activate_all(self) -> None:
        for e in self._slots:
            e.active = True

    # ------------- access -------------

    def get(self, slot: int) -> Excerpt:
        if slot < 0 or slot >= len(self._slots):
            raise UnknownPhraseReference(f"no excerpt at slot {slot}")
        return self._slots[slot]

    def slot_of(self, excerpt_id: int) -> int:
        try:
            return self.lookup[excerpt_id]
        except KeyError:
            raise UnknownPhraseReference(f"unknown excerpt id {excerpt_id}") from None

    def by_id(self, excerpt_id: int) -> Excerpt:
        return self._slots[self.slot_of(excerpt_id)]

    def slot_for_source(self, source_id: int) -> Optional[int]:
        return self.doc_map.get(source_id)

    def active_excerpts(self) -> List[Excerpt]:
        return [e for e in self._slots if e.active]

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[Excerpt]:
        return iter(self._slots)

    # ------------- reordering (ranking engine) -------------

    def reorder(self, order: Sequence[Excerpt]) -> None:
        """Install a new slot order (a permutation of the current excerpts)."""
        if len(order) != len(self._slots):
            raise ValueError("reorder(): order must be a permutation of all slots")
        self._slots = list(order)
        self.remap = [e.id for e in self._slots]
        self.rebuild_lookup()

    def rebuild_lookup(self) -> None:
        self.lookup = {eid: slot for slot, eid in enumerate(self.remap)}
        self.doc_map = {e.source_id: slot for slot, e in enumerate(self._slots)}

    # ------------- lifecycle -------------

    def reset(self) -> None:
        self._slots = []
        self.remap = []
        self.lookup = {}
        self.doc_map = {}
        self._by_source = {}
