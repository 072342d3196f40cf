from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from . import config as CFG
from .DB.excerpts import ExcerptStore
from .DB.phrases import PhraseIndex
from .models import Excerpt

log = logging.getLogger(__name__)


@dataclass
class RankedSlot:
    """Excerpt and score moved as one unit; remap/source id travel with the excerpt."""
    excerpt: Excerpt
    score: int


def phrase_runs(excerpt: Excerpt) -> Iterator[str]:
    """
    Yield the phrase of each maximal run of consecutive occurrences.

    Noise occurrences (sentence shorter than MIN_SENTENCE_LEN) are skipped and
    do not break a run.
    """
    current = None
    for occ in excerpt.occurrences:
        if len(occ.sentence) < CFG.MIN_SENTENCE_LEN:
            continue
        if occ.phrase != current:
            current = occ.phrase
            yield occ.phrase


class RankingEngine:
    """
    Two-pass feedback ranking over the active excerpts of one session.

        score(max_occur=5) -> sort -> feedback(top N) -> score(max_occur=6) -> sort

    The feedback step adds each top excerpt's score to the phrases it contains,
    biasing the second pass toward phrases concentrated in top-ranked documents.
    """

    def __init__(self, excerpts: ExcerptStore, phrases: PhraseIndex, *, feedback_top_n: int = CFG.FEEDBACK_TOP_N) -> None:
        self._excerpts = excerpts
        self._phrases = phrases
        self.feedback_top_n = feedback_top_n

    # /* ~~~ per-excerpt relevance from the current phrase scores ~~~ */
    def excerpt_score(self, excerpt: Excerpt, max_occur: int) -> int:
        score = 0
        for phrase in phrase_runs(excerpt):
            if phrase not in self._phrases:
                continue
            entry = self._phrases.get(phrase)
            weight = int(min(max_occur, max(entry.score - CFG.SCORE_OFFSET, 0)))
            score += weight << min(entry.word_count, CFG.MAX_WORD_SHIFT)
        return score

    def score_excerpts(self, max_occur: int) -> List[RankedSlot]:
        """One RankedSlot per slot; inactive slots carry score 0 and are never compared."""
        return [
            RankedSlot(e, self.excerpt_score(e, max_occur) if e.active else 0)
            for e in self._excerpts
        ]

    @staticmethod
    def sort(slots: List[RankedSlot]) -> List[RankedSlot]:
        """
        Stable sort of the active slots by descending score.

        Inactive slots stay where they are; active ones are redistributed over
        the remaining positions. Ties keep their previous slot order.
        """
        positions = [i for i, s in enumerate(slots) if s.excerpt.active]
        ranked = sorted((slots[i] for i in positions), key=lambda s: -s.score)
        out = list(slots)
        for pos, s in zip(positions, ranked):
            out[pos] = s
        return out

    def feedback(self, slots: List[RankedSlot]) -> None:
        top = min(len(slots), self.feedback_top_n)
        for s in slots[:top]:
            if not s.excerpt.active:
                continue
            for phrase in phrase_runs(s.excerpt):
                if phrase in self._phrases:
                    self._phrases.add_score(phrase, s.score)

    # ------------- entry point -------------

    def rank(self, sort: bool = True) -> List[Excerpt]:
        """
        Recompute the display order and return the active excerpts in slot order.

        sort=False is the fast path used between periodic re-ranks: no scoring,
        only the lookup tables are refreshed.
        """
        if sort and len(self._excerpts):
            slots = self.sort(self.score_excerpts(CFG.FIRST_PASS_MAX_OCCUR))
            self.feedback(slots)
            slots = self.sort(self._rescore(slots, CFG.SECOND_PASS_MAX_OCCUR))
            self._excerpts.reorder([s.excerpt for s in slots])
            log.debug("ranked %d excerpts; top scores=%s",
                      len(slots), [s.score for s in slots[:5]])
        else:
            self._excerpts.rebuild_lookup()
        return self._excerpts.active_excerpts()

    def scores(self, max_occur: int = CFG.SECOND_PASS_MAX_OCCUR) -> List[Tuple[int, int]]:
        """(excerpt id, score) in slot order, active excerpts only."""
        return [(s.excerpt.id, s.score) for s in self.score_excerpts(max_occur) if s.excerpt.active]

    def _rescore(self, slots: List[RankedSlot], max_occur: int) -> List[RankedSlot]:
        return [
            RankedSlot(s.excerpt, self.excerpt_score(s.excerpt, max_occur) if s.excerpt.active else 0)
            for s in slots
        ]
