# digest/DB/phrases.py
from __future__ import annotations
from typing import Dict, Iterator, Set

from ..config import MAX_PHRASE_SENTENCES, MIN_SENTENCE_LEN
from ..errors import UnknownPhraseReference
from ..models import PhraseEntry, SentenceRef


class PhraseIndex:
    """
    Session-wide map: stemmed phrase -> accumulated sentence occurrences.

    Iteration order is first-seen order. Sentences are deduplicated per phrase
    by exact raw text, independent of which excerpt contributed them.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, PhraseEntry] = {}

    def record(
        self,
        phrase: str,
        display_text: str,
        sentence: str,
        keyword_count: int,
        snippet: str,
        word_count: int,
        excerpt_id: int,
        seen: Set[str],
        term_weight: float,
    ) -> bool:
        """
        Index one occurrence. Returns True when a new SentenceRef was added.

        `seen` holds the phrases already scored for the document being
        ingested; the term weight is added at most once per phrase per document,
        so the score counts contributing documents rather than repeated sentences.
        """
        entry = self._entries.get(phrase)
        if entry is None:
            entry = PhraseEntry(word_count=word_count, display_text=display_text)
            self._entries[phrase] = entry

        if len(sentence) < MIN_SENTENCE_LEN:
            return False
        if sentence in entry.seen_sentences:
            return False

        entry.seen_sentences.add(sentence)
        entry.sentences.append(SentenceRef(excerpt_id, sentence, keyword_count, snippet))

        if phrase not in seen:
            seen.add(phrase)
            entry.score += term_weight

        # /* ~~~ boilerplate phrases must not saturate the ranking ~~~ */
        if entry.sentence_count > MAX_PHRASE_SENTENCES:
            entry.score = 0
        return True

    # R
    def get(self, phrase: str) -> PhraseEntry:
        try:
            return self._entries[phrase]
        except KeyError:
            raise UnknownPhraseReference(phrase) from None

    def score(self, phrase: str) -> float:
        entry = self._entries.get(phrase)
        return entry.score if entry else 0

    def __contains__(self, phrase: object) -> bool:
        return phrase in self._entries

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def items(self):
        return self._entries.items()

    # U
    def add_score(self, phrase: str, delta: float) -> None:
        entry = self.get(phrase)
        # capped phrases stay at zero, feedback included
        if entry.sentence_count > MAX_PHRASE_SENTENCES:
            return
        entry.score += delta

    # D
    def reset(self) -> None:
        self._entries = {}
