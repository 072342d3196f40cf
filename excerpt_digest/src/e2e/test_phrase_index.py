# src/e2e/test_phrase_index.py

import pytest

from digest.config import MAX_PHRASE_SENTENCES
from digest.DB import ExcerptStore, PhraseIndex
from digest.errors import UnknownPhraseReference
from digest.models import AnnotatedDocument, Annotation


def _record(idx, phrase, sentence, seen, *, excerpt_id=0, weight=2.0, kc=1, words=1, display=None):
    return idx.record(phrase, display or phrase, sentence, kc, phrase, words, excerpt_id, seen, weight)


def test_one_document_scores_once_per_phrase():
    idx = PhraseIndex()
    store = ExcerptStore(idx)
    doc = AnnotatedDocument("body", "sum", [
        Annotation("cats", "[cats]", 1, "cats sleep all day", 1),
        Annotation("cats", "[cats]", 1, "cats purr when happy", 2),
        Annotation("cats", "[cats]", 1, "the cats are fed", 3),
    ])
    store.append_occurrences(5, doc, term_weight=2.5)

    entry = idx.get("cats")
    assert entry.sentence_count == 3
    assert entry.score == 2.5


def test_score_counts_contributing_documents():
    idx = PhraseIndex()
    _record(idx, "dog", "dogs bark loudly", set(), weight=1.5)
    _record(idx, "dog", "dogs dig holes", set(), weight=1.5)
    assert idx.score("dog") == 3.0


def test_duplicate_sentence_is_not_indexed_twice():
    idx = PhraseIndex()
    assert _record(idx, "owl", "owls hoot at night", set(), excerpt_id=0) is True
    assert _record(idx, "owl", "owls hoot at night", set(), excerpt_id=1) is False
    assert idx.get("owl").sentence_count == 1
    assert idx.score("owl") == 2.0


def test_short_sentence_creates_entry_but_no_sentence():
    idx = PhraseIndex()
    assert _record(idx, "ox", "ox", set(), words=1, display="oxen") is False
    assert "ox" in idx
    entry = idx.get("ox")
    assert entry.sentence_count == 0
    assert entry.score == 0
    assert entry.display_text == "oxen"


def test_word_count_and_display_fixed_at_first_sight():
    idx = PhraseIndex()
    _record(idx, "big cat", "big cats roar", set(), words=2, display="big cats")
    _record(idx, "big cat", "a big cat naps", set(), words=3, display="Big Cat")
    entry = idx.get("big cat")
    assert entry.word_count == 2
    assert entry.display_text == "big cats"


def test_score_resets_past_sentence_cap():
    idx = PhraseIndex()
    for i in range(MAX_PHRASE_SENTENCES):
        _record(idx, "the", f"the sentence number {i}", set(), weight=1)
    assert idx.score("the") == MAX_PHRASE_SENTENCES

    _record(idx, "the", "the one sentence too many", set(), weight=1)
    assert idx.get("the").sentence_count == MAX_PHRASE_SENTENCES + 1
    assert idx.score("the") == 0

    # feedback cannot revive a capped phrase
    idx.add_score("the", 50)
    assert idx.score("the") == 0


def test_add_score_and_unknown_phrase():
    idx = PhraseIndex()
    _record(idx, "elk", "elks roam north", set())
    idx.add_score("elk", 3)
    assert idx.score("elk") == 5.0
    assert idx.score("moose") == 0
    with pytest.raises(UnknownPhraseReference):
        idx.get("moose")
    with pytest.raises(UnknownPhraseReference):
        idx.add_score("moose", 1)


def test_iteration_is_first_seen_order_and_reset_clears():
    idx = PhraseIndex()
    for p in ("zebra", "ant", "mole"):
        _record(idx, p, f"{p} sentence here", set())
    assert list(idx) == ["zebra", "ant", "mole"]
    assert len(idx) == 3
    idx.reset()
    assert len(idx) == 0
    assert "zebra" not in idx
