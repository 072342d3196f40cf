from __future__ import annotations
import logging
from typing import List, Optional, Set

from . import config as CFG
from .DB.excerpts import ExcerptStore
from .DB.phrases import PhraseIndex
from .errors import UnknownPhraseReference
from .markup import remove_markup, render_passage
from .models import (
    ExcerptView,
    PhraseDetail,
    PhraseGroup,
    PhrasePos,
    RankedSentence,
    SummaryEntry,
)

log = logging.getLogger(__name__)

TITLE_END = "</a>"
FOCUS_OPEN = '<span id="focus"><u style="background-color:#E0ECF8;">['
FOCUS_CLOSE = "]</u></span>"


def _list_item(html: str) -> str:
    return f"<ul><li>{html}</li></ul>"


def splice_spans(passage: str, spans: List[PhrasePos]) -> str:
    """Interleave `passage` with the span markup, in text order."""
    out: List[str] = []
    before = 0
    for sp in sorted(spans, key=lambda s: s.pos):
        out.append(passage[before:sp.pos])
        out.append(sp.markup)
        before = sp.pos + sp.fill_len
    out.append(passage[before:])
    return "".join(out)


class SnippetRenderer:
    """Highlighted text for the result list, the summary panel and drill-downs."""

    def __init__(self, excerpts: ExcerptStore, phrases: PhraseIndex) -> None:
        self._excerpts = excerpts
        self._phrases = phrases

    # ------------- sentences of one phrase -------------

    def rank_sentences(self, phrase: str, limit: int, drilldown: bool = False) -> List[RankedSentence]:
        """
        Up to `limit` sentences of `phrase`, highest keyword count first.

        Ties go to the sentence seen first. Sentences whose markup-stripped
        text is noise or repeats an already emitted one are skipped.
        """
        try:
            refs = self._phrases.get(phrase).sentences
        except UnknownPhraseReference:
            log.debug("rank_sentences: unknown phrase %r", phrase)
            return []

        out: List[RankedSentence] = []
        if limit <= 0:
            return out

        taken: Set[int] = set()
        emitted: Set[str] = set()
        for _ in range(len(refs)):
            best, best_id = -1, -1
            for k, ref in enumerate(refs):
                if k in taken:
                    continue
                if ref.keyword_count > best:
                    best, best_id = ref.keyword_count, k
            if best_id < 0:
                break
            taken.add(best_id)

            ref = refs[best_id]
            text = remove_markup(ref.sentence)
            if text in emitted:
                continue
            emitted.add(text)
            if len(text) < CFG.MIN_SENTENCE_LEN:
                continue

            html = _list_item(render_passage(text, ref.snippet, final=True))
            out.append(RankedSentence(best_id, html, drilldown))
            if len(out) >= limit:
                break
        return out

    # ------------- passages -------------

    def highlight_occurrences(self, slot: int, passage: str) -> str:
        """
        Highlight every snippet of the excerpt at `slot` inside `passage`.

        Text before the first '</a>' is the title and is left alone. Snippets
        are located one phrase at a time (each claimed occurrence is dashed
        out so later phrases cannot overlap it), then all spans are spliced
        back in text order.
        """
        try:
            excerpt = self._excerpts.get(slot)
        except UnknownPhraseReference:
            log.debug("highlight_occurrences: no excerpt at slot %s", slot)
            return passage

        cut = passage.find(TITLE_END)
        title, body = (passage[:cut], passage[cut:]) if cut >= 0 else ("", passage)

        spans: List[PhrasePos] = []
        done: Set[str] = set()
        for occ in excerpt.occurrences:
            if occ.snippet in done:
                continue
            done.add(occ.snippet)
            clickable = occ.phrase in self._phrases and self._phrases.get(occ.phrase).sentence_count > 1
            body = render_passage(body, occ.snippet, final=False, phrase=occ.phrase,
                                  clickable=clickable, spans=spans)

        if not spans:
            return passage
        return title + splice_spans(body, spans)

    def excerpt_snippet(self, slot: int, sentence: str) -> str:
        """Full excerpt text with `sentence` marked as the focus."""
        try:
            text = self._excerpts.get(slot).full_text
        except UnknownPhraseReference:
            return sentence
        start = text.find(sentence)
        if start < 0 or not sentence:
            return text
        end = start + len(sentence)
        return text[:start] + FOCUS_OPEN + text[start:end] + FOCUS_CLOSE + text[end:]

    def display_sentence(self, slot: int, k: int) -> str:
        """The k-th occurrence sentence of an excerpt, shown in context."""
        try:
            occ = self._excerpts.get(slot).occurrences[k]
        except (UnknownPhraseReference, IndexError):
            log.debug("display_sentence: no occurrence %s at slot %s", k, slot)
            return ""
        return self.highlight_occurrences(slot, self.excerpt_snippet(slot, occ.sentence))

    def display_phrase_sentence(self, phrase: str, k: int) -> str:
        """The k-th indexed sentence of a phrase, shown in its excerpt."""
        try:
            ref = self._phrases.get(phrase).sentences[k]
            slot = self._excerpts.slot_of(ref.excerpt_id)
        except (UnknownPhraseReference, IndexError):
            log.debug("display_phrase_sentence: %r[%s] is gone", phrase, k)
            return ""
        return self.highlight_occurrences(slot, self.excerpt_snippet(slot, ref.sentence))

    # ------------- summary panel -------------

    def summary(
        self,
        header_num: int = CFG.SUMMARY_HEADERS,
        sentence_num: int = CFG.SUMMARY_SENTENCES,
        drilldown: bool = True,
    ) -> List[SummaryEntry]:
        """
        Cluster summary across all documents.

        Phrases are picked greedily by sentence count, with multi-word phrases
        boosted above any single-word one; phrases found in fewer than two
        sentences never make it into the summary.
        """
        chosen: Set[str] = set()
        out: List[SummaryEntry] = []
        while len(out) < header_num:
            best_phrase: Optional[str] = None
            best = 0
            for phrase, entry in self._phrases.items():
                if phrase in chosen or entry.sentence_count < 2:
                    continue
                score = entry.sentence_count + (min(entry.word_count, CFG.MAX_WORD_SHIFT) << 8)
                if score > best:
                    best, best_phrase = score, phrase
            if best_phrase is None:
                break

            chosen.add(best_phrase)
            entry = self._phrases.get(best_phrase)
            out.append(SummaryEntry(
                phrase=best_phrase,
                display_text=entry.display_text,
                sentence_count=entry.sentence_count,
                sentences=self.rank_sentences(best_phrase, sentence_num, drilldown),
            ))
        return out

    def phrase_detail(self, phrase: str) -> Optional[PhraseDetail]:
        """Drill-down into one phrase: every distinct sentence, best first."""
        try:
            entry = self._phrases.get(phrase)
        except UnknownPhraseReference:
            log.debug("phrase_detail: unknown phrase %r", phrase)
            return None
        return PhraseDetail(
            phrase=phrase,
            display_text=entry.display_text,
            search_query="+".join(phrase.split()),
            sentences=self.rank_sentences(phrase, entry.sentence_count),
        )

    # ------------- one excerpt -------------

    def expand_excerpt(self, slot: int) -> Optional[ExcerptView]:
        """
        Per-excerpt view: its sentences grouped by phrase (phrases seen in
        fewer than MIN_TERM_NUM sentences are hidden), biggest phrases first,
        plus the fully highlighted excerpt text.
        """
        try:
            excerpt = self._excerpts.get(slot)
        except UnknownPhraseReference:
            log.debug("expand_excerpt: no excerpt at slot %s", slot)
            return None

        groups: List[PhraseGroup] = []
        current: Optional[str] = None
        seen: Set[str] = set()
        for i, occ in enumerate(excerpt.occurrences):
            if len(occ.sentence) < CFG.MIN_SENTENCE_LEN or occ.phrase not in self._phrases:
                continue
            entry = self._phrases.get(occ.phrase)
            if entry.sentence_count < CFG.MIN_TERM_NUM:
                continue

            html = render_passage(remove_markup(occ.sentence), occ.snippet, final=True)
            if occ.phrase != current:
                current = occ.phrase
                seen = set()
                groups.append(PhraseGroup(occ.phrase, entry.display_text, entry.sentence_count, []))
            if html in seen:
                continue
            seen.add(html)
            groups[-1].sentences.append((i, html))

        groups.sort(key=lambda g: -g.sentence_count)
        return ExcerptView(slot, groups, self.highlight_occurrences(slot, excerpt.full_text))
