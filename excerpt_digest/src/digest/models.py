from __future__ import annotations
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class Occurrence:
    phrase: str               # stemmed phrase
    sentence: str             # raw sentence as annotated by the backend
    keyword_count: int
    snippet: str              # literal fragment inside the sentence (highlight anchor)


@dataclass
class Excerpt:
    """One result document: rendered text plus its occurrences in arrival order."""
    id: int                   # dense allocation index, stable across reordering
    source_id: int            # document id it was fetched for
    summary_text: str
    full_text: str
    occurrences: List[Occurrence] = field(default_factory=list)
    active: bool = True


@dataclass(frozen=True)
class SentenceRef:
    excerpt_id: int
    sentence: str
    keyword_count: int
    snippet: str


@dataclass
class PhraseEntry:
    # word_count and display_text are fixed at first sight of the phrase
    word_count: int
    display_text: str
    sentences: List[SentenceRef] = field(default_factory=list)
    score: float = 0
    seen_sentences: set = field(default_factory=set, repr=False, compare=False)

    @property
    def sentence_count(self) -> int:
        return len(self.sentences)


@dataclass(frozen=True)
class Annotation:
    """One (snippet, marked phrase, word count, sentence, keyword count) group."""
    snippet: str
    marked_phrase: str
    word_count: int
    sentence: str
    keyword_count: int


@dataclass(frozen=True)
class AnnotatedDocument:
    body: str
    summary: str
    annotations: List[Annotation]


@dataclass(frozen=True)
class ResultDocument:
    """A row of the hosting session's result set."""
    doc_id: int
    node_id: int = 0
    term_weight: float = 1
    keywords: FrozenSet[int] = frozenset()


@dataclass
class FacetState:
    selected: List[int] = field(default_factory=list)
    candidates: List[int] = field(default_factory=list)
    keyword_occurrence: Dict[int, int] = field(default_factory=dict)
    global_weight: Dict[int, float] = field(default_factory=dict)
    eligible: List[ResultDocument] = field(default_factory=list)


@dataclass(frozen=True)
class PhrasePos:
    """Placeholder span: where to splice `markup` in, and how many chars it replaces."""
    pos: int
    markup: str
    fill_len: int


@dataclass(frozen=True)
class RankedSentence:
    index: int                # position in the phrase's sentence list
    html: str
    drilldown: bool = False


@dataclass(frozen=True)
class SummaryEntry:
    phrase: str
    display_text: str
    sentence_count: int
    sentences: List[RankedSentence]


@dataclass(frozen=True)
class PhraseDetail:
    phrase: str
    display_text: str
    search_query: str
    sentences: List[RankedSentence]


@dataclass(frozen=True)
class PhraseGroup:
    phrase: str
    display_text: str
    sentence_count: int
    sentences: List[tuple[int, str]]   # (occurrence index, highlighted html)


@dataclass(frozen=True)
class ExcerptView:
    slot: int
    groups: List[PhraseGroup]
    highlighted_text: str


@dataclass(frozen=True)
class SessionConfig:
    query: str
    documents: List[ResultDocument]
    cluster_keywords: str = ""
    global_weights: Dict[int, float] = field(default_factory=dict)
    selected_facets: List[int] = field(default_factory=list)
    annotations: Dict[int, str] = field(default_factory=dict)
    labels: Dict[int, str] = field(default_factory=dict)
    source_dsn: Optional[str] = None
