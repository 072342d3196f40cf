from __future__ import annotations
from typing import List, Optional

from markupsafe import escape

from .models import PhrasePos

# Inline highlight used for direct, single-pass display
HIGHLIGHT_OPEN = '<FONT COLOR="#FF8000"><B>'
HIGHLIGHT_CLOSE = "</B></FONT>"

# Placeholder markup (spliced back in by SnippetRenderer.highlight_occurrences)
PLACEHOLDER_OPEN = '<font color="blue"><b>'
PLACEHOLDER_CLOSE = "</b></font>"
FILL_CHAR = "-"


def remove_markup(text: str) -> str:
    """
    Strip the inline tags emitted by the annotation backend.

    The backend only emits <B>, </B>, <FONT ...> and </FONT>; any complete
    <...> tag is dropped. A '<' without a closing '>' is kept together with
    everything after it. Idempotent.
    """
    out: List[str] = []
    i = 0
    n = len(text)
    while i < n:
        lt = text.find("<", i)
        if lt < 0:
            out.append(text[i:])
            break
        gt = text.find(">", lt + 1)
        if gt < 0:
            out.append(text[i:])
            break
        out.append(text[i:lt])
        i = gt + 1
    return "".join(out)


def stem_phrase(marked: str) -> str:
    """'big [cat]s' -> 'cat' (text between the first '[' and the first ']')."""
    start = marked.find("[")
    end = marked.find("]")
    if start < 0 or end < 0:
        return marked
    return marked[start + 1:end]


def full_phrase(marked: str) -> str:
    """'big [cat]s' -> 'big cats'."""
    return marked.replace("[", "", 1).replace("]", "", 1)


def phrase_link(phrase: str, snippet: str, clickable: bool) -> str:
    # snippet is already passage markup; only the attribute needs escaping
    text = f"{PLACEHOLDER_OPEN}{snippet}{PLACEHOLDER_CLOSE}"
    if clickable:
        return f'<a class="phrase" data-phrase="{escape(phrase)}">{text}</a>'
    return text


def render_passage(
    sentence: str,
    snippet: str,
    *,
    final: bool,
    phrase: str = "",
    clickable: bool = False,
    spans: Optional[List[PhrasePos]] = None,
    offset: int = 0,
) -> str:
    """
    Replace every occurrence of the literal `snippet` in `sentence`.

    final=True  -> wrap each occurrence in the inline orange/bold highlight.
    final=False -> overwrite each occurrence with dashes of the same length and
                   append a PhrasePos(offset + position, markup, len) to `spans`,
                   so that the caller can splice all phrases back in text order.
    """
    if not snippet:
        return sentence

    out: List[str] = []
    i = 0
    while True:
        hit = sentence.find(snippet, i)
        if hit < 0:
            break
        out.append(sentence[i:hit])
        if final:
            out.append(HIGHLIGHT_OPEN + snippet + HIGHLIGHT_CLOSE)
        else:
            if spans is not None:
                spans.append(PhrasePos(offset + hit, phrase_link(phrase, snippet, clickable), len(snippet)))
            out.append(FILL_CHAR * len(snippet))
        i = hit + len(snippet)

    if i == 0:
        return sentence
    out.append(sentence[i:])
    return "".join(out)
