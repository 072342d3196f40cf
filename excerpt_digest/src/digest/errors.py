from __future__ import annotations


class DigestError(Exception):
    """Base class for recoverable session errors. None of them is fatal."""


class MalformedAnnotation(DigestError):
    """Annotation payload too short, or a phrase group is truncated/unparseable."""


class UnknownPhraseReference(DigestError):
    """A phrase, slot or sentence index is no longer present (e.g. after a reset)."""
