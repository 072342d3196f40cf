from .excerpts import ExcerptStore
from .phrases import PhraseIndex

__all__ = ["ExcerptStore", "PhraseIndex"]
