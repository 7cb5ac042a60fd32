"""Small text normalization helpers."""
from __future__ import annotations

import unicodedata


def strip_diacritics(s: str) -> str:
    decomposed = unicodedata.normalize("NFD", s)
    return "".join(c for c in decomposed if not unicodedata.combining(c))


def fold(s: str) -> str:
    """Case- and accent-insensitive comparison key."""
    return strip_diacritics((s or "").strip()).casefold()
