"""
Text matching helpers for metadata-based track resolution.
"""

import re
import unicodedata
from typing import Iterable, Optional


def normalize_string(text: Optional[str]) -> str:
    """Unicode-normalize, casefold and collapse whitespace."""
    if not text:
        return ""

    text = unicodedata.normalize('NFKC', text).casefold()
    text = re.sub(r'\s+', ' ', text.strip())

    return text


def artist_matches(artist: Optional[str], artists: Iterable[str]) -> bool:
    """True when ``artist`` is a case-insensitive substring of any name in ``artists``."""
    needle = normalize_string(artist)
    if not needle:
        return False
    return any(needle in normalize_string(name) for name in artists or [])
