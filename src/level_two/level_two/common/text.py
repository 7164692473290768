from __future__ import annotations

import re
import unicodedata
from typing import Iterable, Optional, Sequence

_WS_RE = re.compile(r"\s+")


def name_key(name: str) -> str:
    """Sort key for names: case-insensitive, accents/diacritics ignored."""
    decomposed = unicodedata.normalize("NFKD", name or "")
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return stripped.casefold()


def matches_query(name: str, query: str) -> bool:
    q = (query or "").strip().casefold()
    if not q:
        return True
    return q in (name or "").casefold()


def normalize_phones(phones: Optional[Iterable[str]]) -> Optional[list[str]]:
    """Trim, drop empties and duplicates (first occurrence wins); None when nothing is left."""
    out: list[str] = []
    for p in phones or []:
        p = (p or "").strip()
        if p and p not in out:
            out.append(p)
    return out or None


def tel_link(phones: Optional[Sequence[str]]) -> Optional[str]:
    if not phones:
        return None
    return _WS_RE.sub("", phones[0]) or None


def blank_to_none(value: Optional[str]) -> Optional[str]:
    value = (value or "").strip()
    return value or None
