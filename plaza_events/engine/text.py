"""Accent-insensitive landmark text matching."""

from __future__ import annotations

import re
import unicodedata
from typing import Iterable

from .models import Event

_WHITESPACE = re.compile(r"\s+")

PLAZA_VARIANTS = (
    "plaza de espana",
    "plaza espana",
    "pza espana",
    "pza de espana",
    "pza. espana",
    "pza. de espana",
    "pl espana",
    "pl de espana",
    "pl. espana",
    "pl. de espana",
    "plz espana",
)

# Keywords recorded (not gated on) for district-tagged cultural records.
CULTURAL_KEYWORDS = (
    "plaza de espana",
    "plaza espana",
    "templo de debod",
    "parque del oeste",
    "conde duque",
)


def normalize(text: str) -> str:
    """Strip accents, lowercase and collapse whitespace."""

    decomposed = unicodedata.normalize("NFD", text or "")
    stripped = "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")
    return _WHITESPACE.sub(" ", stripped.lower()).strip()


def contains_any(texts: Iterable[str], phrases: Iterable[str]) -> bool:
    phrases = tuple(phrases)
    for text in texts:
        normalized = normalize(text)
        if normalized and any(phrase in normalized for phrase in phrases):
            return True
    return False


def matches_plaza_espana(event: Event) -> bool:
    return contains_any(
        (event.title, event.venue_name, event.address, event.description), PLAZA_VARIANTS
    )


def matches_cultural_keywords(event: Event) -> bool:
    return contains_any((event.venue_name, event.address, event.description), CULTURAL_KEYWORDS)


__all__ = [
    "CULTURAL_KEYWORDS",
    "PLAZA_VARIANTS",
    "contains_any",
    "matches_cultural_keywords",
    "matches_plaza_espana",
    "normalize",
]
