"""Keyword, cross-reference and semantic-hash extraction for records."""

from __future__ import annotations

import hashlib
import re

from unified_memory.config.constants import (
    CROSS_REFERENCE_PATTERN,
    KEYWORD_PROPERTY_FIELDS,
    REFERENCE_KEY_PROPERTY_FIELDS,
    SEMANTIC_HASH_BODY_CHARS,
    SEMANTIC_HASH_MIN_WORD_LEN,
)
from unified_memory.models.domain import NormalizedRecord

_WORD = re.compile(r"[a-z0-9]+")


def free_text(record: NormalizedRecord) -> str:
    return " ".join(part for part in (record.title, record.body) if part)


def property_terms(record: NormalizedRecord, fields=KEYWORD_PROPERTY_FIELDS) -> set[str]:
    """Lower-cased values of list-valued properties such as labels and tags."""
    terms: set[str] = set()
    for name in fields:
        values = record.properties.get(name)
        if isinstance(values, str):
            values = [values]
        if not isinstance(values, (list, tuple)):
            continue
        terms.update(str(v).lower() for v in values if v)
    return terms


def find_cross_references(text: str) -> set[str]:
    return {match.upper() for match in CROSS_REFERENCE_PATTERN.findall(text)}


def extract_keywords(record: NormalizedRecord, vocabulary: tuple[str, ...]) -> set[str]:
    """Labels/tags/keywords, vocabulary terms in the text, and cross-reference ids."""
    text = free_text(record)
    words = set(_WORD.findall(text.lower()))
    keywords = property_terms(record)
    keywords.update(term for term in vocabulary if term in words)
    keywords.update(find_cross_references(text))
    return keywords


def reference_keys(record: NormalizedRecord) -> set[str]:
    """Identifiers other records may use to mention this one."""
    keys = {record.local_id.upper()}
    for name in REFERENCE_KEY_PROPERTY_FIELDS:
        value = record.properties.get(name)
        if isinstance(value, str) and value:
            keys.add(value.upper())
    return keys


def normalize_text(text: str) -> str:
    """Lower-case, strip punctuation, drop short words, sort for order independence."""
    cleaned = re.sub(r"[^\w\s]", " ", text.lower())
    words = [w for w in cleaned.split() if len(w) >= SEMANTIC_HASH_MIN_WORD_LEN]
    return " ".join(sorted(words))


def semantic_basis(record: NormalizedRecord) -> str:
    """Normalized title, body prefix and keywords; empty when nothing is hashable."""
    parts = [
        normalize_text(record.title or ""),
        normalize_text((record.body or "")[:SEMANTIC_HASH_BODY_CHARS]),
        " ".join(sorted(property_terms(record, ("keywords",)))),
    ]
    return " | ".join(p for p in parts if p)


def semantic_hash(record: NormalizedRecord) -> str:
    return hashlib.sha256(semantic_basis(record).encode("utf-8")).hexdigest()
