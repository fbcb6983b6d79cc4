"""Fixed constants shared across the engine."""

from __future__ import annotations

import re

MS_PER_DAY = 86_400_000

# Chunking
DEFAULT_MAX_CHUNK_SIZE = 500
DEFAULT_CHUNK_OVERLAP = 50
TITLE_CHUNK_PROPERTIES = ("status", "priority")

# Relation inference
DEFAULT_SIMILARITY_THRESHOLD = 0.85
DEFAULT_KEYWORD_OVERLAP_THRESHOLD = 0.65
DEFAULT_SEMANTIC_WEIGHT = 0.7
DEFAULT_MAX_PAIRS = 200_000

# Domain terms that signal two records talk about the same feature area.
DOMAIN_VOCABULARY = (
    "gmail",
    "slack",
    "discord",
    "email",
    "cc",
    "bcc",
    "inbox",
    "filter",
    "notification",
    "sync",
    "oauth",
    "auth",
    "ui",
    "bug",
    "feature",
    "todo",
    "task",
)

# Issue-tracker style keys such as ENG-42 or TEN-1337.
CROSS_REFERENCE_PATTERN = re.compile(r"\b[A-Za-z][A-Za-z0-9]*-\d+\b")

KEYWORD_PROPERTY_FIELDS = ("labels", "tags", "keywords")
REFERENCE_KEY_PROPERTY_FIELDS = ("identifier", "key")

# relations-field key -> edge type
EXPLICIT_RELATION_KEYS = {
    "triggered_by_ticket": "triggered_by",
    "resulted_in_issue": "resulted_in",
    "linked_issues": "related_to",
    "linked_prs": "related_to",
    "parent_id": "belongs_to",
}

# relations-field keys that name a container rather than a related record
CONTAINER_RELATION_KEYS = frozenset(
    {"thread_id", "channel_id", "project_id", "repo_id", "calendar_id"}
)

# Semantic hash
SEMANTIC_HASH_BODY_CHARS = 500
SEMANTIC_HASH_MIN_WORD_LEN = 3

# Labeling candidate buckets
LABELING_HIGH_THRESHOLD = 0.6
LABELING_MEDIUM_THRESHOLD = 0.35
LABELING_LOW_THRESHOLD = 0.2
LABELING_PAIR_CAP = 500
LABELING_MEDIUM_BONUS = 5
LABELING_LOW_PENALTY = 5
DEFAULT_LABELING_LIMIT = 20

# Temporal
DEFAULT_MAX_AGE_DAYS = 30
DEFAULT_RECENCY_BOOST = 0.1

# Retrieval
DEFAULT_CHUNK_LIMIT = 10
DEFAULT_RELATION_DEPTH = 1
