"""Shared constants, the single source of truth for cross-module values.

All magic strings and numbers that appear in 2+ files belong here.
StrEnum members are str-compatible, so JSON output and log lines
work unchanged.
"""

from __future__ import annotations

from enum import StrEnum

# ── String Enums ─────────────────────────────────────────


class HealthStatus(StrEnum):
    """Component health outcome."""

    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"


class ExplanationOutcome(StrEnum):
    """How a single explanation request terminated.

    ACCEPTED and REJECTED are both successful outcomes from the
    caller's point of view; FALLBACK means an internal error was
    normalized into a result.
    """

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EMPTY_SELECTION = "empty_selection"
    CACHED = "cached"
    FALLBACK = "fallback"
    CANCELLED = "cancelled"


# ── Sentinel Responses ───────────────────────────────────

NOT_DOCUMENTED = "Not documented."
NO_SELECTION = "No code selected for explanation."

# ── Chunking ─────────────────────────────────────────────

INTRODUCTION_HEADING = "Introduction"
UNNAMED_SECTION_ID = "unnamed-section"
MARKDOWN_SUFFIX = ".md"
HEADING_MAX_LEVEL = 6

# ── Embedding / Vector Store ─────────────────────────────

EMBEDDING_DIMENSIONS = 128
EMBEDDING_HARMONICS = 4  # (frequency, phase) pairs per token
EMBEDDING_POSITION_DECAY = 0.01
# Heading tokens count this many times a body token.
HEADING_EMBEDDING_WEIGHT = 3.0
# Function words dropped before embedding.
EMBEDDING_STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "for", "in", "is",
    "it", "its", "of", "on", "or", "the", "to",
})
CHUNKS_TABLE = "documentation_chunks"
LANCEDB_SUBDIR = "lancedb"

# ── Context Extraction ───────────────────────────────────

SURROUNDING_LINES = 5
QUERY_MAX_IMPORTS = 3
SHORT_SELECTION_CHARS = 100

# ── Enforcement ──────────────────────────────────────────

SYMBOL_MATCH_WEIGHT = 10.0
IMPORT_MATCH_WEIGHT = 5.0
KEYWORD_CONTENT_WEIGHT = 2.0
KEYWORD_HEADING_WEIGHT = 3.0
LENGTH_BONUS_WORDS = 50
LENGTH_BONUS_CAP = 1.0
MIN_KEYWORD_CHARS = 4
MIN_SENTENCE_CHARS = 10

PLACEHOLDER_PHRASES: tuple[str, ...] = (
    "todo",
    "tbd",
    "to be determined",
    "placeholder",
    "coming soon",
    "under construction",
    "not implemented",
)

# Identifiers that carry no documentation signal.
CODE_KEYWORDS = frozenset({
    "async", "await", "break", "case", "catch", "class", "const",
    "continue", "default", "delete", "else", "export", "extends",
    "false", "finally", "from", "function", "import", "instanceof",
    "interface", "null", "private", "protected", "public", "require",
    "return", "static", "super", "switch", "this", "throw", "true",
    "typeof", "undefined", "void", "while", "with", "yield",
})

# Common English words ignored by the grounding check.
STOPWORDS = frozenset({
    "about", "after", "also", "been", "before", "being", "could",
    "each", "first", "from", "have", "here", "into", "just", "know",
    "made", "many", "more", "much", "only", "other", "over", "said",
    "should", "some", "still", "than", "that", "their", "them",
    "then", "there", "these", "they", "think", "this", "through",
    "time", "very", "well", "were", "what", "when", "where", "which",
    "will", "with", "would", "your",
})

# Words contributed by the explanation template itself.
TEMPLATE_WORDS = frozenset({
    "class", "code", "documented", "function", "mentioned", "section",
    "source",
})

# ── Confidence / Citations ───────────────────────────────

CONFIDENCE_DOC_CAP = 3
CONFIDENCE_WORDS_NORM = 50
CONFIDENCE_QUALITY_CAP = 1.2
CITATION_SCORE_STEP = 0.2
CITATION_SCORE_FLOOR = 0.1

# ── Health ───────────────────────────────────────────────

MAX_HEALTHY_IN_FLIGHT = 100

# ── Misc ─────────────────────────────────────────────────

ERROR_TRUNCATION_CHARS = 200
