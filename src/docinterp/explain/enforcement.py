"""Documentation-sufficiency gates applied before any explanation is built.

A request only proceeds to generation when retrieved documentation is
present, relevant to the selected code, substantial, and not a lone
placeholder stub.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from docinterp.config import Settings
from docinterp.constants import (
    CODE_KEYWORDS,
    IMPORT_MATCH_WEIGHT,
    KEYWORD_CONTENT_WEIGHT,
    KEYWORD_HEADING_WEIGHT,
    LENGTH_BONUS_CAP,
    LENGTH_BONUS_WORDS,
    MIN_KEYWORD_CHARS,
    PLACEHOLDER_PHRASES,
    SYMBOL_MATCH_WEIGHT,
)
from docinterp.context.schemas import CodeContext
from docinterp.explain.schemas import GuardrailResult
from docinterp.ingestion.schemas import DocumentationChunk

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"[A-Za-z_$][A-Za-z0-9_$]*")
_PLACEHOLDER_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in PLACEHOLDER_PHRASES) + r")\b"
)


@dataclass(frozen=True)
class ScoredChunk:
    chunk: DocumentationChunk
    relevance: float


@dataclass(frozen=True)
class EnforcementDecision:
    """Result of the gate sequence.

    ``candidates`` are the qualifying, substantial chunks ranked by
    relevance; the first one is the primary source for generation.
    """

    check: GuardrailResult
    qualifying: list[ScoredChunk] = field(
        default_factory=lambda: list[ScoredChunk]()
    )
    candidates: list[ScoredChunk] = field(
        default_factory=lambda: list[ScoredChunk]()
    )

    @property
    def passed(self) -> bool:
        return self.check.passed


def selection_keywords(selected_text: str) -> set[str]:
    """Identifiers in the selection that can carry documentation signal."""
    return {
        word
        for word in (w.lower() for w in _IDENTIFIER_RE.findall(selected_text))
        if len(word) >= MIN_KEYWORD_CHARS and word not in CODE_KEYWORDS
    }


def relevance_score(context: CodeContext, chunk: DocumentationChunk) -> float:
    """Weighted term overlap between the code context and a chunk.

    Symbol names outweigh imports, which outweigh plain keywords; a
    small bonus rewards longer sections.
    """
    content = chunk.content.lower()
    heading = chunk.section_heading.lower()
    score = 0.0

    for symbol in (context.function_name, context.class_name):
        if symbol:
            name = symbol.lower()
            if name in content or name in heading:
                score += SYMBOL_MATCH_WEIGHT

    for imp in context.imports:
        if imp and imp.lower() in content:
            score += IMPORT_MATCH_WEIGHT

    for word in selection_keywords(context.selected_text):
        if word in content:
            score += KEYWORD_CONTENT_WEIGHT
        if word in heading:
            score += KEYWORD_HEADING_WEIGHT

    score += min(chunk.metadata.word_count / LENGTH_BONUS_WORDS, LENGTH_BONUS_CAP)
    return score


def rank_by_relevance(
    context: CodeContext, chunks: list[DocumentationChunk]
) -> list[ScoredChunk]:
    """Highest relevance first; path and heading break ties."""
    scored = [ScoredChunk(c, relevance_score(context, c)) for c in chunks]
    scored.sort(
        key=lambda s: (-s.relevance, s.chunk.file_path, s.chunk.section_heading)
    )
    return scored


def has_placeholder(content: str) -> bool:
    return _PLACEHOLDER_RE.search(content.lower()) is not None


def enforce_documentation(
    context: CodeContext,
    chunks: list[DocumentationChunk],
    settings: Settings,
) -> EnforcementDecision:
    """Run the gates in order; the first failing gate decides."""
    if not chunks:
        return _reject("retrieved_docs", "no documentation retrieved")

    ranked = rank_by_relevance(context, chunks)
    qualifying = [s for s in ranked if s.relevance > settings.min_relevance_score]
    if not qualifying:
        return _reject(
            "relevance",
            f"no chunk scored above {settings.min_relevance_score}",
        )

    substantial = [
        s
        for s in qualifying
        if len(s.chunk.content.strip()) >= settings.min_content_chars
    ]
    if not substantial:
        return _reject(
            "substance",
            f"no relevant chunk has {settings.min_content_chars}+ characters",
            qualifying,
        )

    if len(substantial) == 1 and has_placeholder(substantial[0].chunk.content):
        return _reject(
            "placeholder",
            f"only relevant chunk {substantial[0].chunk.id} is a placeholder",
            qualifying,
        )

    return EnforcementDecision(
        check=GuardrailResult(check_name="documentation", passed=True),
        qualifying=qualifying,
        candidates=substantial,
    )


def _reject(
    check_name: str,
    reason: str,
    qualifying: list[ScoredChunk] | None = None,
) -> EnforcementDecision:
    logger.debug("event=enforcement_rejected check=%s reason=%s", check_name, reason)
    return EnforcementDecision(
        check=GuardrailResult(check_name=check_name, passed=False, reason=reason),
        qualifying=qualifying or [],
    )
