"""Extractive explanation synthesis, grounding check and citations."""

from __future__ import annotations

import re

from docinterp.constants import (
    CITATION_SCORE_FLOOR,
    CITATION_SCORE_STEP,
    CONFIDENCE_DOC_CAP,
    CONFIDENCE_QUALITY_CAP,
    CONFIDENCE_WORDS_NORM,
    MIN_SENTENCE_CHARS,
    STOPWORDS,
    TEMPLATE_WORDS,
)
from docinterp.context.schemas import CodeContext
from docinterp.explain.enforcement import ScoredChunk
from docinterp.explain.schemas import Citation
from docinterp.ingestion.schemas import DocumentationChunk

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")
_CODE_WORD_SPLIT_RE = re.compile(r"\W+")
_WORD_RE = re.compile(r"[a-z0-9_$]+")


def split_sentences(content: str) -> list[str]:
    """Sentences longer than the minimum, stripped, in document order."""
    return [
        s.strip()
        for s in _SENTENCE_SPLIT_RE.split(content)
        if len(s.strip()) > MIN_SENTENCE_CHARS
    ]


def select_sentence(context: CodeContext, sentences: list[str]) -> str | None:
    """First sentence sharing a word with the code, else the first one."""
    if not sentences:
        return None
    code_words = [
        w
        for w in _CODE_WORD_SPLIT_RE.split(context.selected_text.lower())
        if len(w) > 2
    ]
    for sentence in sentences:
        lowered = sentence.lower()
        if any(word in lowered for word in code_words):
            return sentence
    return sentences[0]


def subject_phrase(context: CodeContext) -> str:
    if context.function_name:
        return f'The function "{context.function_name}"'
    if context.class_name:
        return f'The class "{context.class_name}"'
    return "This code"


def compose_body(context: CodeContext, primary: DocumentationChunk) -> str:
    """Explanation text without its source marker."""
    sentence = select_sentence(context, split_sentences(primary.content))
    if sentence is not None:
        return f'{subject_phrase(context)} is documented as: "{sentence}".'
    return (
        f"{subject_phrase(context)} is mentioned in the "
        f"{primary.section_heading} section."
    )


def source_marker(chunk: DocumentationChunk) -> str:
    return f"(Source: {chunk.file_path}, {chunk.section_heading})"


def compose_explanation(
    context: CodeContext, primary: DocumentationChunk
) -> tuple[str, str]:
    """Return ``(body, full explanation)`` for the primary chunk."""
    body = compose_body(context, primary)
    return body, f"{body} {source_marker(primary)}"


def meaningful_words(text: str) -> list[str]:
    return [
        w
        for w in _WORD_RE.findall(text.lower())
        if len(w) > 3 and w not in STOPWORDS and w not in TEMPLATE_WORDS
    ]


def grounding_ratio(body: str, docs: list[DocumentationChunk]) -> float:
    """Share of the body's meaningful words found in the documentation."""
    words = meaningful_words(body)
    if not words:
        return 0.0
    corpus = " ".join(
        f"{d.section_heading.lower()} {d.content.lower()}" for d in docs
    )
    matched = sum(1 for w in words if w in corpus)
    return matched / len(words)


def is_grounded(
    body: str, docs: list[DocumentationChunk], min_overlap: float
) -> bool:
    return bool(meaningful_words(body)) and grounding_ratio(body, docs) >= min_overlap


def build_citations(ranked: list[ScoredChunk]) -> list[Citation]:
    """Position-scored citations, highest first."""
    citations = [
        Citation(
            file_path=s.chunk.file_path,
            section_heading=s.chunk.section_heading,
            relevance_score=round(
                max(CITATION_SCORE_FLOOR, 1.0 - CITATION_SCORE_STEP * i), 6
            ),
        )
        for i, s in enumerate(ranked)
    ]
    citations.sort(
        key=lambda c: (-c.relevance_score, c.file_path, c.section_heading)
    )
    return citations


def confidence_score(chunks: list[DocumentationChunk]) -> float:
    """More supporting sections and longer sections raise confidence."""
    if not chunks:
        return 0.0
    base = min(len(chunks) / CONFIDENCE_DOC_CAP, 1.0)
    avg_words = sum(c.metadata.word_count for c in chunks) / len(chunks)
    quality = min(avg_words / CONFIDENCE_WORDS_NORM, CONFIDENCE_QUALITY_CAP)
    return max(0.0, min(base * quality, 1.0))
