"""Split markdown documents into heading-delimited sections."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import UTC, datetime

from docinterp.constants import INTRODUCTION_HEADING, UNNAMED_SECTION_ID
from docinterp.ingestion.schemas import ChunkMetadata, DocumentationChunk

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.+)$")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


@dataclass
class _OpenSection:
    heading: str
    level: int
    lines: list[str] = field(default_factory=lambda: list[str]())


def split_by_headings(
    content: str,
    file_path: str,
    last_modified: datetime | None = None,
    seen_ids: set[str] | None = None,
) -> list[DocumentationChunk]:
    """Split markdown text into one chunk per heading.

    * Every heading line (``#`` to ``######``) closes the open section,
      even an empty one, and opens a new section.
    * Text before the first heading becomes an "Introduction" section,
      created lazily on the first non-blank line.
    * Headings with blank text are skipped; their body stays with the
      previous section.
    * The last open section is always emitted.

    ``seen_ids`` carries ids across files of one indexing pass so
    collisions get a numeric suffix.
    """
    if not content:
        return []

    stamp = last_modified or datetime.now(UTC)
    ids = seen_ids if seen_ids is not None else set[str]()
    sections: list[_OpenSection] = []
    current: _OpenSection | None = None

    for line in content.splitlines():
        match = _HEADING_RE.match(line)
        if match:
            heading = match.group(2).strip()
            if not heading:
                continue
            if current is not None:
                sections.append(current)
            current = _OpenSection(heading=heading, level=len(match.group(1)))
            continue
        if current is None:
            if not line.strip():
                continue
            current = _OpenSection(heading=INTRODUCTION_HEADING, level=1)
        current.lines.append(line)

    if current is not None:
        sections.append(current)

    return [
        _to_chunk(section, file_path, stamp, ids) for section in sections
    ]


def drop_empty_sections(
    chunks: list[DocumentationChunk],
) -> list[DocumentationChunk]:
    """Remove sections with no body, except the Introduction."""
    return [
        c
        for c in chunks
        if c.content or c.section_heading == INTRODUCTION_HEADING
    ]


def make_chunk_id(file_path: str, heading: str, seen: set[str]) -> str:
    """Derive a stable id from path and heading, unique within ``seen``.

    The chosen id is added to ``seen``.
    """
    base = _NON_ALNUM_RE.sub("-", f"{file_path}#{heading}".lower())
    base = base.strip("-") or UNNAMED_SECTION_ID
    candidate = base
    suffix = 1
    while candidate in seen:
        candidate = f"{base}-{suffix}"
        suffix += 1
    seen.add(candidate)
    return candidate


def word_count(text: str) -> int:
    return len(text.split())


def _to_chunk(
    section: _OpenSection,
    file_path: str,
    stamp: datetime,
    seen: set[str],
) -> DocumentationChunk:
    body = "\n".join(section.lines).strip()
    return DocumentationChunk(
        id=make_chunk_id(file_path, section.heading, seen),
        file_path=file_path,
        section_heading=section.heading,
        content=body,
        metadata=ChunkMetadata(
            level=section.level,
            word_count=word_count(body),
            last_modified=stamp,
        ),
    )
