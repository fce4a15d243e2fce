"""Shared test fixtures: settings, an on-disk LanceDB store and sample chunks."""

from __future__ import annotations

import shutil
from collections.abc import AsyncIterator
from datetime import UTC, datetime
from pathlib import Path

import pytest
import pytest_asyncio

from docinterp.config import Settings
from docinterp.context.schemas import CodeContext
from docinterp.ingestion.schemas import ChunkMetadata, DocumentationChunk
from docinterp.retrieval.vector_store import VectorStore

FIXTURE_WORKSPACE = (
    Path(__file__).resolve().parent / "fixtures" / "docs_workspace"
)

FIXED_TIME = datetime(2024, 1, 1, tzinfo=UTC)


def make_chunk(
    file_path: str,
    heading: str,
    content: str,
    *,
    level: int = 2,
    chunk_id: str | None = None,
) -> DocumentationChunk:
    """Build a valid chunk with a consistent word count."""
    return DocumentationChunk(
        id=chunk_id or f"{file_path}#{heading}".lower().replace(" ", "-"),
        file_path=file_path,
        section_heading=heading,
        content=content,
        metadata=ChunkMetadata(
            level=level,
            word_count=len(content.split()),
            last_modified=FIXED_TIME,
        ),
    )


SUM_CHUNK_TEXT = (
    "The calculateSum function adds two numbers and returns their sum. "
    "It accepts integers or floats and never mutates its arguments."
)


def sum_context(**overrides: object) -> CodeContext:
    """The canonical calculateSum query."""
    fields: dict[str, object] = {
        "selected_text": "function calculateSum(a,b){return a+b;}",
        "file_name": "src/math.js",
        "language": "javascript",
        "function_name": "calculateSum",
    }
    fields.update(overrides)
    return CodeContext.model_validate(fields)


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        index_dir=tmp_path / ".aidocs",
        log_dir=tmp_path / ".aidocs" / "logs",
    )


@pytest_asyncio.fixture
async def store(
    tmp_path: Path, settings: Settings
) -> AsyncIterator[VectorStore]:
    vs = VectorStore(tmp_path / "lancedb", settings)
    await vs.initialize()
    yield vs
    await vs.close()


@pytest.fixture
def workspace_dir(tmp_path: Path) -> Path:
    """A writable copy of the sample documentation workspace."""
    dest = tmp_path / "workspace"
    shutil.copytree(FIXTURE_WORKSPACE, dest)
    return dest
