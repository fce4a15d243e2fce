"""Pydantic models for the documentation ingestion flow."""

from datetime import datetime

from pydantic import BaseModel, Field, model_validator

from docinterp.constants import HEADING_EMBEDDING_WEIGHT, HEADING_MAX_LEVEL


class ChunkMetadata(BaseModel):
    """Per-section metadata captured at chunking time."""

    level: int = Field(ge=1, le=HEADING_MAX_LEVEL)
    word_count: int = Field(ge=0)
    last_modified: datetime


class DocumentationChunk(BaseModel):
    """A single heading-delimited documentation section."""

    id: str = Field(min_length=1)
    file_path: str
    section_heading: str
    content: str
    embedding: list[float] | None = None
    metadata: ChunkMetadata

    @model_validator(mode="after")
    def _word_count_matches_content(self) -> "DocumentationChunk":
        actual = len(self.content.split())
        if self.metadata.word_count != actual:
            raise ValueError(
                f"word_count {self.metadata.word_count} does not match "
                f"content ({actual} words)"
            )
        return self

    @property
    def embedding_parts(self) -> list[tuple[str, float]]:
        """Weighted texts the store embeds for this chunk."""
        return [
            (self.section_heading, HEADING_EMBEDDING_WEIGHT),
            (self.content, 1.0),
        ]


class FileReport(BaseModel):
    """Outcome of indexing a single markdown file."""

    file_path: str
    chunks: int = 0
    error: str | None = None


class IndexReport(BaseModel):
    """Output of a workspace indexing pass."""

    files_scanned: int = 0
    files_indexed: int = 0
    chunks_stored: int = 0
    chunks_failed: int = 0
    failed_files: list[FileReport] = Field(
        default_factory=lambda: list[FileReport]()
    )

    @property
    def ok(self) -> bool:
        return not self.failed_files and self.chunks_failed == 0
