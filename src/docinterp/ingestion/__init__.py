"""Documentation ingestion: scan markdown, split by heading, index."""

from docinterp.ingestion.chunker import (
    drop_empty_sections,
    make_chunk_id,
    split_by_headings,
)
from docinterp.ingestion.schemas import (
    ChunkMetadata,
    DocumentationChunk,
    FileReport,
    IndexReport,
)

__all__ = [
    "ChunkMetadata",
    "DocumentationChunk",
    "FileReport",
    "IndexReport",
    "drop_empty_sections",
    "make_chunk_id",
    "split_by_headings",
]
