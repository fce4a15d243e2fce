"""LanceDB-backed store for documentation chunks and their embeddings.

Similarity is computed in-process over every stored row so ranking uses
exactly the same cosine function as the rest of the pipeline.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any

import lancedb
from pydantic import ValidationError

from docinterp.config import Settings
from docinterp.constants import CHUNKS_TABLE, HealthStatus
from docinterp.ingestion.schemas import ChunkMetadata, DocumentationChunk
from docinterp.resilience.errors import (
    EmbeddingError,
    NotInitializedError,
    StorageError,
)
from docinterp.retrieval.embedder import (
    cosine_similarity,
    embed_text,
    embed_weighted,
)

_log = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoreReport:
    """Counts from a single store_chunks() call."""

    stored: int
    failed: int
    failed_ids: list[str] = field(default_factory=lambda: list[str]())


def _quote(value: str) -> str:
    """Quote a string literal for a LanceDB filter expression."""
    return "'" + value.replace("'", "''") + "'"


class VectorStore:
    """Persists chunks with embeddings and answers top-k similarity queries.

    Usage::

        store = VectorStore(Path(".aidocs/lancedb"), settings)
        await store.initialize()
        await store.store_chunks(chunks)
        hits = await store.search_similar("function parseConfig", top_k=5)
    """

    def __init__(
        self,
        db_path: Path,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._db_path = db_path
        self._settings = settings or Settings()
        self._log = logger or _log
        self._db: Any = None
        self._init_task: asyncio.Task[None] | None = None
        self._write_lock = asyncio.Lock()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def is_initialized(self) -> bool:
        return self._db is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the database. Concurrent callers share one attempt."""
        if self._db is not None:
            return
        if self._init_task is None:
            self._init_task = asyncio.ensure_future(self._open())
        task = self._init_task
        try:
            await asyncio.shield(task)
        except StorageError:
            if self._init_task is task:
                self._init_task = None
            raise

    async def _open(self) -> None:
        try:
            self._db_path.mkdir(parents=True, exist_ok=True)
            self._db = await lancedb.connect_async(str(self._db_path))
        except Exception as exc:
            self._log.error(
                "event=vector_store_init_failed path=%s",
                self._db_path,
                exc_info=True,
            )
            raise StorageError(
                f"Failed to open vector store at {self._db_path}: {exc}"
            ) from exc
        self._log.info("event=vector_store_ready path=%s", self._db_path)

    async def close(self) -> None:
        """Release the connection; a later initialize() reopens it."""
        if self._init_task is not None and not self._init_task.done():
            await asyncio.shield(self._init_task)
        self._db = None
        self._init_task = None
        self._log.debug("event=vector_store_closed path=%s", self._db_path)

    def _require_db(self) -> Any:
        if self._db is None:
            raise NotInitializedError("VectorStore not initialized")
        return self._db

    async def _open_table(self) -> Any | None:
        db = self._require_db()
        try:
            names = (await db.list_tables()).tables
            if CHUNKS_TABLE not in names:
                return None
            return await db.open_table(CHUNKS_TABLE)
        except Exception as exc:
            raise StorageError(
                f"Failed to open table {CHUNKS_TABLE}: {exc}"
            ) from exc

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def store_chunks(
        self, chunks: list[DocumentationChunk]
    ) -> StoreReport:
        """Upsert chunks by id, one at a time.

        A bad chunk is logged and counted; the call only fails when a
        non-empty batch stores nothing at all.
        """
        self._require_db()
        if not chunks:
            return StoreReport(stored=0, failed=0)

        stored = 0
        failed_ids: list[str] = []
        async with self._write_lock:
            for chunk in chunks:
                try:
                    await self._upsert(chunk)
                    stored += 1
                except (EmbeddingError, StorageError, ValueError) as exc:
                    failed_ids.append(chunk.id)
                    self._log.warning(
                        "event=chunk_store_failed chunk_id=%s error=%s",
                        chunk.id,
                        exc,
                    )

        if stored == 0:
            raise StorageError(
                f"Failed to store any of {len(chunks)} chunks"
            )
        self._log.info(
            "event=chunks_stored stored=%d failed=%d", stored, len(failed_ids)
        )
        return StoreReport(
            stored=stored, failed=len(failed_ids), failed_ids=failed_ids
        )

    async def _upsert(self, chunk: DocumentationChunk) -> None:
        if not chunk.content.strip():
            raise ValueError("chunk content is empty")
        embedding = chunk.embedding
        if embedding is None:
            embedding = embed_weighted(
                chunk.embedding_parts, self._settings.embedding_dimensions
            )
        if len(embedding) != self._settings.embedding_dimensions:
            raise EmbeddingError(
                f"embedding has {len(embedding)} dimensions, expected "
                f"{self._settings.embedding_dimensions}"
            )

        record = _to_record(chunk, embedding)
        db = self._require_db()
        try:
            table = await self._open_table()
            if table is None:
                await db.create_table(CHUNKS_TABLE, [record])
                return
            await table.delete(f"id = {_quote(chunk.id)}")
            await table.add([record])
        except StorageError:
            raise
        except Exception as exc:
            raise StorageError(
                f"Failed to write chunk {chunk.id}: {exc}"
            ) from exc

    async def delete_file(self, file_path: str) -> None:
        """Remove every chunk that came from ``file_path``."""
        self._require_db()
        async with self._write_lock:
            table = await self._open_table()
            if table is None:
                return
            try:
                await table.delete(f"file_path = {_quote(file_path)}")
            except Exception as exc:
                raise StorageError(
                    f"Failed to delete chunks for {file_path}: {exc}"
                ) from exc
        self._log.info("event=file_chunks_deleted file=%s", file_path)

    async def clear_index(self) -> None:
        """Drop all stored chunks."""
        db = self._require_db()
        async with self._write_lock:
            try:
                names = (await db.list_tables()).tables
                if CHUNKS_TABLE in names:
                    await db.drop_table(CHUNKS_TABLE)
            except Exception as exc:
                raise StorageError(f"Failed to clear index: {exc}") from exc
        self._log.info("event=index_cleared path=%s", self._db_path)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def search_similar(
        self, query: str, top_k: int = 5, focus: str | None = None
    ) -> list[DocumentationChunk]:
        """Chunks most similar to ``query``, best first, scores removed."""
        hits = await self.search_with_scores(query, top_k, focus)
        return [chunk for chunk, _ in hits]

    async def search_with_scores(
        self, query: str, top_k: int = 5, focus: str | None = None
    ) -> list[tuple[DocumentationChunk, float]]:
        """Ranked ``(chunk, similarity)`` pairs above the threshold.

        ``focus`` is a short symbol-only query (function and class
        names). A chunk scores the better of its similarity to ``query``
        and to ``focus``, so a section whose heading names the symbol is
        found even when its prose shares few words with the code.
        """
        self._require_db()
        if isinstance(top_k, bool) or not isinstance(top_k, int) or top_k <= 0:
            raise ValueError(f"top_k must be a positive integer, got {top_k!r}")
        if not query.strip():
            self._log.debug("event=empty_query action=skip")
            return []

        dims = self._settings.embedding_dimensions
        query_vecs = [embed_text(query, dims)]
        if focus and focus.strip():
            query_vecs.append(embed_text(focus, dims))
        rows = await self._read_rows()

        threshold = self._settings.similarity_threshold
        scored: list[tuple[DocumentationChunk, float]] = []
        for row in rows:
            chunk = self._row_to_chunk(row)
            if chunk is None or chunk.embedding is None:
                continue
            try:
                score = max(
                    cosine_similarity(vec, chunk.embedding) for vec in query_vecs
                )
            except ValueError:
                self._log.warning(
                    "event=stored_row_skipped chunk_id=%s reason=dimension",
                    chunk.id,
                )
                continue
            if score >= threshold:
                scored.append((chunk, score))

        scored.sort(key=lambda pair: pair[1], reverse=True)
        limit = min(top_k, self._settings.effective_max_results)
        self._log.debug(
            "event=vector_search rows=%d matched=%d limit=%d focus=%s",
            len(rows),
            len(scored),
            limit,
            bool(focus),
        )
        return scored[:limit]

    async def count(self) -> int:
        table = await self._open_table()
        if table is None:
            return 0
        try:
            return int(await table.count_rows())
        except Exception as exc:
            raise StorageError(f"Failed to count chunks: {exc}") from exc

    async def ids_excluding(self, file_path: str) -> set[str]:
        """Stored chunk ids that belong to other files."""
        rows = await self._read_rows()
        return {
            str(r["id"])
            for r in rows
            if "id" in r and r.get("file_path") != file_path
        }

    async def _read_rows(self) -> list[dict[str, Any]]:
        table = await self._open_table()
        if table is None:
            return []
        try:
            total = int(await table.count_rows())
            if total == 0:
                return []
            rows: list[dict[str, Any]] = (
                await table.query().limit(total).to_list()
            )
        except Exception as exc:
            raise StorageError(f"Failed to read chunks: {exc}") from exc
        return rows

    def _row_to_chunk(
        self, row: dict[str, Any]
    ) -> DocumentationChunk | None:
        try:
            vector = row.get("vector")
            return DocumentationChunk(
                id=str(row["id"]),
                file_path=str(row["file_path"]),
                section_heading=str(row["section_heading"]),
                content=str(row["content"]),
                embedding=(
                    [float(v) for v in vector] if vector is not None else None
                ),
                metadata=ChunkMetadata(
                    level=int(row["level"]),
                    word_count=int(row["word_count"]),
                    last_modified=datetime.fromisoformat(
                        str(row["last_modified"])
                    ),
                ),
            )
        except (KeyError, ValueError, TypeError, ValidationError):
            self._log.warning(
                "event=stored_row_skipped row=%r",
                {k: type(v).__name__ for k, v in row.items()},
            )
            return None

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    async def get_stats(self) -> dict[str, Any]:
        if self._db is None:
            return {
                "chunk_count": 0,
                "initialized": False,
                "db_path": str(self._db_path),
            }
        return {
            "chunk_count": await self.count(),
            "initialized": True,
            "db_path": str(self._db_path),
        }

    async def health_check(self) -> dict[str, Any]:
        """Report store status without raising."""
        issues: list[str] = []
        if self._db is None:
            issues.append("VectorStore not initialized")
        if not self._db_path.exists():
            issues.append("Database directory does not exist")

        stats: dict[str, Any] = {}
        try:
            stats = await self.get_stats()
        except Exception as exc:
            issues.append(f"Failed to get stats: {exc}")

        status = HealthStatus.HEALTHY if not issues else HealthStatus.UNHEALTHY
        self._log.debug(
            "event=vector_store_health status=%s issues=%d",
            status,
            len(issues),
        )
        return {"status": status, "issues": issues, "stats": stats}


def _to_record(
    chunk: DocumentationChunk, embedding: list[float]
) -> dict[str, Any]:
    return {
        "id": chunk.id,
        "file_path": chunk.file_path,
        "section_heading": chunk.section_heading,
        "content": chunk.content,
        "level": chunk.metadata.level,
        "word_count": chunk.metadata.word_count,
        "last_modified": chunk.metadata.last_modified.isoformat(),
        "vector": [float(v) for v in embedding],
    }
