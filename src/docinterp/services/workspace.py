"""One workspace's indexer/engine pair over a shared vector store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from docinterp.config import Settings
from docinterp.context.extractor import extract_context
from docinterp.context.schemas import CodeContext, Selection, SourceDocument
from docinterp.explain.cache import ExplanationCache
from docinterp.explain.engine import ExplanationEngine
from docinterp.explain.schemas import ExplanationResult
from docinterp.ingestion.indexer import DocumentationIndexer
from docinterp.ingestion.schemas import FileReport, IndexReport
from docinterp.logger import RequestLogger
from docinterp.retrieval.vector_store import VectorStore

# Editor language ids by file suffix, for callers that only have a path.
_LANGUAGE_IDS: dict[str, str] = {
    ".js": "javascript",
    ".mjs": "javascript",
    ".cjs": "javascript",
    ".jsx": "javascriptreact",
    ".ts": "typescript",
    ".mts": "typescript",
    ".cts": "typescript",
    ".tsx": "typescriptreact",
}


def language_id_for(path: Path) -> str:
    return _LANGUAGE_IDS.get(path.suffix.lower(), "plaintext")


class Workspace:
    """Owns the persisted index of one workspace.

    The store is only ever written through this object's indexer, so
    there is a single writer per index directory.
    """

    def __init__(
        self,
        root: Path,
        settings: Settings | None = None,
        logger: logging.Logger | None = None,
        request_logger: RequestLogger | None = None,
    ) -> None:
        self.root = root
        self.settings = settings or Settings()
        log = logger or logging.getLogger(__name__)
        self.store = VectorStore(
            self.settings.lancedb_path(root), self.settings, logger=log
        )
        self.cache = ExplanationCache(
            default_ttl=self.settings.cache_ttl_seconds,
            enabled=self.settings.cache_enabled,
            logger=log,
        )
        self.indexer = DocumentationIndexer(
            root, self.store, self.settings, cache=self.cache, logger=log
        )
        self.engine = ExplanationEngine(
            self.store,
            self.settings,
            cache=self.cache,
            logger=log,
            request_logger=request_logger,
        )

    async def open(self) -> None:
        await self.store.initialize()

    async def close(self) -> None:
        await self.store.close()

    async def __aenter__(self) -> Workspace:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def index(self) -> IndexReport:
        return await self.indexer.index_workspace()

    async def reindex_file(self, path: Path | str) -> FileReport:
        return await self.indexer.index_file(path)

    async def explain(
        self,
        context: CodeContext | Mapping[str, Any],
        cancel: asyncio.Event | None = None,
    ) -> ExplanationResult:
        return await self.engine.explain_code(context, cancel=cancel)

    async def explain_selection(
        self,
        document: SourceDocument,
        selection: Selection,
        cancel: asyncio.Event | None = None,
    ) -> ExplanationResult:
        context = extract_context(document, selection)
        return await self.engine.explain_code(context, cancel=cancel)

    def load_document(self, path: Path) -> SourceDocument:
        """Read a source file the way an editor would present it."""
        file_path = path if path.is_absolute() else self.root / path
        text = file_path.read_text(encoding="utf-8", errors="replace")
        return SourceDocument(
            file_name=self.indexer.relative_path(file_path),
            language_id=language_id_for(file_path),
            text=text,
        )

    async def health_check(self) -> dict[str, Any]:
        return await self.engine.health_check()
