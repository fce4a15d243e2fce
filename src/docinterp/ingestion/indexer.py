"""Workspace documentation indexer: scan → chunk → embed → store."""

from __future__ import annotations

import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pathspec
import yaml

from docinterp.config import Settings
from docinterp.constants import MARKDOWN_SUFFIX
from docinterp.explain.cache import ExplanationCache
from docinterp.ingestion.chunker import drop_empty_sections, split_by_headings
from docinterp.ingestion.schemas import (
    DocumentationChunk,
    FileReport,
    IndexReport,
)
from docinterp.resilience.errors import FileTypeError, InputError, StorageError
from docinterp.retrieval.vector_store import VectorStore

_log = logging.getLogger(__name__)

_FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL
)
_DOCS_DIR = "docs"


def strip_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """Split a leading YAML frontmatter block from the markdown body.

    Blocks that are not valid YAML mappings are left in the body.
    """
    match = _FRONTMATTER_RE.match(text)
    if match is None:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1))
    except yaml.YAMLError:
        _log.debug("event=frontmatter_unparseable action=keep_body")
        return {}, text
    if data is None:
        data = {}
    if not isinstance(data, dict):
        return {}, text
    return data, text[match.end():]


class DocumentationIndexer:
    """Indexes README.md and docs/**/*.md of one workspace.

    A single bad file is logged and skipped; it never aborts a pass.
    """

    def __init__(
        self,
        workspace_root: Path,
        store: VectorStore,
        settings: Settings | None = None,
        cache: ExplanationCache | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._root = workspace_root
        self._store = store
        self._settings = settings or Settings()
        self._cache = cache
        self._log = logger or _log
        self._include = pathspec.PathSpec.from_lines(
            "gitignore", self._settings.include_patterns
        )
        self._exclude = pathspec.PathSpec.from_lines(
            "gitignore",
            [*self._settings.exclude_patterns, *_load_gitignore(workspace_root)],
        )

    @property
    def workspace_root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Discovery
    # ------------------------------------------------------------------

    def scan_markdown_files(self) -> list[Path]:
        """README.md at the root plus every markdown file under docs/."""
        candidates: list[Path] = []
        if self._root.is_dir():
            candidates.extend(
                p for p in sorted(self._root.iterdir())
                if p.is_file() and p.name.lower() == "readme.md"
            )
        docs = self._root / _DOCS_DIR
        if docs.is_dir():
            resolved_root = self._root.resolve()
            for p in sorted(docs.rglob("*")):
                if p.is_symlink() and not p.resolve().is_relative_to(
                    resolved_root
                ):
                    continue
                if p.is_file() and _is_markdown(p):
                    candidates.append(p)

        files: list[Path] = []
        for path in candidates:
            rel = self.relative_path(path)
            normalized = rel[: -len(MARKDOWN_SUFFIX)] + MARKDOWN_SUFFIX
            if not self._include.match_file(normalized):
                continue
            if self._exclude.match_file(rel):
                continue
            try:
                size = path.stat().st_size
            except OSError:
                continue
            if size > self._settings.max_file_size_bytes:
                self._log.warning(
                    "event=file_skipped reason=too_large file=%s bytes=%d",
                    rel,
                    size,
                )
                continue
            files.append(path)
        self._log.info("event=markdown_scan files=%d root=%s", len(files), self._root)
        return files

    def relative_path(self, path: Path) -> str:
        """Workspace-relative POSIX path; the bare name for outside files."""
        absolute = path if path.is_absolute() else self._root / path
        try:
            return absolute.resolve().relative_to(self._root.resolve()).as_posix()
        except ValueError:
            return path.name

    # ------------------------------------------------------------------
    # Single file
    # ------------------------------------------------------------------

    def process_file(
        self,
        path: Path | str,
        seen_ids: set[str] | None = None,
    ) -> list[DocumentationChunk]:
        """Read one markdown file and split it into chunks.

        Raises FileNotFoundError, IsADirectoryError or FileTypeError.
        """
        file_path = Path(path)
        if not file_path.is_absolute():
            file_path = self._root / file_path
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")
        if not file_path.is_file():
            raise IsADirectoryError(f"Path is not a file: {file_path}")
        if not _is_markdown(file_path):
            raise FileTypeError(
                f"Invalid file type: {file_path.suffix or file_path.name}. "
                "Only .md files are supported."
            )

        text = file_path.read_text(encoding="utf-8", errors="replace")
        _, body = strip_frontmatter(text)
        modified = datetime.fromtimestamp(file_path.stat().st_mtime, tz=UTC)
        chunks = split_by_headings(
            body,
            self.relative_path(file_path),
            last_modified=modified,
            seen_ids=seen_ids,
        )
        return drop_empty_sections(chunks)

    # ------------------------------------------------------------------
    # Indexing passes
    # ------------------------------------------------------------------

    async def index_workspace(self) -> IndexReport:
        """Rebuild the whole index from the workspace's markdown files."""
        await self._store.initialize()
        files = self.scan_markdown_files()
        await self._store.clear_index()

        report = IndexReport(files_scanned=len(files))
        seen_ids: set[str] = set()
        for path in files:
            rel = self.relative_path(path)
            try:
                chunks = self.process_file(path, seen_ids)
            except (OSError, InputError) as exc:
                self._file_failed(report, rel, exc)
                continue
            if not chunks:
                report.files_indexed += 1
                continue
            try:
                stored = await self._store.store_chunks(chunks)
            except StorageError as exc:
                report.chunks_failed += len(chunks)
                self._file_failed(report, rel, exc)
                continue
            report.files_indexed += 1
            report.chunks_stored += stored.stored
            report.chunks_failed += stored.failed

        if self._cache is not None:
            self._cache.clear()
        self._log.info(
            "event=index_complete files=%d indexed=%d chunks=%d failed=%d",
            report.files_scanned,
            report.files_indexed,
            report.chunks_stored,
            report.chunks_failed,
        )
        return report

    async def index_file(self, path: Path | str) -> FileReport:
        """Replace one file's chunks after it changed on disk."""
        await self._store.initialize()
        file_path = Path(path)
        rel = self.relative_path(file_path)
        seen_ids = await self._store.ids_excluding(rel)
        try:
            chunks = self.process_file(file_path, seen_ids)
        except (OSError, InputError) as exc:
            self._log.warning(
                "event=file_index_failed file=%s error=%s", rel, exc
            )
            return FileReport(file_path=rel, error=str(exc))

        await self._store.delete_file(rel)
        stored = 0
        if chunks:
            try:
                stored = (await self._store.store_chunks(chunks)).stored
            except StorageError as exc:
                self._log.warning(
                    "event=file_index_failed file=%s error=%s", rel, exc
                )
                self._invalidate(rel)
                return FileReport(file_path=rel, error=str(exc))
        self._invalidate(rel)
        self._log.info("event=file_reindexed file=%s chunks=%d", rel, stored)
        return FileReport(file_path=rel, chunks=stored)

    async def remove_file(self, path: Path | str) -> None:
        """Forget a documentation file that was deleted."""
        await self._store.initialize()
        rel = self.relative_path(Path(path))
        await self._store.delete_file(rel)
        self._invalidate(rel)

    def _invalidate(self, rel: str) -> None:
        if self._cache is None:
            return
        self._cache.invalidate_file(rel)
        self._cache.invalidate_ungrounded()

    def _file_failed(
        self, report: IndexReport, rel: str, exc: Exception
    ) -> None:
        self._log.warning("event=file_index_failed file=%s error=%s", rel, exc)
        report.failed_files.append(FileReport(file_path=rel, error=str(exc)))


def _is_markdown(path: Path) -> bool:
    return path.suffix.lower() == MARKDOWN_SUFFIX


def _load_gitignore(root: Path) -> list[str]:
    """Load .gitignore lines; missing or unreadable means none."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []
    try:
        with open(gitignore, encoding="utf-8") as f:
            return f.read().splitlines()
    except OSError:
        return []
