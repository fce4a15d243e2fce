"""Tests for workspace scanning and indexing."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from docinterp.config import Settings
from docinterp.explain.cache import ExplanationCache
from docinterp.explain.schemas import Citation, ExplanationResult
from docinterp.ingestion.indexer import DocumentationIndexer, strip_frontmatter
from docinterp.resilience.errors import FileTypeError, StorageError
from docinterp.retrieval.vector_store import VectorStore
from tests.conftest import sum_context


def _indexer(
    root: Path,
    store: VectorStore,
    settings: Settings | None = None,
    cache: ExplanationCache | None = None,
) -> DocumentationIndexer:
    return DocumentationIndexer(root, store, settings or Settings(), cache=cache)


def _rel(indexer: DocumentationIndexer, paths: list[Path]) -> list[str]:
    return [indexer.relative_path(p) for p in paths]


class TestFrontmatter:
    def test_mapping_is_stripped(self) -> None:
        meta, body = strip_frontmatter("---\ntitle: API\n---\n# API\n")
        assert meta == {"title": "API"}
        assert body == "# API\n"

    def test_no_frontmatter(self) -> None:
        assert strip_frontmatter("# Title\n") == ({}, "# Title\n")

    def test_invalid_yaml_kept(self) -> None:
        text = "---\n: [unclosed\n---\nbody"
        assert strip_frontmatter(text) == ({}, text)

    def test_non_mapping_kept(self) -> None:
        text = "---\n- a\n- b\n---\nbody"
        assert strip_frontmatter(text) == ({}, text)

    def test_empty_block(self) -> None:
        assert strip_frontmatter("---\n\n---\nbody") == ({}, "body")


class TestScan:
    def test_finds_readme_and_docs(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        assert _rel(indexer, indexer.scan_markdown_files()) == [
            "README.md",
            "docs/api.md",
            "docs/guide/setup.MD",
        ]

    def test_ignores_markdown_outside_docs(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        (workspace_dir / "src" / "NOTES.md").write_text("# Notes\nhidden")
        (workspace_dir / "CHANGELOG.md").write_text("# Changes\nv1")
        indexer = _indexer(workspace_dir, store)
        names = _rel(indexer, indexer.scan_markdown_files())
        assert "src/NOTES.md" not in names
        assert "CHANGELOG.md" not in names

    def test_exclude_patterns(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(
            workspace_dir, store, Settings(exclude_patterns=["docs/guide/**"])
        )
        assert "docs/guide/setup.MD" not in _rel(
            indexer, indexer.scan_markdown_files()
        )

    def test_gitignore_respected(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        (workspace_dir / ".gitignore").write_text("docs/api.md\n")
        indexer = _indexer(workspace_dir, store)
        assert "docs/api.md" not in _rel(indexer, indexer.scan_markdown_files())

    def test_oversized_files_skipped(
        self,
        workspace_dir: Path,
        store: VectorStore,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        (workspace_dir / "docs" / "huge.md").write_text("# Big\n" + "x" * 2048)
        indexer = _indexer(
            workspace_dir, store, Settings(max_file_size_bytes=1024)
        )
        with caplog.at_level(logging.WARNING):
            names = _rel(indexer, indexer.scan_markdown_files())
        assert "docs/huge.md" not in names
        assert "reason=too_large" in caplog.text

    def test_missing_docs_dir(self, tmp_path: Path, store: VectorStore) -> None:
        (tmp_path / "README.md").write_text("# Hi\nthere")
        indexer = _indexer(tmp_path, store)
        assert _rel(indexer, indexer.scan_markdown_files()) == ["README.md"]


class TestProcessFile:
    def test_chunks_with_frontmatter_removed(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        chunks = _indexer(workspace_dir, store).process_file("docs/api.md")
        assert [c.section_heading for c in chunks] == ["Calculator", "parseConfig"]
        assert all(c.file_path == "docs/api.md" for c in chunks)
        assert "title:" not in chunks[0].content

    def test_missing_file(self, workspace_dir: Path, store: VectorStore) -> None:
        with pytest.raises(FileNotFoundError, match="File not found"):
            _indexer(workspace_dir, store).process_file("docs/nope.md")

    def test_directory(self, workspace_dir: Path, store: VectorStore) -> None:
        with pytest.raises(IsADirectoryError, match="Path is not a file"):
            _indexer(workspace_dir, store).process_file("docs")

    def test_wrong_type(self, workspace_dir: Path, store: VectorStore) -> None:
        with pytest.raises(FileTypeError, match="Only .md files are supported"):
            _indexer(workspace_dir, store).process_file("docs/notes.txt")

    def test_uppercase_extension_accepted(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        chunks = _indexer(workspace_dir, store).process_file("docs/guide/setup.MD")
        assert [c.section_heading for c in chunks] == ["Setup"]

    def test_invalid_utf8_replaced(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        path = workspace_dir / "docs" / "binary.md"
        path.write_bytes(b"# Bin\nok \xff\xfe text")
        (chunk,) = _indexer(workspace_dir, store).process_file(path)
        assert "�" in chunk.content


class TestIndexWorkspace:
    @pytest.mark.asyncio
    async def test_full_index(self, workspace_dir: Path, store: VectorStore) -> None:
        report = await _indexer(workspace_dir, store).index_workspace()
        assert report.files_scanned == 3
        assert report.files_indexed == 3
        assert report.chunks_stored == 6
        assert report.ok
        assert await store.count() == 6

    @pytest.mark.asyncio
    async def test_reindex_replaces_everything(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        await indexer.index_workspace()
        (workspace_dir / "docs" / "api.md").unlink()
        report = await indexer.index_workspace()
        assert report.chunks_stored == 4
        assert await store.count() == 4

    @pytest.mark.asyncio
    async def test_bad_file_does_not_abort(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        real = indexer.process_file

        def _flaky(path: Path | str, seen_ids: set[str] | None = None):
            if str(path).endswith("api.md"):
                raise PermissionError("denied")
            return real(path, seen_ids)

        with patch.object(indexer, "process_file", side_effect=_flaky):
            report = await indexer.index_workspace()
        assert [f.file_path for f in report.failed_files] == ["docs/api.md"]
        assert report.files_indexed == 2
        assert not report.ok

    @pytest.mark.asyncio
    async def test_storage_failure_recorded(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        with patch.object(
            store, "store_chunks", AsyncMock(side_effect=StorageError("full"))
        ):
            report = await indexer.index_workspace()
        assert report.files_indexed == 0
        assert report.chunks_failed == 6
        assert len(report.failed_files) == 3

    @pytest.mark.asyncio
    async def test_clears_cache(self, workspace_dir: Path, store: VectorStore) -> None:
        cache = ExplanationCache()
        cache.store(sum_context(), "stale", [])
        await _indexer(workspace_dir, store, cache=cache).index_workspace()
        assert len(cache) == 0


class TestIndexFile:
    @pytest.mark.asyncio
    async def test_reindex_single_file(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        await indexer.index_workspace()
        (workspace_dir / "README.md").write_text("# Only\nOne section left now.")

        report = await indexer.index_file(workspace_dir / "README.md")
        assert report.file_path == "README.md"
        assert report.chunks == 1
        assert report.error is None
        assert await store.count() == 4

    @pytest.mark.asyncio
    async def test_ids_stay_unique_across_files(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        indexer = _indexer(workspace_dir, store)
        await indexer.index_workspace()
        docs = workspace_dir / "docs"
        (docs / "x.md.md").write_text("# Calculator\nFirst colliding section.")
        (docs / "x.md").write_text("# md Calculator\nSecond colliding section.")
        await indexer.index_file("docs/x.md.md")
        await indexer.index_file("docs/x.md")
        assert await store.count() == 8

    @pytest.mark.asyncio
    async def test_invalid_file_reported(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        report = await _indexer(workspace_dir, store).index_file("docs/notes.txt")
        assert report.error is not None
        assert "Invalid file type" in report.error

    @pytest.mark.asyncio
    async def test_invalidates_citing_and_ungrounded_entries(
        self, workspace_dir: Path, store: VectorStore
    ) -> None:
        cache = ExplanationCache()
        indexer = _indexer(workspace_dir, store, cache=cache)
        await indexer.index_workspace()

        cite = Citation(
            file_path="README.md", section_heading="calculateSum", relevance_score=1.0
        )
        other = Citation(
            file_path="docs/api.md", section_heading="Calculator", relevance_score=1.0
        )
        cache.store(sum_context(), "readme", [cite], confidence=0.5)
        cache.store(sum_context(selected_text="a()"), "api", [other], confidence=0.5)
        cache.store_result(
            sum_context(selected_text="b()"), ExplanationResult.not_documented()
        )

        await indexer.index_file("README.md")
        assert len(cache) == 1
        assert cache.has(sum_context(selected_text="a()"))

    @pytest.mark.asyncio
    async def test_remove_file(self, workspace_dir: Path, store: VectorStore) -> None:
        indexer = _indexer(workspace_dir, store)
        await indexer.index_workspace()
        await indexer.remove_file("docs/api.md")
        assert await store.count() == 4
