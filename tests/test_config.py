"""Tests for Settings validators and derived paths."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from docinterp.config import Settings


class TestDefaults:
    def test_retrieval_defaults(self) -> None:
        s = Settings()
        assert s.top_k == 5
        assert s.similarity_threshold == 0.3
        assert s.max_results is None
        assert s.effective_max_results == 5

    def test_enforcement_defaults(self) -> None:
        s = Settings()
        assert s.min_relevance_score == 1.0
        assert s.min_content_chars == 20
        assert s.cache_ttl_seconds == 1800.0


class TestRanges:
    @pytest.mark.parametrize("value", [0, 21])
    def test_top_k_out_of_range(self, value: int) -> None:
        with pytest.raises(ValidationError):
            Settings(top_k=value)

    @pytest.mark.parametrize("value", [-0.1, 1.5])
    def test_threshold_out_of_range(self, value: float) -> None:
        with pytest.raises(ValidationError):
            Settings(similarity_threshold=value)

    def test_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(cache_ttl_seconds=0)

    def test_max_results_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(max_results=0)


class TestMaxResults:
    def test_max_results_caps_effective(self) -> None:
        assert Settings(top_k=10, max_results=3).effective_max_results == 3

    def test_large_max_results_warns(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="docinterp.config"):
            s = Settings(max_results=50)
        assert "exceeds the top_k ceiling" in caplog.text
        assert s.max_results == 50

    def test_no_warning_within_ceiling(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="docinterp.config"):
            Settings(max_results=10)
        assert "ceiling" not in caplog.text


class TestPatterns:
    def test_comma_separated_string_parsed_to_list(self) -> None:
        s = Settings(include_patterns="README.md, guides/**/*.md")  # type: ignore[arg-type]
        assert s.include_patterns == ["README.md", "guides/**/*.md"]

    def test_empty_entries_dropped(self) -> None:
        s = Settings(exclude_patterns="a/**,, ,b/**")  # type: ignore[arg-type]
        assert s.exclude_patterns == ["a/**", "b/**"]

    def test_list_passthrough(self) -> None:
        s = Settings(include_patterns=["x.md"])
        assert s.include_patterns == ["x.md"]

    def test_env_var_parsed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DOCINTERP_EXCLUDE_PATTERNS", "vendor/**,tmp/**")
        assert Settings().exclude_patterns == ["vendor/**", "tmp/**"]


class TestLogLevel:
    def test_level_uppercased(self) -> None:
        assert Settings(log_level="debug").log_level == "DEBUG"

    def test_unknown_level_rejected(self) -> None:
        with pytest.raises(ValidationError, match="unknown log level"):
            Settings(log_level="chatty")


class TestPaths:
    def test_relative_index_dir_joins_workspace(self, tmp_path: Path) -> None:
        s = Settings()
        assert s.index_path(tmp_path) == tmp_path / ".aidocs"
        assert s.lancedb_path(tmp_path) == tmp_path / ".aidocs" / "lancedb"

    def test_absolute_index_dir_used_as_is(self, tmp_path: Path) -> None:
        s = Settings(index_dir=tmp_path / "idx")
        assert s.index_path(Path("/elsewhere")) == tmp_path / "idx"
