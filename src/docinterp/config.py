"""Environment-based configuration."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode

from docinterp.constants import EMBEDDING_DIMENSIONS, LANCEDB_SUBDIR

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Reads from .env file and DOCINTERP_* environment variables."""

    # Retrieval
    top_k: int = Field(default=5, ge=1, le=20)
    similarity_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    max_results: int | None = Field(default=None, ge=1)
    embedding_dimensions: int = Field(default=EMBEDDING_DIMENSIONS, ge=8)
    max_context_length: int = 2000

    # Enforcement
    min_relevance_score: float = 1.0
    min_content_chars: int = 20
    min_grounding_overlap: float = Field(default=0.3, ge=0.0, le=1.0)

    # Cache
    cache_enabled: bool = True
    cache_ttl_seconds: float = Field(default=1800.0, gt=0)

    # Indexing
    index_dir: Path = Path(".aidocs")
    include_patterns: Annotated[list[str], NoDecode] = [
        "README.md",
        "docs/**/*.md",
    ]
    exclude_patterns: Annotated[list[str], NoDecode] = [
        "node_modules/**",
        ".git/**",
        "dist/**",
        "build/**",
    ]
    max_file_size_bytes: int = 1_048_576  # 1MB

    # Logging
    log_level: str = "INFO"
    log_dir: Path = Path(".aidocs/logs")

    @field_validator("include_patterns", "exclude_patterns", mode="before")
    @classmethod
    def _parse_patterns(cls, v: Any) -> Any:
        """Accept comma-separated string or JSON array."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("log_level")
    @classmethod
    def _validate_level(cls, v: str) -> str:
        level = v.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {v}")
        return level

    @field_validator("max_results")
    @classmethod
    def _warn_unreachable_max(cls, v: int | None) -> int | None:
        if v is not None and v > 20:
            logger.warning(
                "max_results=%d exceeds the top_k ceiling of 20", v
            )
        return v

    @property
    def effective_max_results(self) -> int:
        """Hard cap on search results; defaults to ``top_k``."""
        return self.max_results if self.max_results is not None else self.top_k

    def index_path(self, workspace: Path) -> Path:
        """Workspace-local directory holding the persisted index."""
        if self.index_dir.is_absolute():
            return self.index_dir
        return workspace / self.index_dir

    def lancedb_path(self, workspace: Path) -> Path:
        return self.index_path(workspace) / LANCEDB_SUBDIR

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "env_prefix": "DOCINTERP_",
        "extra": "ignore",
    }
