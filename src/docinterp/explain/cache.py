"""In-memory TTL cache of explanation results."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from docinterp.context.schemas import CodeContext
from docinterp.explain.hashing import cache_key
from docinterp.explain.schemas import Citation, ExplanationResult

_log = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60.0


@dataclass(frozen=True)
class CacheEntry:
    key: str
    explanation: str
    citations: tuple[Citation, ...]
    confidence: float
    timestamp: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.timestamp + self.ttl

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at

    def cites(self, file_path: str) -> bool:
        return any(c.file_path == file_path for c in self.citations)

    def to_result(self) -> ExplanationResult:
        return ExplanationResult(
            explanation=self.explanation,
            citations=list(self.citations),
            confidence=self.confidence,
            has_relevant_docs=bool(self.citations),
        )


class ExplanationCache:
    """Memoizes explanations by a hash of the code context.

    Expiry is checked lazily on read; nothing runs in the background.
    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
    ) -> None:
        if default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        self._entries: dict[str, CacheEntry] = {}
        self._default_ttl = default_ttl
        self._enabled = enabled
        self._clock = clock
        self._log = logger or _log

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def default_ttl(self) -> float:
        return self._default_ttl

    def store(
        self,
        context: CodeContext,
        explanation: str,
        citations: list[Citation],
        confidence: float = 0.0,
        ttl: float | None = None,
    ) -> None:
        if not self._enabled:
            return
        key = cache_key(context)
        self._entries[key] = CacheEntry(
            key=key,
            explanation=explanation,
            citations=tuple(citations),
            confidence=confidence,
            timestamp=self._clock(),
            ttl=ttl if ttl is not None else self._default_ttl,
        )
        self._log.debug("event=cache_store key=%s", key[:12])

    def store_result(
        self,
        context: CodeContext,
        result: ExplanationResult,
        ttl: float | None = None,
    ) -> None:
        self.store(
            context,
            result.explanation,
            result.citations,
            confidence=result.confidence,
            ttl=ttl,
        )

    def retrieve(self, context: CodeContext) -> CacheEntry | None:
        key = cache_key(context)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            self._log.debug("event=cache_expired key=%s", key[:12])
            return None
        return entry

    def has(self, context: CodeContext) -> bool:
        return self.retrieve(context) is not None

    def invalidate_file(self, file_path: str) -> int:
        """Drop every entry that cites ``file_path``."""
        stale = [k for k, e in self._entries.items() if e.cites(file_path)]
        for key in stale:
            del self._entries[key]
        if stale:
            self._log.info(
                "event=cache_invalidated file=%s entries=%d",
                file_path,
                len(stale),
            )
        return len(stale)

    def invalidate_ungrounded(self) -> int:
        """Drop cached rejections so new documentation can answer them."""
        stale = [k for k, e in self._entries.items() if not e.citations]
        for key in stale:
            del self._entries[key]
        return len(stale)

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def get_stats(self) -> dict[str, int]:
        now = self._clock()
        expired = sum(1 for e in self._entries.values() if e.is_expired(now))
        return {
            "size": len(self._entries),
            "valid_entries": len(self._entries) - expired,
            "expired_entries": expired,
        }

    def set_default_ttl(self, ttl: float) -> None:
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        self._default_ttl = ttl

    def __len__(self) -> int:
        return len(self._entries)
