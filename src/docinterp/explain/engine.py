"""Grounding/enforcement engine: the explanation state machine.

Received → Deduplicating → CacheCheck → Retrieving → Enforcing →
{Rejected | Generating → GroundingCheck → {Rejected | Accepted}} →
Cached → Returned.

Rejected and Accepted are both normal outcomes. Only malformed input
raises (InputError); internal failures become fallback results.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError

from docinterp.config import Settings
from docinterp.constants import (
    MAX_HEALTHY_IN_FLIGHT,
    ExplanationOutcome,
    HealthStatus,
)
from docinterp.context.extractor import build_focus_string, build_query_string
from docinterp.context.schemas import CodeContext
from docinterp.explain.cache import ExplanationCache
from docinterp.explain.enforcement import enforce_documentation
from docinterp.explain.generation import (
    build_citations,
    compose_explanation,
    confidence_score,
    is_grounded,
)
from docinterp.explain.hashing import context_hash
from docinterp.explain.schemas import ExplanationResult
from docinterp.ingestion.schemas import DocumentationChunk
from docinterp.logger import RequestLogger
from docinterp.resilience.errors import (
    InputError,
    RequestCancelledError,
    classify_error,
    fallback_message,
)
from docinterp.resilience.idempotency import IdempotencyGuard
from docinterp.retrieval.embedder import embed_text
from docinterp.retrieval.vector_store import VectorStore

_log = logging.getLogger(__name__)


class ExplanationEngine:
    """Explains code strictly from indexed documentation."""

    def __init__(
        self,
        store: VectorStore,
        settings: Settings | None = None,
        cache: ExplanationCache | None = None,
        logger: logging.Logger | None = None,
        request_logger: RequestLogger | None = None,
    ) -> None:
        self._store = store
        self._settings = settings or Settings()
        self._cache = cache or ExplanationCache(
            default_ttl=self._settings.cache_ttl_seconds,
            enabled=self._settings.cache_enabled,
        )
        self._log = logger or _log
        self._requests = request_logger
        self._guard = IdempotencyGuard()

    @property
    def cache(self) -> ExplanationCache:
        return self._cache

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def explain_code(
        self,
        context: CodeContext | Mapping[str, Any],
        cancel: asyncio.Event | None = None,
    ) -> ExplanationResult:
        """Explain ``context`` or refuse with "Not documented.".

        Raises InputError for malformed input and RequestCancelledError
        when ``cancel`` fires; every other failure is returned as a
        fallback result.
        """
        ctx = self._validate(context)
        if not ctx.selected_text.strip():
            self._log.info(
                "event=explain_skipped reason=empty_selection file=%s",
                ctx.file_name,
            )
            return ExplanationResult.no_selection()

        key = context_hash(ctx)
        while True:
            _check_cancelled(cancel)
            try:
                return await self._guard.execute(
                    key, lambda: self._resolve(ctx, cancel)
                )
            except RequestCancelledError:
                if cancel is not None and cancel.is_set():
                    raise
                # Another caller owned the shared computation and
                # abandoned it; run our own.
                self._log.debug(
                    "event=shared_request_cancelled key=%s action=retry",
                    key[:12],
                )

    async def _resolve(
        self, ctx: CodeContext, cancel: asyncio.Event | None
    ) -> ExplanationResult:
        request_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()

        entry = self._cache.retrieve(ctx)
        if entry is not None:
            result = entry.to_result()
            self._finish(request_id, ctx, result, ExplanationOutcome.CACHED, started)
            return result

        try:
            _check_cancelled(cancel)
            result, outcome = await self._run_pipeline(ctx, cancel, request_id)
            _check_cancelled(cancel)
        except RequestCancelledError:
            self._finish(
                request_id,
                ctx,
                ExplanationResult.not_documented(),
                ExplanationOutcome.CANCELLED,
                started,
            )
            raise
        except Exception as exc:
            error_class = classify_error(exc)
            self._log.error(
                "event=explain_failed request_id=%s error_class=%s file=%s",
                request_id,
                error_class.value,
                ctx.file_name,
                exc_info=True,
            )
            if self._requests is not None:
                self._requests.log_error(request_id, "engine", repr(exc))
            result = ExplanationResult.fallback(fallback_message(error_class))
            self._finish(
                request_id, ctx, result, ExplanationOutcome.FALLBACK, started
            )
            return result

        self._cache.store_result(ctx, result)
        self._finish(request_id, ctx, result, outcome, started)
        return result

    async def _run_pipeline(
        self,
        ctx: CodeContext,
        cancel: asyncio.Event | None,
        request_id: str,
    ) -> tuple[ExplanationResult, ExplanationOutcome]:
        docs = await self.retrieve(ctx, request_id)
        _check_cancelled(cancel)

        decision = enforce_documentation(ctx, docs, self._settings)
        if not decision.passed:
            return ExplanationResult.not_documented(), ExplanationOutcome.REJECTED

        primary = decision.candidates[0].chunk
        body, explanation = compose_explanation(ctx, primary)
        if not is_grounded(body, docs, self._settings.min_grounding_overlap):
            self._log.info(
                "event=grounding_rejected request_id=%s primary=%s",
                request_id,
                primary.id,
            )
            return ExplanationResult.not_documented(), ExplanationOutcome.REJECTED

        confidence = confidence_score([s.chunk for s in decision.qualifying])
        if confidence <= 0.0:
            return ExplanationResult.not_documented(), ExplanationOutcome.REJECTED

        result = ExplanationResult(
            explanation=explanation,
            citations=build_citations(decision.candidates),
            confidence=confidence,
            has_relevant_docs=True,
        )
        return result, ExplanationOutcome.ACCEPTED

    async def retrieve(
        self, ctx: CodeContext, request_id: str = "-"
    ) -> list[DocumentationChunk]:
        """Top-k chunks for the context in (file_path, heading) order."""
        started = time.perf_counter()
        query = build_query_string(ctx)
        chunks = await self._store.search_similar(
            query, self._settings.top_k, focus=build_focus_string(ctx) or None
        )
        chunks = sorted(chunks, key=lambda c: (c.file_path, c.section_heading))
        if self._requests is not None:
            self._requests.log_stage(
                request_id,
                "retrieve",
                "done",
                round((time.perf_counter() - started) * 1000, 2),
            )
        return chunks

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    def invalidate_cache_for_file(self, file_path: str) -> int:
        return self._cache.invalidate_file(file_path)

    def clear_cache(self) -> None:
        self._cache.clear()

    def get_cache_stats(self) -> dict[str, int]:
        return self._cache.get_stats()

    def cleanup_cache(self) -> int:
        return self._cache.cleanup_expired()

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def get_deduplication_stats(self) -> dict[str, Any]:
        keys = self._guard.active_keys
        return {"active_requests": len(keys), "request_hashes": keys}

    async def validate_deterministic_behavior(
        self,
        context: CodeContext | Mapping[str, Any],
        iterations: int = 3,
    ) -> bool:
        """Run the uncached pipeline repeatedly and compare outputs."""
        ctx = self._validate(context)
        original = self._cache
        self._cache = ExplanationCache(enabled=False)
        try:
            results = [
                await self._resolve(ctx, None) for _ in range(max(iterations, 1))
            ]
        finally:
            self._cache = original

        first = results[0]
        for other in results[1:]:
            if (
                other.explanation != first.explanation
                or other.citations != first.citations
                or other.has_relevant_docs != first.has_relevant_docs
                or abs(other.confidence - first.confidence) > 1e-3
            ):
                self._log.warning(
                    "event=nondeterministic_result file=%s", ctx.file_name
                )
                return False
        return True

    async def validate_offline_operation(self) -> bool:
        """Exercise search and embedding with no external services."""
        try:
            await self._store.search_similar("test offline operation", 1)
            embed_text(
                "test embedding generation", self._settings.embedding_dimensions
            )
        except Exception:
            self._log.warning("event=offline_validation_failed", exc_info=True)
            return False
        return True

    async def health_check(self) -> dict[str, Any]:
        issues: list[str] = []
        try:
            store_health = await self._store.health_check()
        except Exception as exc:
            store_health = {"status": HealthStatus.UNHEALTHY, "error": str(exc)}
        if store_health.get("status") != HealthStatus.HEALTHY:
            issues.append("VectorStore is unhealthy")
            issues.extend(store_health.get("issues", []))

        in_flight = len(self._guard)
        if in_flight > MAX_HEALTHY_IN_FLIGHT:
            issues.append("High number of ongoing requests detected")

        status = HealthStatus.HEALTHY if not issues else HealthStatus.UNHEALTHY
        return {
            "status": status,
            "issues": issues,
            "components": {
                "vector_store": store_health,
                "cache": {
                    "status": HealthStatus.HEALTHY,
                    "stats": self._cache.get_stats(),
                },
                "in_flight": in_flight,
            },
        }

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate(context: CodeContext | Mapping[str, Any]) -> CodeContext:
        if isinstance(context, CodeContext):
            return context
        if not isinstance(context, Mapping):
            raise InputError(
                f"Invalid code context: expected mapping, "
                f"got {type(context).__name__}"
            )
        try:
            return CodeContext.model_validate(dict(context))
        except ValidationError as exc:
            raise InputError(f"Invalid code context: {exc}") from exc

    def _finish(
        self,
        request_id: str,
        ctx: CodeContext,
        result: ExplanationResult,
        outcome: ExplanationOutcome,
        started: float,
    ) -> None:
        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        self._log.info(
            "event=explain_done request_id=%s outcome=%s citations=%d "
            "confidence=%.3f duration_ms=%.2f",
            request_id,
            outcome,
            len(result.citations),
            result.confidence,
            duration_ms,
        )
        if self._requests is not None:
            self._requests.log_request(
                request_id=request_id,
                file_name=ctx.file_name,
                selected_chars=len(ctx.selected_text),
                outcome=outcome,
                citations=[c.format() for c in result.citations],
                confidence=result.confidence,
                duration_ms=duration_ms,
            )


def _check_cancelled(cancel: asyncio.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise RequestCancelledError("explanation request cancelled")
