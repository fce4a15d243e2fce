"""Error taxonomy and classification.

Typed exceptions mark the failures callers are expected to handle.
classify_error() maps anything raised inside the explanation pipeline
to a category so the engine can return an informative fallback message
instead of propagating the exception.
"""

from __future__ import annotations

import asyncio
from enum import Enum


class DocInterpError(Exception):
    """Base class for all docinterp errors."""


class InputError(DocInterpError):
    """Malformed request input. Surfaced immediately, never retried."""


class FileTypeError(InputError):
    """A non-markdown file was handed to the indexer."""


class StorageError(DocInterpError):
    """Persistence layer unavailable or corrupt."""


class NotInitializedError(StorageError):
    """Operation attempted on a store before initialize()."""


class EmbeddingError(DocInterpError):
    """Embedding generation failed for a single text."""


class RequestCancelledError(DocInterpError):
    """The caller's cancellation signal fired mid-request."""


class ErrorClass(Enum):
    CONNECTION = "connection"  # network/connection failures
    STORAGE = "storage"  # index missing, corrupt, unwritable
    EMBEDDING = "embedding"  # vector generation
    TIMEOUT = "timeout"  # deadline exceeded
    RESOURCE = "resource"  # memory / resource exhaustion
    UNKNOWN = "unknown"


_FALLBACK_MESSAGES: dict[ErrorClass, str] = {
    ErrorClass.CONNECTION: (
        "Unable to access documentation. Please check your connection."
    ),
    ErrorClass.STORAGE: (
        "Documentation storage error. Please re-index documentation."
    ),
    ErrorClass.EMBEDDING: "Embedding generation error. Please try again.",
    ErrorClass.TIMEOUT: (
        "Request timeout. Please try again with a smaller code selection."
    ),
    ErrorClass.RESOURCE: (
        "Insufficient resources. "
        "Please try again with a smaller code selection."
    ),
    ErrorClass.UNKNOWN: "Error generating explanation.",
}


def classify_error(error: BaseException) -> ErrorClass:
    """Classify an error to pick a user-facing fallback.

    Checks exception types first, falls back to string matching
    for untyped exceptions.
    """
    # 1. Typed exceptions
    if isinstance(error, StorageError):
        return ErrorClass.STORAGE
    if isinstance(error, EmbeddingError):
        return ErrorClass.EMBEDDING
    if isinstance(error, (TimeoutError, asyncio.TimeoutError)):
        return ErrorClass.TIMEOUT
    if isinstance(error, MemoryError):
        return ErrorClass.RESOURCE
    if isinstance(error, ConnectionError):
        return ErrorClass.CONNECTION

    # 2. Fall back to string matching, in precedence order
    msg = str(error).lower()

    if "network" in msg or "connection" in msg:
        return ErrorClass.CONNECTION
    if "storage" in msg or "database" in msg:
        return ErrorClass.STORAGE
    if "embedding" in msg or "vector" in msg:
        return ErrorClass.EMBEDDING
    if "timeout" in msg or "timed out" in msg:
        return ErrorClass.TIMEOUT
    if "memory" in msg or "resource" in msg:
        return ErrorClass.RESOURCE

    return ErrorClass.UNKNOWN


def fallback_message(error_class: ErrorClass) -> str:
    """Human-readable message for a classified failure."""
    return _FALLBACK_MESSAGES[error_class]
