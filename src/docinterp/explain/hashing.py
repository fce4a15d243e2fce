"""Deterministic digests of a CodeContext.

``context_hash`` covers every field and keys in-flight deduplication.
``cache_key`` covers only file, symbols and selected text; two contexts
that differ only in imports, surrounding lines or language share one
cache entry.
"""

from __future__ import annotations

import hashlib
import json

from docinterp.context.schemas import CodeContext


def _digest(parts: list[str]) -> str:
    payload = json.dumps(parts, ensure_ascii=False, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def context_hash(context: CodeContext) -> str:
    return _digest([
        context.selected_text,
        context.file_name,
        context.function_name or "",
        context.class_name or "",
        ",".join(sorted(context.imports)),
        context.language,
        context.surrounding_context,
    ])


def cache_key(context: CodeContext) -> str:
    return _digest([
        context.file_name,
        context.function_name or "",
        context.class_name or "",
        context.selected_text,
    ])
