"""Explanation engine: enforcement, grounded generation, caching."""

from docinterp.explain.cache import CacheEntry, ExplanationCache
from docinterp.explain.engine import ExplanationEngine
from docinterp.explain.schemas import (
    Citation,
    ExplanationResult,
    GuardrailResult,
)

__all__ = [
    "CacheEntry",
    "Citation",
    "ExplanationCache",
    "ExplanationEngine",
    "ExplanationResult",
    "GuardrailResult",
]
