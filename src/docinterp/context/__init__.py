"""Code-selection context: symbols, imports, and retrieval queries."""

from docinterp.context.extractor import (
    build_query_string,
    extract_context,
    extract_imports,
)
from docinterp.context.schemas import (
    CodeContext,
    Selection,
    SourceDocument,
    SymbolInfo,
)
from docinterp.context.symbols import extract_symbols

__all__ = [
    "CodeContext",
    "Selection",
    "SourceDocument",
    "SymbolInfo",
    "build_query_string",
    "extract_context",
    "extract_imports",
    "extract_symbols",
]
