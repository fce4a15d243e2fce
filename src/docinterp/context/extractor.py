"""Turn an editor selection into a CodeContext and a retrieval query."""

from __future__ import annotations

import logging
import re

from docinterp.constants import (
    QUERY_MAX_IMPORTS,
    SHORT_SELECTION_CHARS,
    SURROUNDING_LINES,
)
from docinterp.context.schemas import CodeContext, Selection, SourceDocument
from docinterp.context.symbols import extract_symbols

_log = logging.getLogger(__name__)

_IMPORT_RE = re.compile(
    r"import\s+(?:type\s+)?"
    r"(?:(?:(?:\w+\s*,\s*)?(?:\{[^}]*\}|\*\s+as\s+\w+)|\w+)\s+from\s+)?"
    r"['\"]([^'\"]+)['\"]"
)
_REQUIRE_RE = re.compile(r"require\s*\(\s*['\"]([^'\"]+)['\"]\s*\)")


def extract_context(
    document: SourceDocument,
    selection: Selection,
    logger: logging.Logger | None = None,
) -> CodeContext:
    """Build the query context for ``selection``.

    Never raises: any failure degrades to an empty context for the
    document.
    """
    log = logger or _log
    try:
        lines = document.lines
        selected = _selected_text(lines, selection)
        symbols = extract_symbols(selected, document.language_id)
        return CodeContext(
            selected_text=selected,
            file_name=document.file_name,
            language=document.language_id,
            function_name=symbols.function_name,
            class_name=symbols.class_name,
            imports=extract_imports(document.text),
            surrounding_context=_surrounding(lines, selection),
        )
    except Exception:
        log.warning(
            "event=context_extraction_failed file=%s action=empty_context",
            getattr(document, "file_name", ""),
            exc_info=True,
        )
        return _empty_context(document)


def extract_imports(text: str) -> list[str]:
    """ES module and CommonJS import targets, first occurrence order."""
    found: list[str] = []
    seen: set[str] = set()
    matches = [
        (m.start(), m.group(1))
        for pattern in (_IMPORT_RE, _REQUIRE_RE)
        for m in pattern.finditer(text)
    ]
    for _, target in sorted(matches):
        if target not in seen:
            seen.add(target)
            found.append(target)
    return found


def build_query_string(context: CodeContext) -> str:
    """Prioritized query: code, then symbols, then imports, then context."""
    parts: list[str] = []
    selected = context.selected_text.strip()
    if selected:
        parts.append(selected)
    if context.function_name:
        parts.append(f"function {context.function_name}")
    if context.class_name:
        parts.append(f"class {context.class_name}")

    imports = [
        imp
        for imp in context.imports
        if not imp.startswith(".") and "node_modules" not in imp
    ][:QUERY_MAX_IMPORTS]
    if imports:
        parts.append("imports: " + ", ".join(imports))

    surrounding = context.surrounding_context.strip()
    if surrounding and len(selected) < SHORT_SELECTION_CHARS:
        parts.append(surrounding)
    return " ".join(parts)


def build_focus_string(context: CodeContext) -> str:
    """Symbol names alone, for matching sections titled after them."""
    names = [n for n in (context.function_name, context.class_name) if n]
    return " ".join(names)


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _selected_text(lines: list[str], selection: Selection) -> str:
    last = len(lines) - 1
    start_line = _clamp(selection.start_line, 0, last)
    end_line = _clamp(selection.end_line, 0, last)
    start_char = _clamp(selection.start_character, 0, len(lines[start_line]))
    end_char = _clamp(selection.end_character, 0, len(lines[end_line]))
    if selection.end_line > last:
        end_char = len(lines[end_line])

    if (end_line, end_char) < (start_line, start_char):
        start_line, start_char, end_line, end_char = (
            end_line, end_char, start_line, start_char
        )
    if start_line == end_line:
        return lines[start_line][start_char:end_char]

    middle = lines[start_line + 1 : end_line]
    return "\n".join(
        [lines[start_line][start_char:], *middle, lines[end_line][:end_char]]
    )


def _surrounding(lines: list[str], selection: Selection) -> str:
    last = len(lines) - 1
    first_sel = _clamp(min(selection.start_line, selection.end_line), 0, last)
    last_sel = _clamp(max(selection.start_line, selection.end_line), 0, last)
    start = max(0, first_sel - SURROUNDING_LINES)
    end = min(last, last_sel + SURROUNDING_LINES)
    return "\n".join(lines[start : end + 1])


def _empty_context(document: object) -> CodeContext:
    file_name = getattr(document, "file_name", "")
    language = getattr(document, "language_id", "plaintext")
    return CodeContext.empty(
        file_name=file_name if isinstance(file_name, str) else "",
        language=language if isinstance(language, str) else "plaintext",
    )
