"""Function/class name extraction for JavaScript and TypeScript.

Two pure stages: a tree-sitter parse, and a regex matcher used whenever
the parse is unavailable or the tree contains syntax errors.
"""

from __future__ import annotations

import importlib
import logging
import re
from collections.abc import Iterator

import tree_sitter

from docinterp.context.schemas import SymbolInfo

logger = logging.getLogger(__name__)

# Editor language id → (grammar module, language factory)
_GRAMMARS: dict[str, tuple[str, str]] = {
    "javascript": ("tree_sitter_javascript", "language"),
    "javascriptreact": ("tree_sitter_javascript", "language"),
    "typescript": ("tree_sitter_typescript", "language_typescript"),
    "typescriptreact": ("tree_sitter_typescript", "language_tsx"),
}

SUPPORTED_LANGUAGES = frozenset(_GRAMMARS)

_FUNCTION_DECLS = {"function_declaration", "generator_function_declaration"}
_FUNCTION_VALUES = {
    "arrow_function",
    "function",
    "function_expression",
    "generator_function",
}
_CLASS_DECLS = {"class_declaration", "abstract_class_declaration"}
_VARIABLE_DECLS = {"lexical_declaration", "variable_declaration"}

_IDENT = r"[a-zA-Z_$][a-zA-Z0-9_$]*"
_FUNCTION_RE = re.compile(rf"(?:function\s+|const\s+|let\s+|var\s+)({_IDENT})")
_CLASS_RE = re.compile(rf"class\s+({_IDENT})")


def extract_symbols(code: str, language: str) -> SymbolInfo:
    """Best-effort function and class names in ``code``."""
    if not code.strip():
        return SymbolInfo()
    parsed = extract_symbols_ast(code, language)
    if parsed is not None:
        return parsed
    return extract_symbols_regex(code)


def extract_symbols_ast(code: str, language: str) -> SymbolInfo | None:
    """Parse with tree-sitter. Returns None when parsing is not usable."""
    parser = _get_parser(language)
    if parser is None:
        return None
    tree = parser.parse(code.encode("utf-8"))
    root = tree.root_node
    if root.has_error:
        logger.debug(
            "event=symbol_parse_error language=%s action=regex_fallback",
            language,
        )
        return None

    function_name: str | None = None
    class_name: str | None = None
    for node in _top_level(root):
        if function_name is None:
            function_name = _function_name(node)
        if class_name is None and node.type in _CLASS_DECLS:
            class_name = _get_name(node)
        if function_name and class_name:
            break
    return SymbolInfo(
        function_name=function_name, class_name=class_name, source="ast"
    )


def extract_symbols_regex(code: str) -> SymbolInfo:
    """Pattern-match declarations; tolerant of partial or broken code."""
    fn = _FUNCTION_RE.search(code)
    cls = _CLASS_RE.search(code)
    return SymbolInfo(
        function_name=fn.group(1) if fn else None,
        class_name=cls.group(1) if cls else None,
        source="regex",
    )


def _top_level(root: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    """Program-level statements, looking through ``export`` wrappers.

    Declarations nested in a class or function body are helpers of the
    enclosing symbol and never name the selection.
    """
    for node in root.named_children:
        if node.type == "export_statement":
            declaration = node.child_by_field_name("declaration")
            if declaration is not None:
                yield declaration
            continue
        yield node


def _function_name(node: tree_sitter.Node) -> str | None:
    if node.type in _FUNCTION_DECLS:
        return _get_name(node)
    if node.type in _VARIABLE_DECLS:
        for child in node.named_children:
            if child.type != "variable_declarator":
                continue
            value = child.child_by_field_name("value")
            if value is not None and value.type in _FUNCTION_VALUES:
                return _get_name(child)
    return None


def _get_name(node: tree_sitter.Node) -> str | None:
    """Extract the name identifier from a declaration node."""
    name = node.child_by_field_name("name")
    if name is None:
        for child in node.children:
            if child.type in ("identifier", "type_identifier"):
                name = child
                break
    if name is None or name.text is None:
        return None
    return name.text.decode("utf-8")


# ---------------------------------------------------------------------------
# Parser cache
# ---------------------------------------------------------------------------

_parser_cache: dict[str, tree_sitter.Parser] = {}


def _get_parser(language: str) -> tree_sitter.Parser | None:
    """Get or create a cached tree-sitter parser for the language."""
    if language in _parser_cache:
        return _parser_cache[language]

    grammar = _GRAMMARS.get(language)
    if grammar is None:
        return None

    module_name, factory = grammar
    try:
        mod = importlib.import_module(module_name)
        capsule: object = getattr(mod, factory)()
        parser = tree_sitter.Parser(tree_sitter.Language(capsule))
    except (ImportError, AttributeError, ValueError):
        logger.warning(
            "event=grammar_unavailable language=%s module=%s",
            language,
            module_name,
        )
        return None
    _parser_cache[language] = parser
    return parser
