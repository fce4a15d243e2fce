"""Tests for tree-sitter and regex symbol extraction."""

from __future__ import annotations

from docinterp.context.symbols import (
    SUPPORTED_LANGUAGES,
    extract_symbols,
    extract_symbols_ast,
    extract_symbols_regex,
)


class TestAstExtraction:
    def test_function_declaration(self) -> None:
        info = extract_symbols_ast(
            "function calculateSum(a, b) { return a + b; }", "javascript"
        )
        assert info is not None
        assert info.function_name == "calculateSum"
        assert info.class_name is None
        assert info.source == "ast"

    def test_arrow_function_assignment(self) -> None:
        info = extract_symbols_ast(
            "const parseConfig = (raw) => JSON.parse(raw);", "javascript"
        )
        assert info is not None
        assert info.function_name == "parseConfig"

    def test_plain_const_is_not_a_function(self) -> None:
        info = extract_symbols_ast("const total = 1 + 2;", "javascript")
        assert info is not None
        assert info.function_name is None

    def test_class_declaration(self) -> None:
        code = "class Calculator {\n  add(x) { this.total += x; }\n}"
        info = extract_symbols_ast(code, "javascript")
        assert info is not None
        assert info.class_name == "Calculator"

    def test_first_symbols_in_document_order(self) -> None:
        code = (
            "function first() {}\n"
            "function second() {}\n"
            "class Alpha {}\n"
            "class Beta {}\n"
        )
        info = extract_symbols_ast(code, "javascript")
        assert info is not None
        assert (info.function_name, info.class_name) == ("first", "Alpha")

    def test_helper_nested_in_method_is_ignored(self) -> None:
        code = (
            "class Calculator {\n"
            "  add(a, b) {\n"
            "    const sum = () => a + b;\n"
            "    return sum();\n"
            "  }\n"
            "}\n"
        )
        info = extract_symbols_ast(code, "javascript")
        assert info is not None
        assert (info.function_name, info.class_name) == (None, "Calculator")

    def test_inner_function_does_not_replace_outer(self) -> None:
        code = (
            "function outer(items) {\n"
            "  function inner(x) { return x * 2; }\n"
            "  return items.map(inner);\n"
            "}\n"
        )
        info = extract_symbols_ast(code, "javascript")
        assert info is not None
        assert info.function_name == "outer"

    def test_exported_declarations(self) -> None:
        code = (
            "export const handler = async (event) => event;\n"
            "export class Router {}\n"
        )
        info = extract_symbols_ast(code, "javascript")
        assert info is not None
        assert (info.function_name, info.class_name) == ("handler", "Router")

    def test_typescript(self) -> None:
        code = (
            "export class UserService {\n"
            "  private cache: Map<string, number> = new Map();\n"
            "}\n"
            "export function loadUser(id: string): number { return 1; }\n"
        )
        info = extract_symbols_ast(code, "typescript")
        assert info is not None
        assert info.class_name == "UserService"
        assert info.function_name == "loadUser"

    def test_tsx(self) -> None:
        code = "const Button = (props: Props) => <button>{props.label}</button>;"
        info = extract_symbols_ast(code, "typescriptreact")
        assert info is not None
        assert info.function_name == "Button"

    def test_syntax_error_returns_none(self) -> None:
        assert extract_symbols_ast("function broken( {", "javascript") is None

    def test_unsupported_language_returns_none(self) -> None:
        assert extract_symbols_ast("def f(): pass", "python") is None


class TestRegexExtraction:
    def test_function_keyword(self) -> None:
        info = extract_symbols_regex("function handleClick(e) {")
        assert info.function_name == "handleClick"
        assert info.source == "regex"

    def test_const_binding(self) -> None:
        assert extract_symbols_regex("const $el = ").function_name == "$el"

    def test_class(self) -> None:
        assert extract_symbols_regex("class Widget extends").class_name == "Widget"

    def test_nothing_found(self) -> None:
        info = extract_symbols_regex("x + y")
        assert (info.function_name, info.class_name) == (None, None)


class TestExtractSymbols:
    def test_empty_code(self) -> None:
        info = extract_symbols("   ", "javascript")
        assert info.source == "none"
        assert info.function_name is None

    def test_broken_code_falls_back_to_regex(self) -> None:
        info = extract_symbols("function calculateSum(a, b) {", "javascript")
        assert info.source == "regex"
        assert info.function_name == "calculateSum"

    def test_unknown_language_uses_regex(self) -> None:
        info = extract_symbols("class Foo {}", "plaintext")
        assert info.source == "regex"
        assert info.class_name == "Foo"

    def test_supported_languages(self) -> None:
        assert SUPPORTED_LANGUAGES == {
            "javascript",
            "javascriptreact",
            "typescript",
            "typescriptreact",
        }
