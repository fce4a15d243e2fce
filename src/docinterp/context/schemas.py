"""Code-selection inputs and the normalized query context."""

from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel, Field


@dataclass(frozen=True)
class SourceDocument:
    """An open source file as the editor sees it."""

    file_name: str
    language_id: str
    text: str

    @property
    def lines(self) -> list[str]:
        return self.text.split("\n")


@dataclass(frozen=True)
class Selection:
    """A 0-based, end-exclusive character range within a document."""

    start_line: int
    start_character: int
    end_line: int
    end_character: int

    @classmethod
    def whole_lines(cls, first: int, last: int) -> Selection:
        """Select lines ``first``..``last`` inclusive (0-based)."""
        return cls(first, 0, last + 1, 0)


@dataclass(frozen=True)
class SymbolInfo:
    """Best-effort symbol names found in a code selection."""

    function_name: str | None = None
    class_name: str | None = None
    source: str = "none"  # "ast", "regex" or "none"


class CodeContext(BaseModel):
    """One user-initiated explanation query."""

    selected_text: str
    file_name: str = ""
    language: str = "plaintext"
    function_name: str | None = None
    class_name: str | None = None
    imports: list[str] = Field(default_factory=lambda: list[str]())
    surrounding_context: str = ""

    @classmethod
    def empty(cls, file_name: str = "", language: str = "plaintext") -> CodeContext:
        return cls(selected_text="", file_name=file_name, language=language)
