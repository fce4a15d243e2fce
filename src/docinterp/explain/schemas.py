"""Explanation output contract."""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from docinterp.constants import NO_SELECTION, NOT_DOCUMENTED


class Citation(BaseModel):
    """A documentation section backing an explanation."""

    file_path: str
    section_heading: str
    relevance_score: float = Field(ge=0.0, le=1.0)

    def format(self) -> str:
        return f"{self.file_path} > {self.section_heading}"


class ExplanationResult(BaseModel):
    """What the engine returns for every well-formed request.

    Accepted results carry citations and a positive confidence;
    everything else (rejections, empty selections, error fallbacks)
    has neither.
    """

    explanation: str
    citations: list[Citation] = Field(default_factory=lambda: list[Citation]())
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    has_relevant_docs: bool = False

    @model_validator(mode="after")
    def _consistent(self) -> ExplanationResult:
        if self.has_relevant_docs:
            if not self.citations or self.confidence <= 0.0:
                raise ValueError(
                    "accepted result needs citations and confidence > 0"
                )
            if self.explanation == NOT_DOCUMENTED:
                raise ValueError("accepted result cannot be 'Not documented.'")
        elif self.citations or self.confidence != 0.0:
            raise ValueError(
                "non-accepted result must have no citations and confidence 0"
            )
        return self

    @classmethod
    def not_documented(cls) -> ExplanationResult:
        return cls(explanation=NOT_DOCUMENTED)

    @classmethod
    def no_selection(cls) -> ExplanationResult:
        return cls(explanation=NO_SELECTION)

    @classmethod
    def fallback(cls, message: str) -> ExplanationResult:
        return cls(explanation=message)

    @property
    def is_grounded(self) -> bool:
        return self.has_relevant_docs


class GuardrailResult(BaseModel):
    """Outcome of a single enforcement check."""

    check_name: str
    passed: bool
    reason: str | None = None
