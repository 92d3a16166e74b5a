"""Pydantic models for documents, pages and recovered model responses."""

from __future__ import annotations

import base64
from datetime import datetime
from pathlib import Path
from typing import Annotated, Any, Generic, List, Literal, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    SerializeAsAny,
    field_validator,
    model_validator,
)

from .config import MAX_FILE_SIZE_BYTES, PAGE_ENCODING
from .utils import detect_kind, guard_file_size

DEGRADED_NOTE = (
    "Automatic analysis could not be completed: the model response was not "
    "valid structured data. Please review the raw response manually."
)


# ---------------------------------------------------------------------------
# Documents and pages
# ---------------------------------------------------------------------------


class RawDocument(BaseModel):
    """Uploaded bytes plus a declared kind ("pdf" | "image") and display name."""

    model_config = ConfigDict(frozen=True)

    data: bytes
    kind: str
    name: str = "document"

    @classmethod
    def from_path(
        cls,
        path: str | Path,
        kind: str | None = None,
        max_bytes: int | None = MAX_FILE_SIZE_BYTES,
    ) -> RawDocument:
        """Read a file from disk; kind is detected from the extension unless given."""
        file_path = Path(path).expanduser()
        guard_file_size(file_path.stat().st_size, max_bytes)
        return cls(
            data=file_path.read_bytes(),
            kind=kind or detect_kind(file_path.name),
            name=file_path.name,
        )


class Page(BaseModel):
    """One bounded-size encoded raster image shown to a vision model."""

    model_config = ConfigDict(frozen=True, ser_json_bytes="base64")

    data: bytes
    encoding: str = PAGE_ENCODING
    width: int
    height: int
    page_number: int = 1
    source: str = "image"  # "raster" | "text" | "image"

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def to_data_url(self) -> str:
        b64 = base64.b64encode(self.data).decode("ascii")
        return f"data:image/{self.encoding};base64,{b64}"


class PageSequence(BaseModel):
    """Ordered pages derived from one source document."""

    model_config = ConfigDict(ser_json_bytes="base64")

    pages: List[Page] = Field(default_factory=list)
    method: str  # tier that produced the pages: "raster" | "text" | "image"
    source_kind: str
    dropped_pages: int = 0  # pages cut by the page-count ceiling

    def __len__(self) -> int:
        return len(self.pages)

    def summary(self) -> dict[str, Any]:
        """Serialisable description without image payloads."""
        return {
            "method": self.method,
            "source_kind": self.source_kind,
            "page_count": len(self.pages),
            "dropped_pages": self.dropped_pages,
            "pages": [
                {
                    "page_number": p.page_number,
                    "width": p.width,
                    "height": p.height,
                    "size_bytes": p.size_bytes,
                    "source": p.source,
                }
                for p in self.pages
            ],
        }


# ---------------------------------------------------------------------------
# Model response shapes
# ---------------------------------------------------------------------------


def _strip_percent(value: Any) -> Any:
    # Models often answer "85%" where a number is asked for.
    if isinstance(value, str):
        stripped = value.strip().rstrip("%").strip()
        return stripped or value
    return value


Score = Annotated[float, BeforeValidator(_strip_percent)]


class ResponseItem(BaseModel):
    """Base for list items inside a model response; unknown keys are kept."""

    model_config = ConfigDict(extra="allow")


class ModelResponse(BaseModel):
    """Base for a structured record recovered from model text.

    ``degraded()`` builds the neutral record used when the text cannot be
    parsed: zero scores, "Unknown" subject, empty lists and the raw text.
    """

    model_config = ConfigDict(extra="allow")

    parse_failed: bool = False
    note: str | None = None
    raw_response: str | None = None

    @classmethod
    def degraded_fields(cls) -> dict[str, Any]:
        return {}

    @classmethod
    def degraded(cls, raw_text: str):
        return cls(
            parse_failed=True,
            note=DEGRADED_NOTE,
            raw_response=raw_text,
            **cls.degraded_fields(),
        )


class ErrorItem(ResponseItem):
    """One mistake found in a student's work."""

    location: str | int | None = None
    error: str | None = None
    explanation: str | None = None


class Correction(ResponseItem):
    """Correct answer for one question the student got wrong."""

    question: str | int | None = None
    correct_answer: str | int | float | None = None
    student_answer: str | int | float | None = None


class ExamAnalysis(ModelResponse):
    """Free-standing exam analysis: score, errors and corrections."""

    score: Score
    subject: str | None = None
    errors: List[ErrorItem] = Field(default_factory=list)
    corrections: List[Correction] = Field(default_factory=list)
    summary: str | None = None

    @classmethod
    def degraded_fields(cls) -> dict[str, Any]:
        return {"score": 0, "subject": "Unknown", "summary": ""}


class QuestionAnalysis(ResponseItem):
    """Per-question comparison against the statement document."""

    question_number: str | int | None = None
    statement_question: str | None = None
    expected_answer: str | int | float | None = None
    student_answer: str | int | float | None = None
    is_correct: bool | None = None
    score: Score | None = None
    feedback: str | None = None


class StatementAnalysis(ModelResponse):
    """Exam analysis performed with the original questions as context."""

    overall_score: Score
    subject: str | None = None
    statement_used: bool = True
    question_analysis: List[QuestionAnalysis] = Field(default_factory=list)
    summary: str | None = None
    recommendations: str | None = None

    @classmethod
    def degraded_fields(cls) -> dict[str, Any]:
        return {
            "overall_score": 0,
            "subject": "Unknown",
            "summary": "",
            "recommendations": "Please review the analysis manually",
        }


class StatementQuestion(ResponseItem):
    """One question extracted from an exam statement."""

    number: str | int | None = None
    text: str | None = None


class StatementQuestions(ModelResponse):
    """Questions extracted from an exam statement document."""

    questions: List[StatementQuestion] = Field(default_factory=list)
    total_questions: int | None = None
    subject: str | None = None

    @classmethod
    def degraded_fields(cls) -> dict[str, Any]:
        return {"total_questions": 0, "subject": "Unknown"}


class QuestionMatch(ResponseItem):
    """A student's response matched to one statement question."""

    question_number: str | int | None = None
    student_response: str | None = None
    match_confidence: Score | None = None
    has_work_shown: bool | None = None
    notes: str | None = None


class QuestionMatches(ModelResponse):
    """Student answers matched to statement questions."""

    matches: List[QuestionMatch] = Field(default_factory=list)


class QuizQuestion(ResponseItem):
    """One generated quiz question."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: int | None = None
    type: Literal["multiple_choice", "true_false"]
    question: str = Field(min_length=1)
    options: List[str] | None = None
    correct_answer: str = Field(alias="correctAnswer", min_length=1)

    @field_validator("correct_answer", mode="before")
    @classmethod
    def _bool_answer(cls, value: Any) -> Any:
        # true/false answers are expected as strings
        if isinstance(value, bool):
            return "true" if value else "false"
        return value

    @model_validator(mode="after")
    def _check_options(self) -> QuizQuestion:
        if self.type == "multiple_choice" and (not self.options or len(self.options) < 2):
            raise ValueError("multiple choice question needs at least two options")
        return self


class Quiz(ModelResponse):
    """Quiz generated from course content."""

    questions: List[QuizQuestion]

    @model_validator(mode="after")
    def _number_questions(self) -> Quiz:
        for index, question in enumerate(self.questions, start=1):
            if question.id is None:
                question.id = index
        return self

    @classmethod
    def degraded_fields(cls) -> dict[str, Any]:
        return {"questions": []}


# ---------------------------------------------------------------------------
# Recovery result and reports
# ---------------------------------------------------------------------------

T = TypeVar("T", bound=ModelResponse)

RecoveryStatus = Literal["parsed", "repaired", "degraded"]


class RecoveredRecord(BaseModel, Generic[T]):
    """Outcome of recovering structured data from raw model text.

    ``value`` is always a valid record; check ``status`` (or ``degraded``)
    to know whether it came from the model or is the neutral fallback.
    """

    status: RecoveryStatus
    value: T
    raw_text: str
    repair: str | None = None  # name of the repair heuristic that made the text parse
    error: str | None = None  # last parse/validation error for degraded records

    @property
    def degraded(self) -> bool:
        return self.status == "degraded"


class AnalysisReport(BaseModel):
    """Result of one end-to-end document analysis."""

    filename: str
    extracted_content: str
    analysis: SerializeAsAny[RecoveredRecord]  # any parametrization; dumped with its own fields
    statement_used: bool = False
    page_count: int = 0
    extraction_method: str | None = None
    timestamp: datetime
