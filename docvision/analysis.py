"""End-to-end analysis: normalize a document, read it with a vision model,
ask the analysis model for structured output and recover a typed record.

Normalization errors and ``ExternalCapabilityError`` propagate to the
caller; malformed model output never does.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable

from .normalize import normalize
from .prompts import (
    exam_analysis_prompt,
    question_matching_prompt,
    quiz_prompt,
    statement_analysis_prompt,
    statement_questions_prompt,
)
from .recovery import recover
from .schema import (
    AnalysisReport,
    ExamAnalysis,
    PageSequence,
    QuestionMatches,
    Quiz,
    RawDocument,
    RecoveredRecord,
    StatementAnalysis,
    StatementQuestions,
)
from .vision_client import VisionClient

logger = logging.getLogger(__name__)

QUIZ_MAX_TOKENS = 4000


def _client(client: VisionClient | None) -> VisionClient:
    return client if client is not None else VisionClient.from_env()


def _read_document(
    document: RawDocument,
    client: VisionClient,
    **normalize_kwargs: Any,
) -> tuple[PageSequence, str]:
    pages = normalize(document, **normalize_kwargs)
    logger.info("Extracting content from %s (%d page(s))", document.name, len(pages))
    return pages, client.extract_content(pages.pages)


def _report(
    document: RawDocument,
    pages: PageSequence,
    content: str,
    record: RecoveredRecord[Any],
    statement_used: bool = False,
) -> AnalysisReport:
    return AnalysisReport(
        filename=document.name,
        extracted_content=content,
        analysis=record,
        statement_used=statement_used,
        page_count=len(pages),
        extraction_method=pages.method,
        timestamp=datetime.now(timezone.utc),
    )


def analyze_exam(
    document: RawDocument,
    client: VisionClient | None = None,
    **normalize_kwargs: Any,
) -> AnalysisReport:
    """Score a student's exam without reference questions."""

    client = _client(client)
    pages, content = _read_document(document, client, **normalize_kwargs)
    raw = client.complete(exam_analysis_prompt(content), temperature=0.3)
    return _report(document, pages, content, recover(raw, ExamAnalysis))


def analyze_exam_with_statement(
    document: RawDocument,
    questions: Iterable[Any],
    client: VisionClient | None = None,
    **normalize_kwargs: Any,
) -> AnalysisReport:
    """Score a student's exam question by question against the statement."""

    client = _client(client)
    pages, content = _read_document(document, client, **normalize_kwargs)
    raw = client.complete(statement_analysis_prompt(content, list(questions)), temperature=0.3)
    return _report(
        document, pages, content, recover(raw, StatementAnalysis), statement_used=True
    )


def extract_statement_questions(
    document: RawDocument,
    client: VisionClient | None = None,
    **normalize_kwargs: Any,
) -> AnalysisReport:
    """Read an exam statement and list its questions."""

    client = _client(client)
    pages, content = _read_document(document, client, **normalize_kwargs)
    raw = client.complete(statement_questions_prompt(content), temperature=0.3)
    record = recover(raw, StatementQuestions)
    logger.info("Extracted %d question(s) from %s", len(record.value.questions), document.name)
    return _report(document, pages, content, record)


def match_questions_to_answers(
    questions: Iterable[Any],
    student_content: str,
    client: VisionClient | None = None,
) -> RecoveredRecord[QuestionMatches]:
    """Pair already-extracted student content with statement questions."""

    client = _client(client)
    raw = client.complete(question_matching_prompt(student_content, list(questions)), temperature=0.2)
    return recover(raw, QuestionMatches)


def generate_quiz(
    course_content: str,
    client: VisionClient | None = None,
    num_questions: int = 10,
) -> RecoveredRecord[Quiz]:
    """Generate a mixed multiple-choice / true-false quiz from course text."""

    client = _client(client)
    raw = client.complete(
        quiz_prompt(course_content, num_questions),
        temperature=0.7,
        max_tokens=QUIZ_MAX_TOKENS,
    )
    record = recover(raw, Quiz)
    logger.info("Generated %d quiz question(s)", len(record.value.questions))
    return record
