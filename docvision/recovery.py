"""Recover typed records from untrusted model text.

``recover`` is the boundary where model output becomes safe data: it
always returns a ``RecoveredRecord`` and never raises. The record moves
through::

    RECEIVED -> CLEANED -> PARSED
                        -> TRUNCATION_REPAIRED -> PARSED
                        -> DEGRADED

No retries happen here; re-asking the model is the caller's decision.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Sequence, Type, TypeVar

from .config import DEBUG_RAW_RESPONSES
from .response_cleaner import (
    DEFAULT_REPAIRS,
    STATEMENT_REPAIRS,
    Repair,
    looks_truncated,
    repair_candidates,
    strip_fences,
)
from .schema import (
    ExamAnalysis,
    ModelResponse,
    QuestionMatches,
    Quiz,
    RecoveredRecord,
    StatementAnalysis,
    StatementQuestions,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=ModelResponse)

SHAPES: dict[str, Type[ModelResponse]] = {
    "exam": ExamAnalysis,
    "statement": StatementAnalysis,
    "questions": StatementQuestions,
    "matches": QuestionMatches,
    "quiz": Quiz,
}

SHAPE_REPAIRS: dict[Type[ModelResponse], Sequence[Repair]] = {
    StatementAnalysis: STATEMENT_REPAIRS,
}


def _parse(text: str, model: Type[T]) -> tuple[T | None, str | None]:
    """Parse and validate *text*; return ``(value, None)`` or ``(None, error)``."""

    if not text:
        return None, "empty response"
    try:
        data = json.loads(text)
    except (ValueError, RecursionError) as exc:
        return None, f"invalid JSON: {exc}"
    if not isinstance(data, dict):
        return None, f"expected a JSON object, got {type(data).__name__}"
    try:
        return model.model_validate(data), None
    except (ValueError, TypeError) as exc:
        # pydantic.ValidationError is a ValueError
        return None, f"shape mismatch: {exc}"


def recover(
    raw_text: Any,
    model: Type[T],
    *,
    repairs: Sequence[Repair] | None = None,
    closers: Sequence[str] | None = None,
) -> RecoveredRecord[T]:
    """Turn raw model text into a ``RecoveredRecord`` of *model*.

    Parameters
    ----------
    raw_text:
        Text returned by the model. Non-string input is coerced with
        ``str()``; ``None`` becomes the empty string.
    model:
        ``ModelResponse`` subclass describing the expected shape. Absent
        list fields default to empty lists.
    repairs:
        Ordered truncation repairs tried when the cleaned text does not
        parse and looks cut off. Defaults to the shape's own list.
    closers:
        Characters a complete answer may end with (see ``looks_truncated``).

    Returns
    -------
    A record with ``status`` ``"parsed"``, ``"repaired"`` or ``"degraded"``.
    Degraded records carry ``model.degraded(raw_text)`` and the last error.
    """

    if raw_text is None:
        text = ""
    elif isinstance(raw_text, str):
        text = raw_text
    else:
        text = str(raw_text)
    if repairs is None:
        repairs = SHAPE_REPAIRS.get(model, DEFAULT_REPAIRS)
    record_type = RecoveredRecord[model]

    cleaned = strip_fences(text)
    value, error = _parse(cleaned, model)
    if value is not None:
        return record_type(status="parsed", value=value, raw_text=text)

    if looks_truncated(cleaned, closers):
        logger.warning("%s response appears truncated (%d chars)", model.__name__, len(cleaned))
        for name, candidate in repair_candidates(cleaned, repairs):
            repaired, _ = _parse(candidate, model)
            if repaired is not None:
                logger.info("%s response recovered with %s", model.__name__, name)
                return record_type(status="repaired", value=repaired, raw_text=text, repair=name)

    logger.warning("Failed to parse %s response: %s", model.__name__, error)
    if DEBUG_RAW_RESPONSES:
        logger.warning("Raw response: %s", text)
        logger.warning("Cleaned response: %s", cleaned)
    return record_type(
        status="degraded",
        value=model.degraded(text),
        raw_text=text,
        error=error,
    )


def recover_shape(raw_text: Any, shape: str, **kwargs: Any) -> RecoveredRecord[Any]:
    """``recover`` with the model looked up by name in ``SHAPES``."""

    try:
        model = SHAPES[shape]
    except KeyError:
        raise ValueError(f"Unknown shape {shape!r}; choose one of {', '.join(SHAPES)}") from None
    return recover(raw_text, model, **kwargs)
