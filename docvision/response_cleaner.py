"""Clean raw model text before JSON parsing.

Models wrap JSON in markdown fences and sometimes stop mid-answer when they
hit their token limit. ``clean`` removes the fences and, when the text looks
cut off, applies the first applicable repair heuristic. Repairs are plain
``str -> str | None`` functions kept in ordered lists so new truncation
patterns can be added without touching the recovery loop; ``None`` means
"does not apply".
"""

from __future__ import annotations

import logging
import re
from typing import Any, Callable, Iterator, Sequence

logger = logging.getLogger(__name__)

Repair = Callable[[str], "str | None"]

_LEADING_FENCE = re.compile(r"^```[A-Za-z0-9_+-]*[ \t]*\r?\n?")
_TRAILING_FENCE = re.compile(r"\r?\n?[ \t]*```$")
_CLOSERS = {"{": "}", "[": "]"}
RECOMMENDATIONS_FILLER = "Please review the detailed analysis above"


def strip_fences(text: Any) -> str:
    """Trim *text* and drop a surrounding ```json / ``` fence if present."""

    if text is None:
        return ""
    cleaned = str(text).strip()
    if cleaned.startswith("```"):
        cleaned = _LEADING_FENCE.sub("", cleaned, count=1)
    if cleaned.endswith("```"):
        cleaned = _TRAILING_FENCE.sub("", cleaned, count=1)
    return cleaned.strip()


def looks_truncated(text: str, closers: Sequence[str] | None = None) -> bool:
    """Return True if non-empty *text* does not end with a closing character.

    Without explicit *closers*, the expected closer follows the opening
    character: ``]`` for arrays, ``}`` otherwise.
    """

    stripped = text.strip()
    if not stripped:
        return False
    if closers is None:
        closers = (_CLOSERS.get(stripped[0], "}"),)
    return not stripped.endswith(tuple(closers))


# ---------------------------------------------------------------------------
# Repair heuristics
# ---------------------------------------------------------------------------


def close_brace(text: str) -> str | None:
    """Append a closing ``}`` to an object that lacks one."""

    stripped = text.rstrip()
    if not stripped.startswith("{") or stripped.endswith("}"):
        return None
    return stripped + "}"


def close_array(text: str) -> str | None:
    """Append a closing ``]`` to an array that lacks one."""

    stripped = text.rstrip()
    if not stripped.startswith("[") or stripped.endswith("]"):
        return None
    return stripped.rstrip(",") + "]"


def close_summary_with_recommendations(text: str) -> str | None:
    """Close an answer cut off inside ``summary`` before ``recommendations``.

    The summary string is terminated and a placeholder ``recommendations``
    field plus the closing brace are appended.
    """

    if '"summary":' not in text or '"recommendations":' in text:
        return None
    return text.rstrip() + f'", "recommendations": "{RECOMMENDATIONS_FILLER}"}}'


def balance_brackets(text: str) -> str | None:
    """Close every open ``[``/``{`` in nesting order.

    Does not apply when the text stops inside a string literal; guessing
    where a string ends is not conservative.
    """

    stack: list[str] = []
    in_string = False
    escaped = False
    for char in text:
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            stack.append(_CLOSERS[char])
        elif char in ("}", "]"):
            if not stack or stack[-1] != char:
                return None
            stack.pop()
    if in_string or not stack:
        return None
    return text.rstrip().rstrip(",") + "".join(reversed(stack))


DEFAULT_REPAIRS: tuple[Repair, ...] = (close_brace, close_array, balance_brackets)
STATEMENT_REPAIRS: tuple[Repair, ...] = (close_summary_with_recommendations,) + DEFAULT_REPAIRS


def repair_candidates(text: str, repairs: Sequence[Repair] = DEFAULT_REPAIRS) -> Iterator[tuple[str, str]]:
    """Yield ``(repair_name, candidate)`` for every repair that applies to *text*."""

    for repair in repairs:
        name = getattr(repair, "__name__", repr(repair))
        try:
            candidate = repair(text)
        except Exception as exc:  # a broken plug-in repair is skipped, not fatal
            logger.warning("Repair %s raised: %s", name, exc)
            continue
        if candidate is not None and candidate != text:
            yield name, candidate


def clean(
    raw: Any,
    repairs: Sequence[Repair] = DEFAULT_REPAIRS,
    closers: Sequence[str] | None = None,
) -> str:
    """Strip fences and, if the text looks truncated, apply the first repair.

    Best effort: the result is not guaranteed to be valid JSON. Never raises.
    """

    cleaned = strip_fences(raw)
    if not looks_truncated(cleaned, closers):
        return cleaned
    for name, candidate in repair_candidates(cleaned, repairs):
        logger.warning("Model response appears truncated; applied %s", name)
        return candidate
    return cleaned
