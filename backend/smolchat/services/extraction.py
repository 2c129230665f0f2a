"""Recover structured records from free-form model output.

Nothing in this module raises on bad model output. Every public parser
returns either ``Extracted(value)`` when the output yielded a usable record or
``Fallback(value, reason)`` carrying the task's documented default.
"""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Optional, TypeVar, Union

from smolchat.schemas.inbox import Classification, CVMetadata, DraftReply
from smolchat.services.prompts import CLASSIFICATION_CATEGORIES, PERSONA_ECHO_MARKER

logger = logging.getLogger(__name__)

T = TypeVar("T")

PERSONA_MIN_LINE_LENGTH = 50

DEFAULT_CATEGORY = "FYI / Low Priority"
DEFAULT_CONFIDENCE = 0.5

_JSON_FENCE = "```json"
_FENCE = "```"
_LINE_TRIM = " \t\r\n\""
_NBSP = "\u00a0"


@dataclass(frozen=True, slots=True)
class Extracted(Generic[T]):
    value: T

    is_fallback: ClassVar[bool] = False


@dataclass(frozen=True, slots=True)
class Fallback(Generic[T]):
    value: T
    reason: str

    is_fallback: ClassVar[bool] = True


Extraction = Union[Extracted[T], Fallback[T]]


# ============================================================================
# Line selection (persona)
# ============================================================================

def extract_persona_line(raw_output: str, name: str) -> str:
    """Pick the line most likely to be the requested persona sentence.

    A line starting with ``name`` and longer than 50 characters wins outright.
    Otherwise the first line longer than 50 characters containing both
    parentheses is used. Returns ``""`` when nothing qualifies.
    """
    if not raw_output:
        logger.debug("Empty raw output")
        return ""

    structural_match = ""
    for line in raw_output.splitlines():
        line = line.strip(_LINE_TRIM)
        if not line or line == _FENCE or PERSONA_ECHO_MARKER in line:
            continue
        if len(line) <= PERSONA_MIN_LINE_LENGTH:
            continue
        if name and line.startswith(name):
            return line
        if not structural_match and "(" in line and ")" in line:
            structural_match = line

    return structural_match


def build_fallback_persona(name: str, position: str, department: str, language: str) -> str:
    return (
        f"{name} ({position}, {department}). Preferred language: {language}. "
        "Professional tone inferred from writing samples. Direct communication style."
    )


def extract_persona(
    raw_output: str,
    *,
    name: str,
    position: str,
    department: str,
    language: str,
) -> Extraction[str]:
    line = extract_persona_line(raw_output, name)
    if line:
        return Extracted(line)
    return Fallback(build_fallback_persona(name, position, department, language), "no persona line found")


# ============================================================================
# JSON recovery
# ============================================================================

def locate_json_span(text: str) -> Optional[str]:
    """Return the cleaned candidate JSON substring of ``text``, if any.

    Starts after a ```json fence (and the whitespace following it) or at the
    first ``{``; ends at the last ``}``, looking only inside the fenced block
    when it is closed.
    """
    fence = text.find(_JSON_FENCE)
    search_end = len(text)
    if fence == -1:
        start = text.find("{")
    else:
        start = fence + len(_JSON_FENCE)
        while start < len(text) and text[start] in "\n\r ":
            start += 1
        closing = text.find(_FENCE, start)
        if closing != -1:
            search_end = closing

    end = text.rfind("}", 0, search_end)
    if start == -1 or end == -1 or end <= start:
        return None

    candidate = text[start : end + 1].rstrip("`\n\r ")
    return candidate.replace(_NBSP, " ")


def recover_json(text: str) -> Optional[dict[str, Any]]:
    """Parse the JSON object embedded in ``text``; ``None`` when there is none."""
    candidate = locate_json_span(text or "")
    if candidate is None:
        logger.warning("JSON delimiters not found or invalid range in model output")
        return None

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError as exc:
        logger.warning("JSON parse error: %s", exc)
        logger.debug("Attempted to parse: %s", candidate)
        return None

    if not isinstance(parsed, dict):
        logger.warning("Model output JSON is a %s, expected an object", type(parsed).__name__)
        return None
    return parsed


def _as_text(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, str):
        return value.strip() or default
    if isinstance(value, (list, tuple)):
        joined = ", ".join(str(item) for item in value if item is not None)
        return joined or default
    return str(value)


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if item is not None and str(item).strip()]
    return []


def _as_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return min(1.0, max(0.0, number))


def _as_category(value: Any) -> str:
    if isinstance(value, str):
        wanted = value.strip().casefold()
        for category in CLASSIFICATION_CATEGORIES:
            if category.casefold() == wanted:
                return category
    return DEFAULT_CATEGORY


# ============================================================================
# Task parsers
# ============================================================================

def parse_cv_metadata(model_output: str) -> Extraction[CVMetadata]:
    parsed = recover_json(model_output)
    if parsed is None:
        return Fallback(CVMetadata(), "no parseable JSON object")

    defaults = CVMetadata()
    return Extracted(
        CVMetadata(
            name=_as_text(parsed.get("name"), defaults.name),
            position=_as_text(parsed.get("position"), defaults.position),
            skills=_as_list(parsed.get("skills")),
            experience=_as_text(parsed.get("experience"), defaults.experience),
            education=_as_text(parsed.get("education"), defaults.education),
        )
    )


def parse_draft_reply(model_output: str) -> Extraction[DraftReply]:
    parsed = recover_json(model_output)
    if parsed is None:
        return Fallback(DraftReply(), "no parseable JSON object")

    defaults = DraftReply()
    subject = parsed.get("subject")
    reply = parsed.get("draft_reply")
    if not isinstance(reply, str) or not reply.strip():
        return Fallback(defaults, "draft_reply missing from model output")

    return Extracted(
        DraftReply(
            subject=subject.strip() if isinstance(subject, str) and subject.strip() else defaults.subject,
            draft_reply=reply.strip(),
        )
    )


def parse_classification(model_output: str) -> Extraction[Classification]:
    parsed = recover_json(model_output)
    if parsed is None:
        return Fallback(Classification(), "no parseable JSON object")

    category = _as_category(parsed.get("category"))
    if category != parsed.get("category"):
        logger.info("Normalized category %r to %r", parsed.get("category"), category)

    return Extracted(
        Classification(
            category=category,
            confidence=_as_confidence(parsed.get("confidence")),
        )
    )
