"""Tagged JSON encoding of user answers as stored on submission records.

Each question type stores its answer under a fixed key next to the ``type``
tag.  Unknown types keep the original value under ``raw`` so nothing is lost.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict

from server.services.dispatcher import QuestionType

logger = logging.getLogger(__name__)

PAYLOAD_KEYS: Dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: "selected",
    QuestionType.FILL_IN_THE_BLANKS: "entered",
    QuestionType.SELECT_ALL_THAT_APPLY: "selected",
    QuestionType.RANKED_CHOICE: "order",
    QuestionType.DRAG_AND_DROP: "placements",
}
RAW_KEY = "raw"
LEGACY_LANGUAGE = "Unknown"


def build_answer(question_type: str, response: Any, *, language: str | None = None) -> Dict[str, Any]:
    """Return the tagged answer dict for *response*.

    For programming questions *response* is the source code and *language*
    names the language it was written in.
    """

    parsed = QuestionType.parse(question_type)
    if parsed is QuestionType.PROGRAMMING:
        return {
            "type": parsed.value,
            "language": language or LEGACY_LANGUAGE,
            "code": response,
        }
    if parsed is None:
        return {"type": question_type, RAW_KEY: response}

    value = response
    if parsed in (QuestionType.SELECT_ALL_THAT_APPLY, QuestionType.RANKED_CHOICE):
        value = list(response or [])
    elif parsed is QuestionType.DRAG_AND_DROP:
        value = dict(response or {})
    return {"type": parsed.value, PAYLOAD_KEYS[parsed]: value}


def dump_answer(answer: Dict[str, Any]) -> str:
    """Serialize a tagged answer compactly, preserving key order."""

    return json.dumps(answer, ensure_ascii=False, separators=(",", ":"))


def load_answer(raw: str | bytes | None) -> Dict[str, Any] | None:
    """Parse a stored answer.

    Values that are not JSON objects predate tagged answers and held plain
    source code, so they are read back as a programming answer.
    """

    if raw is None:
        return None
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Stored answer is not JSON; treating as legacy code")
        parsed = None
    if isinstance(parsed, dict) and "type" in parsed:
        return parsed
    return {"type": QuestionType.PROGRAMMING.value, "language": LEGACY_LANGUAGE, "code": raw}


def serialize_answer(question_type: str, response: Any, *, language: str | None = None) -> str:
    return dump_answer(build_answer(question_type, response, language=language))


def answer_value(answer: Dict[str, Any]) -> Any:
    """Return the user's response held inside a tagged answer."""

    parsed = QuestionType.parse(answer.get("type"))
    if parsed is QuestionType.PROGRAMMING:
        return answer.get("code")
    if parsed is None:
        return answer.get(RAW_KEY)
    return answer.get(PAYLOAD_KEYS[parsed])


__all__ = [
    "answer_value",
    "build_answer",
    "dump_answer",
    "load_answer",
    "serialize_answer",
]
