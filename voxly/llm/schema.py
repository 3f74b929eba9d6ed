"""
Canonical summary shape and the loose coercions that produce it.

Model output is semi-structured at best: the functions here never raise,
they always hand back something of the expected shape.
"""

import enum
import json
import re
from typing import Any, Literal

from pydantic import BaseModel, Field

from voxly.logger import logger

SUMMARY_FIELDS = ("decisions", "keyPoints", "nextSteps", "actionItems")

CODE_FENCE_RE = re.compile(r"```(?:json|javascript)?\s*(.*?)```", re.DOTALL)


class Priority(enum.StrEnum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class ActionItem(BaseModel):
    text: str
    priority: Priority = Priority.MEDIUM
    assignee: str | None = None


class Summary(BaseModel):
    decisions: list[str] = Field(default_factory=list)
    keyPoints: list[str] = Field(default_factory=list)
    nextSteps: list[str] = Field(default_factory=list)
    actionItems: list[ActionItem] = Field(default_factory=list)


class ChatMessage(BaseModel):
    role: Literal["user", "assistant"]
    content: str


def normalize_summary(raw: Any) -> dict[str, list]:
    """
    Coerce anything into the four-field summary dict.

    Fields that are not lists become empty lists; list contents are kept
    as-is. Applying it twice gives the same result as applying it once.
    """
    if not isinstance(raw, dict):
        raw = {}
    return {
        field: list(raw[field]) if isinstance(raw.get(field), list) else []
        for field in SUMMARY_FIELDS
    }


def normalize_string_list(items: Any) -> list[str]:
    """
    Flatten a summary list into plain strings before it is persisted.

    Strings are kept, objects contribute their `text`, anything else and
    blank entries are dropped.
    """
    if not isinstance(items, list):
        return []

    result = []
    for item in items:
        if isinstance(item, dict):
            item = item.get("text")
        if isinstance(item, str) and item.strip():
            result.append(item.strip())
    return result


def normalize_action_items(items: Any) -> list[dict]:
    """
    Clean action items before they are persisted: entries without text are
    dropped, unknown priorities become MEDIUM, assignees are kept only when
    given. Assignees are never made up here.
    """
    if not isinstance(items, list):
        return []

    result = []
    for item in items:
        if isinstance(item, str):
            item = {"text": item}
        if not isinstance(item, dict):
            continue
        text = item.get("text")
        if not isinstance(text, str) or not text.strip():
            continue

        priority = item.get("priority")
        if isinstance(priority, str):
            priority = priority.strip().upper()
        if priority not in Priority.__members__:
            priority = Priority.MEDIUM

        action = ActionItem(text=text.strip(), priority=priority)
        assignee = item.get("assignee")
        if isinstance(assignee, str) and assignee.strip():
            action.assignee = assignee.strip()
        result.append(action.model_dump(mode="json", exclude_none=True))
    return result


def parse_loose(raw_text: Any) -> Any:
    """
    Best-effort JSON decoding of a model answer.

    Tries a strict parse first, then the content of a markdown code fence,
    then the outermost `{...}` span. Returns an empty dict when nothing
    parses. The result still has to go through `normalize_summary`, a
    well-formed answer of the wrong shape is not caught here.
    """
    if not isinstance(raw_text, str) or not raw_text.strip():
        return {}

    text = raw_text.strip()
    try:
        return json.loads(text)
    except ValueError:
        pass

    match = CODE_FENCE_RE.search(text)
    if match:
        try:
            return json.loads(match.group(1).strip())
        except ValueError:
            pass

    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        try:
            result = json.loads(text[start : end + 1])
            logger.warning("Recovered JSON object from noisy LLM output")
            return result
        except ValueError:
            pass

    logger.warning("Unable to parse LLM output as JSON", preview=text[:200])
    return {}


def normalize_chat_messages(messages: Any) -> list[dict[str, str]]:
    if not isinstance(messages, list):
        return []

    result = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        role = "assistant" if message.get("role") == "assistant" else "user"
        content = message.get("content")
        if not isinstance(content, str) or not content.strip():
            continue
        result.append(ChatMessage(role=role, content=content.strip()).model_dump())
    return result
