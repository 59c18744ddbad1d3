# bizpilot/core/dispatch/replies.py
"""
Structured reply parsing for kinds whose templates ask for JSON.

The raw dispatch path never parses replies.  Callers that need the data
use ``parse_reply`` and get a ``MalformedReplyError`` instead of a silent
default when the model did not follow the format.
"""
from __future__ import annotations

import json
import re
from typing import Literal, TypeVar

from pydantic import BaseModel, Field, ValidationError, field_validator

from bizpilot.core.dispatch.errors import MalformedReplyError, UnsupportedKindError
from bizpilot.core.dispatch.models import DispatchKind

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*\n?(.*?)\n?```$", re.DOTALL)


class LeadScore(BaseModel):
    score: int = Field(ge=0, le=100)
    reason: str
    priority: Literal["high", "medium", "low"]

    @field_validator("priority", mode="before")
    @classmethod
    def lower_priority(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class ScheduleSuggestion(BaseModel):
    times: list[str]
    days: list[str]
    reason: str


class ExtractedLead(BaseModel):
    name: str | None = None
    email: str | None = None
    phone: str | None = None
    company: str | None = None
    interest: str | None = None
    intent: Literal["high", "medium", "low"] = "medium"

    @field_validator("intent", mode="before")
    @classmethod
    def lower_intent(cls, v):
        return v.strip().lower() if isinstance(v, str) else v


class SwotAnalysis(BaseModel):
    strengths: list[str]
    weaknesses: list[str]
    opportunities: list[str]
    threats: list[str]


REPLY_MODELS: dict[DispatchKind, type[BaseModel]] = {
    DispatchKind.LEAD_SCORE: LeadScore,
    DispatchKind.SCHEDULE: ScheduleSuggestion,
    DispatchKind.EXTRACT_LEAD: ExtractedLead,
    DispatchKind.SWOT_ANALYSIS: SwotAnalysis,
}

M = TypeVar("M", bound=BaseModel)


def strip_code_fence(content: str) -> str:
    """Remove a surrounding Markdown code fence (```json ... ```), if any."""
    text = content.strip()
    m = _FENCE_RE.match(text)
    return m.group(1).strip() if m else text


def parse_reply(content: str, model: type[M]) -> M:
    """Parse reply text into *model*, raising MalformedReplyError on any mismatch."""
    text = strip_code_fence(content)
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise MalformedReplyError(f"AI reply is not valid JSON: {exc.msg}") from exc

    if not isinstance(data, dict):
        raise MalformedReplyError("AI reply is not a JSON object")

    try:
        return model.model_validate(data)
    except ValidationError as exc:
        fields = ", ".join(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        raise MalformedReplyError(f"AI reply does not match {model.__name__}: {fields}") from exc


def reply_model_for(kind: DispatchKind) -> type[BaseModel]:
    model = REPLY_MODELS.get(kind)
    if model is None:
        raise UnsupportedKindError(f"Kind '{kind.value}' has no structured reply")
    return model
