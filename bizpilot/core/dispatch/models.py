# bizpilot/core/dispatch/models.py
"""
Request/result models for AI dispatch.

Field aliases follow the dashboard's camelCase JSON (``leadData``,
``contactName``); snake_case names are accepted too.
"""
from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class DispatchKind(str, Enum):
    """Known request kinds.  Anything else is treated as CHAT."""
    CONTENT = "content"
    HASHTAGS = "hashtags"
    SCHEDULE = "schedule"
    LEAD_SCORE = "lead_score"
    RECORD_ANALYSIS = "record_analysis"
    EXTRACT_LEAD = "extract_lead"
    GENERATE_CAMPAIGN = "generate_campaign"
    SWOT_ANALYSIS = "swot_analysis"
    BUSINESS_CONSULTANT = "business_consultant"
    CHAT = "chat"

    @classmethod
    def resolve(cls, raw: str | None) -> "DispatchKind":
        """Map a raw tag to a kind (exact match), falling back to CHAT."""
        if not raw:
            return cls.CHAT
        try:
            return cls(raw)
        except ValueError:
            return cls.CHAT


Number = int | float


class _Payload(BaseModel):
    # Numeric text fields (an all-digit company name, a year as topic) arrive as JSON numbers
    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)


# ---------------------------------------------------------------------------
# Kind-specific payloads
# ---------------------------------------------------------------------------

class LeadData(_Payload):
    name: str | None = None
    company: str | None = None
    source: str | None = None
    value: Number | None = None


class PostData(_Payload):
    topic: str | None = None
    platform: str | None = None
    tone: str | None = None


class RecordData(_Payload):
    # "type" in the dashboard payload is the record type (invoice, expense, ...)
    record_type: str | None = Field(
        default=None, validation_alias=AliasChoices("type", "record_type", "recordType"),
    )
    title: str | None = None
    description: str | None = None
    amount: Number | None = None
    category: str | None = None


class MessageData(_Payload):
    content: str | None = None
    platform: str | None = None
    contact_name: str | None = Field(
        default=None, validation_alias=AliasChoices("contactName", "contact_name"),
    )


class BusinessData(_Payload):
    """Business-profile context used by campaign, SWOT and consultant kinds."""
    business_name: str | None = Field(
        default=None, validation_alias=AliasChoices("businessName", "business_name", "name"),
    )
    industry: str | None = None
    description: str | None = None
    goals: list[str] = Field(default_factory=list)
    target_audience: str | None = Field(
        default=None, validation_alias=AliasChoices("targetAudience", "target_audience"),
    )
    location: str | None = None
    budget: Number | None = None

    @field_validator("goals", mode="before")
    @classmethod
    def goals_as_list(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            return [g.strip() for g in v.split(",") if g.strip()]
        return v


class HistoryMessage(_Payload):
    role: Literal["user", "assistant"]
    content: str


# ---------------------------------------------------------------------------
# Request / result
# ---------------------------------------------------------------------------

class DispatchRequest(_Payload):
    """One AI request.  ``kind`` may also arrive as ``type``."""

    kind: str | None = Field(default=None, validation_alias=AliasChoices("kind", "type"))
    prompt: str | None = None
    history: list[HistoryMessage] = Field(default_factory=list)

    lead_data: LeadData | None = Field(default=None, validation_alias=AliasChoices("leadData", "lead_data"))
    post_data: PostData | None = Field(default=None, validation_alias=AliasChoices("postData", "post_data"))
    record_data: RecordData | None = Field(default=None, validation_alias=AliasChoices("recordData", "record_data"))
    message_data: MessageData | None = Field(default=None, validation_alias=AliasChoices("messageData", "message_data"))
    business_data: BusinessData | None = Field(
        default=None, validation_alias=AliasChoices("businessData", "business_data"),
    )

    @field_validator("kind", mode="before")
    @classmethod
    def kind_as_tag(cls, v):
        """Numbers are read as their text; any other non-string kind counts as missing."""
        if isinstance(v, bool):
            return None
        if isinstance(v, (int, float)):
            return str(v)
        return v if isinstance(v, str) else None

    @property
    def resolved_kind(self) -> DispatchKind:
        return DispatchKind.resolve(self.kind)

    @property
    def echoed_kind(self) -> str:
        """Kind as the caller sent it (``chat`` when absent)."""
        return self.kind if self.kind else DispatchKind.CHAT.value


class DispatchResult(BaseModel):
    content: str
    kind: str
