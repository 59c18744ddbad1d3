# bizpilot/core/dispatch/templates.py
"""
Prompt templates, one pure renderer per dispatch kind.

Each renderer takes the whole ``DispatchRequest`` and returns the
``PromptPair`` for its kind.  Only the payload object belonging to the
kind is read; other payloads on the request are ignored.

Renderers never fail: missing payloads fall back to ``prompt`` or to a
default instruction, missing attributes render as ``not provided``.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from bizpilot.core.dispatch.models import (
    BusinessData,
    DispatchKind,
    DispatchRequest,
    HistoryMessage,
)

MISSING = "not provided"


@dataclass(frozen=True)
class PromptPair:
    system: str
    user: str

    def to_messages(self, history: list[HistoryMessage] | None = None) -> list[dict[str, str]]:
        """System prompt, prior turns, then the rendered user prompt."""
        messages = [{"role": "system", "content": self.system}]
        for turn in history or []:
            messages.append({"role": turn.role, "content": turn.content})
        messages.append({"role": "user", "content": self.user})
        return messages


def _text(value) -> str:
    if value is None or value == "":
        return MISSING
    return str(value).strip()


def _money(value) -> str:
    if value is None:
        return MISSING
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return f"${value}"


def _business_context(data: BusinessData) -> str:
    goals = ", ".join(data.goals) if data.goals else MISSING
    lines = [
        f"Business: {_text(data.business_name)}",
        f"Industry: {_text(data.industry)}",
        f"Description: {_text(data.description)}",
        f"Goals: {goals}",
        f"Target audience: {_text(data.target_audience)}",
        f"Location: {_text(data.location)}",
    ]
    if data.budget is not None:
        lines.append(f"Budget: {_money(data.budget)}")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# System prompts
# ---------------------------------------------------------------------------

CONTENT_SYSTEM = (
    "You are a social media content expert. Generate engaging, platform-specific content "
    "that drives engagement. Be creative, use emojis appropriately, and keep content concise "
    "yet impactful. Return ONLY the post content without any explanations."
)

HASHTAGS_SYSTEM = (
    "You are a hashtag optimization expert. Generate relevant, trending hashtags that maximize "
    "reach and engagement. Return ONLY hashtags separated by spaces, nothing else."
)

SCHEDULE_SYSTEM = (
    "You are a social media scheduling expert. Analyze the best posting times based on platform "
    "and audience engagement patterns. Return a JSON object with recommended times."
)

LEAD_SCORE_SYSTEM = (
    "You are a sales intelligence expert. Analyze lead data and provide a score from 0-100 based "
    "on potential value, engagement likelihood, and conversion probability. Return ONLY a JSON "
    "object with score and brief reasoning."
)

RECORD_ANALYSIS_SYSTEM = (
    "You are a small-business financial analyst. Review business records and give short, "
    "practical insights: what stands out, possible risks, and one or two recommended actions. "
    "Keep the answer under 120 words and do not invent figures."
)

EXTRACT_LEAD_SYSTEM = (
    "You are a sales assistant that extracts contact details and buying intent from customer "
    "messages. Only report details that appear in the message. Return ONLY a JSON object."
)

CAMPAIGN_SYSTEM = (
    "You are a digital marketing strategist. Design focused, realistic marketing campaigns for "
    "small businesses: a campaign name, objective, target audience, channels, key messages, a "
    "posting cadence and measurable KPIs. Be concise and actionable."
)

SWOT_SYSTEM = (
    "You are a business strategy consultant. Produce a SWOT analysis grounded in the business "
    "context you are given. Return ONLY a JSON object with four arrays of short strings."
)

CONSULTANT_SYSTEM = (
    "You are an experienced small-business consultant. Give specific, prioritized advice that "
    "fits the business context provided. Prefer concrete next steps over general theory."
)

CHAT_SYSTEM = (
    "You are a helpful AI assistant for social media management. Help users with content ideas, "
    "strategy, analytics interpretation, and marketing advice. Be concise and actionable."
)


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def render_content(req: DispatchRequest) -> PromptPair:
    post = req.post_data
    if post is not None:
        user = (
            f"Create a {post.tone or 'professional'} social media post for "
            f"{_text(post.platform)} about: {_text(post.topic)}"
        )
    else:
        user = req.prompt or "Create an engaging social media post"
    return PromptPair(CONTENT_SYSTEM, user)


def render_hashtags(req: DispatchRequest) -> PromptPair:
    return PromptPair(
        HASHTAGS_SYSTEM,
        req.prompt or "Generate trending hashtags for social media marketing",
    )


def render_schedule(req: DispatchRequest) -> PromptPair:
    post = req.post_data
    if post is not None:
        user = (
            f"Suggest optimal posting times for {_text(post.platform)} for content about "
            f"{_text(post.topic)}. Return JSON with format: "
            '{ "times": ["HH:MM AM/PM"], "days": ["day"], "reason": "explanation" }'
        )
    else:
        user = "Suggest optimal posting times for maximum engagement"
    return PromptPair(SCHEDULE_SYSTEM, user)


def render_lead_score(req: DispatchRequest) -> PromptPair:
    lead = req.lead_data
    if lead is not None:
        user = (
            f"Score this lead: Name: {_text(lead.name)}, Company: {_text(lead.company)}, "
            f"Source: {_text(lead.source)}, Potential Value: {_money(lead.value)}. "
            'Return JSON: { "score": number, "reason": "brief explanation", "priority": "high/medium/low" }'
        )
    else:
        user = "Analyze lead potential"
    return PromptPair(LEAD_SCORE_SYSTEM, user)


def render_record_analysis(req: DispatchRequest) -> PromptPair:
    record = req.record_data
    if record is not None:
        user = (
            f"Analyze this business record: Type: {_text(record.record_type)}, "
            f"Title: {_text(record.title)}, Description: {_text(record.description)}, "
            f"Amount: {_money(record.amount)}, Category: {_text(record.category)}. "
            "Give key insights, risks and recommended next actions."
        )
    else:
        user = req.prompt or "Explain which business records a small business should review every month"
    return PromptPair(RECORD_ANALYSIS_SYSTEM, user)


def render_extract_lead(req: DispatchRequest) -> PromptPair:
    message = req.message_data
    if message is not None:
        user = (
            f"Extract lead information from this {_text(message.platform)} message sent by "
            f"{_text(message.contact_name)}: \"{_text(message.content)}\". "
            'Return JSON: { "name": "string or null", "email": "string or null", '
            '"phone": "string or null", "company": "string or null", '
            '"interest": "what they want", "intent": "high/medium/low" }'
        )
    else:
        user = req.prompt or "Explain what details make a customer message a qualified lead"
    return PromptPair(EXTRACT_LEAD_SYSTEM, user)


def render_generate_campaign(req: DispatchRequest) -> PromptPair:
    business = req.business_data
    if business is not None:
        user = f"Create a marketing campaign for this business.\n{_business_context(business)}"
        if req.prompt:
            user += f"\nAdditional instructions: {req.prompt}"
    else:
        user = req.prompt or "Create a 30-day marketing campaign to increase sales and brand awareness"
    return PromptPair(CAMPAIGN_SYSTEM, user)


def render_swot_analysis(req: DispatchRequest) -> PromptPair:
    business = req.business_data
    context = _business_context(business) if business is not None else (req.prompt or "a typical small business")
    user = (
        f"Perform a SWOT analysis for this business.\n{context}\n"
        'Return JSON: { "strengths": ["..."], "weaknesses": ["..."], '
        '"opportunities": ["..."], "threats": ["..."] }'
    )
    return PromptPair(SWOT_SYSTEM, user)


def render_business_consultant(req: DispatchRequest) -> PromptPair:
    question = req.prompt or "What should I focus on this quarter to grow the business?"
    business = req.business_data
    if business is not None:
        user = f"Business context:\n{_business_context(business)}\n\nQuestion: {question}"
    else:
        user = question
    return PromptPair(CONSULTANT_SYSTEM, user)


def render_chat(req: DispatchRequest) -> PromptPair:
    return PromptPair(CHAT_SYSTEM, req.prompt or "How can I improve my social media presence?")


Renderer = Callable[[DispatchRequest], PromptPair]

TEMPLATES: dict[DispatchKind, Renderer] = {
    DispatchKind.CONTENT: render_content,
    DispatchKind.HASHTAGS: render_hashtags,
    DispatchKind.SCHEDULE: render_schedule,
    DispatchKind.LEAD_SCORE: render_lead_score,
    DispatchKind.RECORD_ANALYSIS: render_record_analysis,
    DispatchKind.EXTRACT_LEAD: render_extract_lead,
    DispatchKind.GENERATE_CAMPAIGN: render_generate_campaign,
    DispatchKind.SWOT_ANALYSIS: render_swot_analysis,
    DispatchKind.BUSINESS_CONSULTANT: render_business_consultant,
    DispatchKind.CHAT: render_chat,
}


def render_prompts(req: DispatchRequest) -> PromptPair:
    """Select the renderer for the request's kind (CHAT when unknown)."""
    return TEMPLATES[req.resolved_kind](req)
