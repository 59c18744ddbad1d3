"""
AI request dispatch: typed requests, prompt templates and the dispatcher.

Components:
- models:    DispatchKind, DispatchRequest, DispatchResult and payloads
- templates: one pure prompt renderer per kind
- replies:   parsing of JSON replies for structured kinds
- service:   PromptDispatcher (render → complete → result)
- errors:    typed DispatchError hierarchy with HTTP status codes
"""
from bizpilot.core.dispatch.errors import (
    ConfigurationError,
    DispatchError,
    MalformedReplyError,
    PaymentRequiredError,
    RateLimitedError,
    UnsupportedKindError,
    UpstreamError,
)
from bizpilot.core.dispatch.models import DispatchKind, DispatchRequest, DispatchResult
from bizpilot.core.dispatch.service import PromptDispatcher, get_dispatcher
from bizpilot.core.dispatch.templates import PromptPair, render_prompts

__all__ = [
    "ConfigurationError",
    "DispatchError",
    "MalformedReplyError",
    "PaymentRequiredError",
    "RateLimitedError",
    "UnsupportedKindError",
    "UpstreamError",
    "DispatchKind",
    "DispatchRequest",
    "DispatchResult",
    "PromptDispatcher",
    "get_dispatcher",
    "PromptPair",
    "render_prompts",
]
