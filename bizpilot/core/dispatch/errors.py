# bizpilot/core/dispatch/errors.py
"""
Typed errors for AI request dispatch.

Each error maps to a specific HTTP status code.  The transport layer
catches ``DispatchError`` subtypes and converts them to ``{"error": ...}``
responses without embedding any upstream knowledge in the route handlers.
"""
from __future__ import annotations


class DispatchError(Exception):
    """Base class for all dispatch errors."""

    status_code: int = 500
    default_detail: str = "Internal error"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class ConfigurationError(DispatchError):
    """AI gateway credential or setting missing (500)."""

    status_code = 500
    default_detail = "AI_GATEWAY_API_KEY is not configured"


class RateLimitedError(DispatchError):
    """Upstream answered 429; the caller may retry later (429)."""

    status_code = 429
    default_detail = "Rate limit exceeded. Please try again later."


class PaymentRequiredError(DispatchError):
    """Upstream answered 402; credits must be added (402)."""

    status_code = 402
    default_detail = "Please add credits to continue using AI features."


class UpstreamError(DispatchError):
    """Any other upstream status, network failure or unreadable body (500)."""

    status_code = 500
    default_detail = "AI gateway error"


class MalformedReplyError(DispatchError):
    """Reply text was not the JSON the kind's template asked for (502)."""

    status_code = 502
    default_detail = "AI reply was not valid structured data"


class UnsupportedKindError(DispatchError):
    """Kind has no structured reply format (400)."""

    status_code = 400
    default_detail = "This kind has no structured reply"
