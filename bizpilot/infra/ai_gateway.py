# bizpilot/infra/ai_gateway.py
"""
Chat-completion gateway client.

One HTTPS POST per call, bearer credential from config, no retries.
Upstream outcomes are mapped onto the dispatch error taxonomy:

- 429          → RateLimitedError (caller may retry later)
- 402          → PaymentRequiredError (credits must be added)
- other non-2xx, network failure, timeout, unreadable body → UpstreamError

The API key is never logged.
"""
from __future__ import annotations

import httpx

from bizpilot.core.dispatch.errors import (
    ConfigurationError,
    PaymentRequiredError,
    RateLimitedError,
    UpstreamError,
)
from bizpilot.infra.logging_config import get_logger, truncate_for_log

logger = get_logger(__name__)


class ChatCompletionGateway:
    """OpenAI-compatible chat-completion client."""

    def __init__(
        self,
        api_key: str | None,
        url: str,
        model: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_key = api_key
        self._url = url
        self._model = model
        self._timeout = timeout
        self._transport = transport

    @property
    def model(self) -> str:
        return self._model

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    async def complete(self, messages: list[dict[str, str]]) -> str:
        if not self._api_key:
            logger.error("AI gateway called without a configured API key")
            raise ConfigurationError()

        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.post(
                    self._url,
                    headers={
                        "Authorization": f"Bearer {self._api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "model": self._model,
                        "messages": messages,
                    },
                )
        except httpx.TimeoutException as exc:
            logger.error("AI gateway timed out after %ss (%s)", self._timeout, type(exc).__name__)
            raise UpstreamError() from exc
        except httpx.HTTPError as exc:
            logger.error("AI gateway request failed: %s", type(exc).__name__)
            raise UpstreamError() from exc

        if resp.status_code == 429:
            logger.warning("AI gateway rate limited (HTTP 429)", extra={"upstream_status": 429})
            raise RateLimitedError()
        if resp.status_code == 402:
            logger.warning("AI gateway requires credits (HTTP 402)", extra={"upstream_status": 402})
            raise PaymentRequiredError()
        if not resp.is_success:
            logger.error(
                "AI gateway error: HTTP %d %s",
                resp.status_code, truncate_for_log(resp.text),
                extra={"upstream_status": resp.status_code},
            )
            raise UpstreamError()

        try:
            data = resp.json()
        except ValueError as exc:
            logger.error("AI gateway returned a non-JSON body: %s", truncate_for_log(resp.text))
            raise UpstreamError() from exc

        return self._first_choice_text(data)

    @staticmethod
    def _first_choice_text(data) -> str:
        """
        ``choices[0].message.content``, or "" when any part is missing.

        A ``choices`` that is present but not a list is an unreadable body.
        """
        if not isinstance(data, dict):
            return ""
        choices = data.get("choices")
        if choices is None:
            return ""
        if not isinstance(choices, list):
            logger.error("AI gateway body has non-list choices: %s", type(choices).__name__)
            raise UpstreamError()
        if not choices or not isinstance(choices[0], dict):
            return ""
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        return content if isinstance(content, str) else ""


def get_completion_gateway() -> ChatCompletionGateway:
    """Create the gateway client from app config.

    A missing API key does not fail here; each call fails with
    ConfigurationError before touching the network.
    """
    from bizpilot.config import settings

    if not settings.ai_gateway_configured:
        logger.error("AI gateway configured without AI_GATEWAY_API_KEY; AI requests will fail")

    return ChatCompletionGateway(
        api_key=settings.ai_gateway_api_key,
        url=settings.ai_gateway_url,
        model=settings.ai_model,
        timeout=settings.ai_timeout_seconds,
    )
