# bizpilot/core/dispatch/service.py
"""
Prompt dispatcher: kind → templates → one completion call → result.

The dispatcher is stateless.  The gateway (and with it the credential)
is injected at construction, so tests can pass a stub and the HTTP
layer can share one instance across requests.
"""
from __future__ import annotations

from pydantic import BaseModel

from bizpilot.core.dispatch.errors import DispatchError, MalformedReplyError
from bizpilot.core.dispatch.models import DispatchRequest, DispatchResult
from bizpilot.core.dispatch.ports import CompletionGateway
from bizpilot.core.dispatch.replies import parse_reply, reply_model_for
from bizpilot.core.dispatch.templates import render_prompts
from bizpilot.infra.logging_config import get_logger
from bizpilot.infra.metrics import AppMetrics

logger = get_logger(__name__)


class PromptDispatcher:

    def __init__(self, gateway: CompletionGateway, max_history_messages: int = 20) -> None:
        self._gateway = gateway
        self._max_history = max_history_messages

    async def dispatch(self, request: DispatchRequest) -> DispatchResult:
        """
        Render the request's prompts and make exactly one completion call.

        The reply text is returned verbatim; nothing is parsed or retried.
        Raises a DispatchError subtype on failure.
        """
        kind = request.resolved_kind
        echoed = request.echoed_kind
        if echoed != kind.value:
            logger.info(
                "Unknown kind '%s', using %s template", echoed[:40], kind.value,
                extra={"kind": kind.value},
            )

        prompts = render_prompts(request)
        history = request.history[-self._max_history:] if self._max_history > 0 else []
        messages = prompts.to_messages(history)

        AppMetrics.dispatch_requested(kind.value)
        try:
            with AppMetrics.track_dispatch_time(kind.value):
                content = await self._gateway.complete(messages)
        except DispatchError as exc:
            AppMetrics.dispatch_failed(kind.value, type(exc).__name__)
            raise

        logger.debug(
            "AI reply received: %d chars", len(content),
            extra={"kind": kind.value},
        )
        return DispatchResult(content=content, kind=echoed)

    async def dispatch_structured(self, request: DispatchRequest) -> tuple[DispatchResult, BaseModel]:
        """
        Dispatch a kind with a JSON reply format and parse the reply.

        Raises UnsupportedKindError before any call when the kind has no
        reply format, and MalformedReplyError when the reply does not parse.
        """
        kind = request.resolved_kind
        model = reply_model_for(kind)

        result = await self.dispatch(request)
        try:
            data = parse_reply(result.content, model)
        except MalformedReplyError as exc:
            AppMetrics.malformed_reply(kind.value)
            logger.warning(
                "Malformed structured reply: %s", exc.detail,
                extra={"kind": kind.value},
            )
            raise
        return result, data


def get_dispatcher() -> PromptDispatcher:
    """Create a dispatcher wired to the configured completion gateway."""
    from bizpilot.config import settings
    from bizpilot.infra.ai_gateway import get_completion_gateway

    return PromptDispatcher(
        gateway=get_completion_gateway(),
        max_history_messages=settings.ai_max_history_messages,
    )
