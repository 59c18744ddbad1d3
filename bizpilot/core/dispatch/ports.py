# bizpilot/core/dispatch/ports.py
from __future__ import annotations
from typing import Protocol


class CompletionGateway(Protocol):
    async def complete(self, messages: list[dict[str, str]]) -> str:
        """
        Send one chat-completion request and return the first choice's text.

        Raises a DispatchError subtype on missing credentials or upstream failure.
        """
        ...
