"""Completion service backed by the SafeReport completion endpoint.

Used by reporting surfaces (the CLI) that hold the conversation
session locally and reach the provider through the server, which
keeps the provider credentials.
"""

import logging
from typing import Any

import httpx

from safereport.core.intake.models import ChatMessage

from .errors import (
    CompletionError,
    MalformedResponseError,
    TransportError,
    error_from_code,
)
from .models import CompletionEnvelope, CompletionRequest
from .service import CompletionService

logger = logging.getLogger(__name__)

COMPLETION_PATH = "/api/v1/chat"


class HttpCompletionService(CompletionService):
    """POSTs the wire request and validates the ``choices`` envelope."""

    def __init__(self, client: httpx.AsyncClient, path: str = COMPLETION_PATH) -> None:
        self._client = client
        self._path = path

    async def complete(self, request: CompletionRequest) -> ChatMessage:
        try:
            response = await self._client.post(self._path, json=request.to_wire())
        except httpx.HTTPError as exc:
            raise TransportError(f"Completion endpoint unreachable: {exc}") from exc

        try:
            data: Any = response.json()
        except ValueError as exc:
            if response.is_error:
                raise TransportError(
                    f"Completion endpoint returned HTTP {response.status_code}"
                ) from exc
            raise MalformedResponseError("Completion endpoint returned non-JSON") from exc

        if response.is_error:
            raise _error_from_body(response.status_code, data)

        return CompletionEnvelope.parse(data).first_message()


def _error_from_body(status_code: int, data: Any) -> CompletionError:
    if isinstance(data, dict) and isinstance(data.get("error"), str):
        message = data["error"]
        code = data.get("code")
    else:
        message, code = f"Completion endpoint returned HTTP {status_code}", None
    logger.debug("Completion endpoint error %s (code=%s)", status_code, code)
    return error_from_code(code, message)
