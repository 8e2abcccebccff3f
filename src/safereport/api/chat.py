"""Completion endpoint used by the intake chat.

The reporting surface keeps the conversation; each call carries the
prior turns, the new message and the summary flag.  Provider
credentials never leave the server.
"""

from fastapi import APIRouter, HTTPException

from safereport.core.completion import CompletionEnvelope, CompletionRequest

from .deps import AppConfigDep, CompletionServiceDep
from .models import ErrorResponse

router = APIRouter(prefix="/api/v1", tags=["chat"])


@router.post(
    "/chat",
    response_model=CompletionEnvelope,
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    },
)
async def chat(
    chat_request: CompletionRequest,
    service: CompletionServiceDep,
    config: AppConfigDep,
) -> CompletionEnvelope:
    """Return the next assistant question, or the summary when
    ``isSummaryRequest`` is set, as ``{choices: [{message}]}``."""
    if not chat_request.message.strip():
        raise HTTPException(status_code=400, detail="No message provided")
    if len(chat_request.message) > config.api.chat_message_max_length:
        raise HTTPException(status_code=400, detail="Message is too long")

    reply = await service.complete(chat_request)
    return CompletionEnvelope.from_message(reply)
