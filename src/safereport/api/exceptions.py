"""Exception handlers: every error leaves the API as ``{error, code}``."""

import logging
from http import HTTPStatus
from traceback import format_exc

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from safereport.configs.system import APIConfig
from safereport.core.completion import CompletionError, ConfigurationError
from safereport.core.metrics import EVIDENCE_UPLOADS_TOTAL
from safereport.infra.db import IncidentNotFound
from safereport.infra.identity import IdentityError
from safereport.infra.storage import EvidenceRejected, EvidenceTooLarge
from safereport.infra.telemetry import get_current_trace_id

logger = logging.getLogger(__name__)


def error_response(
    status_code: int, message: str, code: str, **extra: object
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": message, "code": code, **extra},
    )


def _status_code_name(status_code: int) -> str:
    try:
        return HTTPStatus(status_code).name
    except ValueError:
        return f"HTTP_{status_code}"


def register_exception_handlers(app: FastAPI, config: APIConfig) -> None:
    """Register custom exception handlers on ``app``."""

    @app.exception_handler(CompletionError)
    async def handle_completion_error(
        request: Request, exc: CompletionError
    ) -> JSONResponse:
        # Credentials problems are ours; everything else is the provider's.
        status_code = 500 if isinstance(exc, ConfigurationError) else 502
        return error_response(status_code, exc.message, exc.code)

    @app.exception_handler(IdentityError)
    async def handle_identity_error(
        request: Request, exc: IdentityError
    ) -> JSONResponse:
        return error_response(exc.status_code, exc.message, exc.code)

    @app.exception_handler(IncidentNotFound)
    async def handle_incident_not_found(
        request: Request, exc: IncidentNotFound
    ) -> JSONResponse:
        return error_response(404, str(exc), "NOT_FOUND")

    @app.exception_handler(EvidenceRejected)
    async def handle_evidence_rejected(
        request: Request, exc: EvidenceRejected
    ) -> JSONResponse:
        too_large = isinstance(exc, EvidenceTooLarge)
        EVIDENCE_UPLOADS_TOTAL.labels(
            result="too_large" if too_large else "unsupported_type"
        ).inc()
        return error_response(413 if too_large else 415, exc.message, exc.code)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        return error_response(
            422,
            "Request validation failed",
            "VALIDATION_ERROR",
            details=jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": str(exc.detail),
                "code": _status_code_name(exc.status_code),
            },
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        extra: dict[str, object] = {"trace_id": get_current_trace_id()}
        if config.send_traceback:
            extra["traceback"] = format_exc()
        return error_response(500, "Internal server error", "INTERNAL_ERROR", **extra)
