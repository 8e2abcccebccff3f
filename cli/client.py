"""HTTP client for the SafeReport API."""

import logging
import mimetypes
from pathlib import Path
from typing import Any

import httpx

from safereport.core.completion.http import HttpCompletionService
from safereport.core.incidents import IncidentCreate
from safereport.core.intake.handoff import IncidentDraft

from .config import CLIConfig

logger = logging.getLogger(__name__)


class APIError(Exception):
    """Non-2xx answer from the SafeReport API."""

    def __init__(self, status_code: int, message: str, code: str | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.code = code


class SafeReportClient:
    """One ``httpx.AsyncClient`` shared by the intake chat and submission."""

    def __init__(
        self,
        config: CLIConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.client = httpx.AsyncClient(
            base_url=config.base_url,
            headers=config.headers,
            timeout=config.timeout,
            transport=transport,
        )

    def completion_service(self) -> HttpCompletionService:
        return HttpCompletionService(self.client)

    async def upload_evidence(self, path: Path) -> str:
        """Upload a local file and return its evidence reference."""
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        response = await self.client.post(
            "/api/v1/evidence",
            files={"file": (path.name, path.read_bytes(), content_type)},
        )
        body = _checked_json(response)
        logger.debug("Uploaded %s as %s", path, body["reference"])
        return body["reference"]

    async def submit_incident(self, draft: IncidentDraft) -> dict[str, Any]:
        payload = IncidentCreate(
            type=draft.type,
            description=draft.description,
            location=draft.location,
            evidence_reference=draft.evidence_reference,
            is_anonymous=draft.is_anonymous,
        )
        response = await self.client.post(
            "/api/v1/incidents", json=payload.model_dump(mode="json")
        )
        return _checked_json(response)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()


def _checked_json(response: httpx.Response) -> Any:
    try:
        body = response.json()
    except ValueError:
        body = None
    if response.is_error:
        if isinstance(body, dict) and "error" in body:
            raise APIError(response.status_code, str(body["error"]), body.get("code"))
        raise APIError(response.status_code, f"HTTP {response.status_code}")
    return body
