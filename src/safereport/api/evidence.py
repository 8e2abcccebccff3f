"""Evidence upload endpoint."""

from fastapi import APIRouter, File, UploadFile, status

from safereport.core.metrics import EVIDENCE_UPLOADS_TOTAL
from safereport.infra.telemetry import (
    ATTR_EVIDENCE_CONTENT_TYPE,
    ATTR_EVIDENCE_SIZE,
    SPAN_EVIDENCE_SAVE,
    tracer,
)

from .deps import EvidenceStorageDep, IdentityDep
from .models import ErrorResponse, EvidenceUploadResponse

router = APIRouter(prefix="/api/v1", tags=["evidence"])


@router.post(
    "/evidence",
    response_model=EvidenceUploadResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        401: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
    },
)
async def upload_evidence(
    storage: EvidenceStorageDep,
    identity: IdentityDep,
    file: UploadFile = File(...),
) -> EvidenceUploadResponse:
    """Store one file under the uploader's prefix.

    At most ``max_size_bytes + 1`` bytes are read, which is enough to
    tell an oversized upload apart without buffering all of it.
    """
    data = await file.read(storage.max_size_bytes + 1)
    with tracer.start_as_current_span(SPAN_EVIDENCE_SAVE) as span:
        span.set_attribute(ATTR_EVIDENCE_SIZE, len(data))
        span.set_attribute(ATTR_EVIDENCE_CONTENT_TYPE, file.content_type or "")
        stored = await storage.save(
            identity.user_id, file.filename, file.content_type, data
        )
    EVIDENCE_UPLOADS_TOTAL.labels(result="ok").inc()
    return EvidenceUploadResponse(reference=stored.reference, url=stored.url)
