"""Incident endpoints: reporter submission and edits, reviewer dashboard."""

import logging

from fastapi import APIRouter, HTTPException, Query, status

from safereport.core.incidents import (
    Hotspot,
    IncidentCreate,
    IncidentOut,
    IncidentStatus,
    IncidentUpdate,
    StatusUpdate,
    compute_hotspots,
)
from safereport.core.metrics import INCIDENT_STATUS_CHANGES_TOTAL, INCIDENTS_CREATED_TOTAL
from safereport.infra.db import Incident
from safereport.infra.identity import Forbidden, Identity, Unauthenticated
from safereport.infra.storage import LocalEvidenceStorage
from safereport.infra.telemetry import (
    ATTR_INCIDENT_ID,
    ATTR_INCIDENT_STATUS,
    SPAN_INCIDENT_STATUS,
    tracer,
)

from .deps import (
    AuthorityDep,
    EvidenceStorageDep,
    IdentityDep,
    IncidentRepositoryDep,
    OptionalIdentityDep,
)
from .models import ErrorResponse

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/incidents",
    tags=["incidents"],
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
)


def _to_out(
    incident: Incident,
    storage: LocalEvidenceStorage,
    viewer: Identity | None,
) -> IncidentOut:
    out = IncidentOut.model_validate(incident)
    updates: dict[str, object] = {}
    if incident.evidence_reference:
        updates["evidence_url"] = storage.url_for(incident.evidence_reference)
    is_owner = viewer is not None and viewer.user_id == incident.user_id
    if incident.is_anonymous and not is_owner:
        updates["user_id"] = None
    return out.model_copy(update=updates) if updates else out


def _can_view(incident: Incident, viewer: Identity) -> bool:
    return viewer.is_authority or viewer.user_id == incident.user_id


def _check_evidence(
    reference: str,
    storage: LocalEvidenceStorage,
    identity: Identity | None,
) -> None:
    # The first segment of a reference is the uploader's id.
    if identity is None:
        raise Unauthenticated("Sign in to attach evidence")
    if reference.split("/", 1)[0] != identity.user_id:
        raise Forbidden("Evidence belongs to another user")
    if not storage.exists(reference):
        raise HTTPException(status_code=422, detail=f"Evidence {reference!r} not found")


@router.post("", response_model=IncidentOut, status_code=status.HTTP_201_CREATED)
async def create_incident(
    payload: IncidentCreate,
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: OptionalIdentityDep,
) -> IncidentOut:
    """Submit a report. The status starts as ``pending`` with an empty log."""
    if payload.evidence_reference:
        _check_evidence(payload.evidence_reference, storage, identity)
    user_id = identity.user_id if identity else None
    incident = await repo.create(payload, user_id)
    INCIDENTS_CREATED_TOTAL.labels(type=incident.type).inc()
    return _to_out(incident, storage, identity)


@router.get("/mine", response_model=list[IncidentOut])
async def list_my_incidents(
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: IdentityDep,
) -> list[IncidentOut]:
    incidents = await repo.list_incidents(user_id=identity.user_id)
    return [_to_out(i, storage, identity) for i in incidents]


@router.get("", response_model=list[IncidentOut])
async def list_incidents(
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: AuthorityDep,
    status_filter: IncidentStatus | None = Query(default=None, alias="status"),
    limit: int | None = Query(default=None, ge=1, le=1000),
) -> list[IncidentOut]:
    """Reviewer dashboard listing, newest first."""
    incidents = await repo.list_incidents(status=status_filter, limit=limit)
    return [_to_out(i, storage, identity) for i in incidents]


@router.get("/hotspots", response_model=list[Hotspot])
async def list_hotspots(repo: IncidentRepositoryDep) -> list[Hotspot]:
    """Risk zones clustered from incidents that carry coordinates."""
    rows = await repo.list_locations()
    return compute_hotspots(rows)


@router.get("/{incident_id}", response_model=IncidentOut)
async def get_incident(
    incident_id: str,
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: IdentityDep,
) -> IncidentOut:
    incident = await repo.get(incident_id)
    if not _can_view(incident, identity):
        raise Forbidden("Not allowed to view this incident")
    return _to_out(incident, storage, identity)


@router.patch("/{incident_id}", response_model=IncidentOut)
async def edit_incident(
    incident_id: str,
    payload: IncidentUpdate,
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: IdentityDep,
) -> IncidentOut:
    """Reporter edit of description and/or location."""
    incident = await repo.get(incident_id)
    if incident.user_id != identity.user_id:
        raise Forbidden("Only the reporter can edit this incident")
    incident = await repo.update_details(incident_id, payload)
    return _to_out(incident, storage, identity)


@router.patch("/{incident_id}/status", response_model=IncidentOut)
async def update_incident_status(
    incident_id: str,
    payload: StatusUpdate,
    repo: IncidentRepositoryDep,
    storage: EvidenceStorageDep,
    identity: AuthorityDep,
) -> IncidentOut:
    """Set the status; the audit line is appended to ``log`` in the same update."""
    with tracer.start_as_current_span(SPAN_INCIDENT_STATUS) as span:
        span.set_attribute(ATTR_INCIDENT_ID, incident_id)
        span.set_attribute(ATTR_INCIDENT_STATUS, payload.status)
        incident = await repo.update_status(incident_id, payload.status)
    INCIDENT_STATUS_CHANGES_TOTAL.labels(status=payload.status).inc()
    logger.info(
        "Incident %s set to %s by %s", incident_id, payload.status, identity.user_id
    )
    return _to_out(incident, storage, identity)

