"""Incident record schemas shared by the API, the store and the CLI."""

from datetime import datetime, timezone
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

IncidentType = Literal[
    "Harassment",
    "Stalking",
    "Suspicious Activity",
    "Unsafe Environment",
    "Other",
]
INCIDENT_TYPES: tuple[str, ...] = get_args(IncidentType)

IncidentStatus = Literal["pending", "in_review", "resolved", "closed"]
INCIDENT_STATUSES: tuple[str, ...] = get_args(IncidentStatus)
STATUS_PENDING: IncidentStatus = "pending"


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


class IncidentCreate(BaseModel):
    """Submission form payload."""

    type: IncidentType
    description: str = Field(min_length=1, max_length=20_000)
    location: str | None = Field(default=None, max_length=500)
    evidence_reference: str | None = Field(default=None, max_length=500)
    is_anonymous: bool = False

    @field_validator("description")
    @classmethod
    def _description_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("description must not be blank")
        return value

    @field_validator("location", "evidence_reference")
    @classmethod
    def _optional_text(cls, value: str | None) -> str | None:
        return _blank_to_none(value)


class IncidentUpdate(BaseModel):
    """Reporter edit of an own incident: description and/or location."""

    description: str | None = Field(default=None, min_length=1, max_length=20_000)
    location: str | None = Field(default=None, max_length=500)

    @field_validator("location")
    @classmethod
    def _optional_location(cls, value: str | None) -> str | None:
        return _blank_to_none(value)

    @model_validator(mode="after")
    def _has_changes(self) -> "IncidentUpdate":
        if not self.model_fields_set & {"description", "location"}:
            raise ValueError("at least one of description or location is required")
        if "description" in self.model_fields_set:
            if self.description is None or not self.description.strip():
                raise ValueError("description must not be blank")
            self.description = self.description.strip()
        return self


class StatusUpdate(BaseModel):
    status: IncidentStatus


class IncidentOut(BaseModel):
    """Incident as returned by the API."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str | None
    type: str
    description: str
    location: str | None
    evidence_reference: str | None
    evidence_url: str | None = None
    status: str
    is_anonymous: bool
    reported_at: datetime
    log: str


def format_status_log_entry(status: str, at: datetime | None = None) -> str:
    """One audit line: ``[<ISO-8601 UTC>] Status changed to "<status>" by authority``."""
    at = (at or datetime.now(timezone.utc)).astimezone(timezone.utc)
    stamp = at.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f'[{stamp}] Status changed to "{status}" by authority\n'
