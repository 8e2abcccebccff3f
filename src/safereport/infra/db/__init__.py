"""Async PostgreSQL infrastructure (engine builder, ORM models, repositories)."""

from .engine import (
    build_db,
    get_incident_repository,
    get_role_repository,
    get_session_factory,
)
from .models import Base, Incident, UserRole
from .repository import IncidentNotFound, IncidentRepository, RoleRepository

__all__ = [
    "Base",
    "build_db",
    "get_incident_repository",
    "get_role_repository",
    "get_session_factory",
    "Incident",
    "IncidentNotFound",
    "IncidentRepository",
    "RoleRepository",
    "UserRole",
]
