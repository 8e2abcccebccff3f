"""Incident store repository.

Each method opens its own session from the factory and commits before
returning, so callers never hold a transaction across an await on
another service.
"""

import logging
from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from safereport.core.incidents.models import (
    STATUS_PENDING,
    IncidentCreate,
    IncidentUpdate,
    format_status_log_entry,
)

from .models import Incident, UserRole

logger = logging.getLogger(__name__)


class IncidentNotFound(LookupError):
    def __init__(self, incident_id: str) -> None:
        super().__init__(f"Incident {incident_id} not found")
        self.incident_id = incident_id


class IncidentRepository:
    """CRUD over ``incidents``; status updates append to ``log`` atomically."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sf = session_factory

    async def create(self, data: IncidentCreate, user_id: str | None) -> Incident:
        incident = Incident(
            user_id=user_id,
            type=data.type,
            description=data.description,
            location=data.location,
            evidence_reference=data.evidence_reference,
            is_anonymous=data.is_anonymous,
            status=STATUS_PENDING,
            log="",
        )
        async with self._sf() as session:
            session.add(incident)
            await session.commit()
            await session.refresh(incident)
        logger.info("Incident %s created (type=%s)", incident.id, incident.type)
        return incident

    async def get(self, incident_id: str) -> Incident:
        async with self._sf() as session:
            incident = await session.get(Incident, incident_id)
        if incident is None:
            raise IncidentNotFound(incident_id)
        return incident

    async def list_incidents(
        self,
        *,
        user_id: str | None = None,
        status: str | None = None,
        limit: int | None = None,
    ) -> Sequence[Incident]:
        """Newest first, optionally filtered by reporter and status."""
        stmt = select(Incident).order_by(
            Incident.reported_at.desc(), Incident.id.desc()
        )
        if user_id is not None:
            stmt = stmt.where(Incident.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Incident.status == status)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._sf() as session:
            result = await session.scalars(stmt)
            return result.all()

    async def list_locations(self) -> Sequence[tuple[str, str | None]]:
        """``(type, location)`` of every incident that has a location."""
        stmt = select(Incident.type, Incident.location).where(
            Incident.location.is_not(None)
        )
        async with self._sf() as session:
            result = await session.execute(stmt)
            return [(row.type, row.location) for row in result]

    async def update_details(self, incident_id: str, data: IncidentUpdate) -> Incident:
        values = data.model_dump(exclude_unset=True)
        async with self._sf() as session:
            incident = await session.get(Incident, incident_id)
            if incident is None:
                raise IncidentNotFound(incident_id)
            for key, value in values.items():
                setattr(incident, key, value)
            await session.commit()
            await session.refresh(incident)
        logger.info("Incident %s edited (%s)", incident_id, ", ".join(sorted(values)))
        return incident

    async def update_status(
        self, incident_id: str, status: str, at: datetime | None = None
    ) -> Incident:
        """Set ``status`` and append the audit line in one statement."""
        entry = format_status_log_entry(status, at)
        stmt = (
            update(Incident)
            .where(Incident.id == incident_id)
            .values(status=status, log=func.coalesce(Incident.log, "") + entry)
            .execution_options(synchronize_session=False)
        )
        async with self._sf() as session:
            result = await session.execute(stmt)
            if result.rowcount == 0:
                await session.rollback()
                raise IncidentNotFound(incident_id)
            await session.commit()
            incident = await session.get(Incident, incident_id)
        logger.info("Incident %s status -> %s", incident_id, status)
        return incident


class RoleRepository:
    """Lookups against the ``user_roles`` side table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._sf = session_factory

    async def has_role(self, user_id: str, role: str) -> bool:
        stmt = select(UserRole.user_id).where(
            UserRole.user_id == user_id, UserRole.role == role
        )
        async with self._sf() as session:
            found = await session.scalar(stmt.limit(1))
        return found is not None

    async def grant(self, user_id: str, role: str) -> None:
        async with self._sf() as session:
            if await session.get(UserRole, (user_id, role)) is None:
                session.add(UserRole(user_id=user_id, role=role))
                await session.commit()
