"""SQLAlchemy ORM models for the incident store.

All tables are managed by Alembic migrations.  The ``Base.metadata``
naming convention ensures deterministic constraint names for
auto-generated migrations.
"""

from datetime import datetime, timezone

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from safereport.infra.id_utils import PREFIX_INCIDENT, generate_id

# ---------------------------------------------------------------------------
# Declarative base with naming convention
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base with explicit naming convention."""


Base.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _incident_id() -> str:
    return generate_id(PREFIX_INCIDENT)


# ---------------------------------------------------------------------------
# Incidents table
# ---------------------------------------------------------------------------


class Incident(Base):
    """A submitted safety-incident report.

    ``log`` is an append-only audit trail; every status change appends
    one line in the same UPDATE that sets ``status``.
    ``user_id`` is kept for anonymous reports too (the reporter can
    still list and edit them) but is hidden from reviewers.
    """

    __tablename__ = "incidents"

    id: Mapped[str] = mapped_column(
        String(32),
        primary_key=True,
        default=_incident_id,
    )
    user_id: Mapped[str | None] = mapped_column(
        String,
        nullable=True,
    )
    type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    location: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    evidence_reference: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="pending",
    )
    is_anonymous: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
    )
    reported_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    log: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    __table_args__ = (
        Index("ix_incidents_user_id_reported_at", "user_id", "reported_at"),
        Index("ix_incidents_status_reported_at", "status", "reported_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Incident(id={self.id!r}, type={self.type!r}, "
            f"status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# User roles side table
# ---------------------------------------------------------------------------


class UserRole(Base):
    """Role grants keyed by user id (``role == "authority"`` for reviewers)."""

    __tablename__ = "user_roles"

    user_id: Mapped[str] = mapped_column(String, primary_key=True)
    role: Mapped[str] = mapped_column(String(50), primary_key=True)

    def __repr__(self) -> str:
        return f"<UserRole(user_id={self.user_id!r}, role={self.role!r})>"
