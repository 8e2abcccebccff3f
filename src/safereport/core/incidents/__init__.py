from .geo import (
    Hotspot,
    ParsedLocation,
    compute_hotspots,
    format_location,
    parse_location,
)
from .models import (
    INCIDENT_STATUSES,
    INCIDENT_TYPES,
    IncidentCreate,
    IncidentOut,
    IncidentStatus,
    IncidentType,
    IncidentUpdate,
    StatusUpdate,
    format_status_log_entry,
)

__all__ = [
    "INCIDENT_STATUSES",
    "INCIDENT_TYPES",
    "Hotspot",
    "IncidentCreate",
    "IncidentOut",
    "IncidentStatus",
    "IncidentType",
    "IncidentUpdate",
    "ParsedLocation",
    "StatusUpdate",
    "compute_hotspots",
    "format_location",
    "format_status_log_entry",
    "parse_location",
]
