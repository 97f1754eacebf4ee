"""
Domain models for the incident.io adapter.

Reference data (severities, incident types, statuses, roles, timestamps),
the outward incident shape and the explicit operation result type.
"""

from incidentio_mcp.domain.models.incident import (
    IncidentExtras,
    IncidentStatusChange,
    IncidentView,
)
from incidentio_mcp.domain.models.reference import (
    IncidentRole,
    IncidentStatus,
    IncidentTimestamp,
    IncidentType,
    ReferenceSnapshot,
    Severity,
)
from incidentio_mcp.domain.models.result import (
    ErrorKind,
    OperationError,
    OperationResult,
)

__all__ = [
    "IncidentExtras",
    "IncidentRole",
    "IncidentStatus",
    "IncidentStatusChange",
    "IncidentTimestamp",
    "IncidentType",
    "IncidentView",
    "ErrorKind",
    "OperationError",
    "OperationResult",
    "ReferenceSnapshot",
    "Severity",
]
