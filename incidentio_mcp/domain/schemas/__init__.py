"""Request schemas shared by the HTTP and tool surfaces."""

from incidentio_mcp.domain.schemas.requests import (
    AddTimestampRequest,
    CreateIncidentRequest,
    EditIncidentRequest,
    UpdateStatusRequest,
)

__all__ = [
    "AddTimestampRequest",
    "CreateIncidentRequest",
    "EditIncidentRequest",
    "UpdateStatusRequest",
]
