from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Path, Query, status

from incidentio_mcp.api.dependencies import get_incident_service
from incidentio_mcp.api.results import unwrap
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.domain.schemas.requests import (
    AddTimestampRequest,
    CreateIncidentRequest,
    UpdateStatusRequest,
)
from incidentio_mcp.services.incident_service import IncidentService

# Initialize router and logger
incidents_router = APIRouter()
logger = get_logger(__name__)


@incidents_router.get(
    "",
    summary="List incidents",
    description="Returns one page of incidents. Pass the returned pagination.after as `after` for the next page."
)
async def list_incidents(
    page_size: int = Query(25, description="Number of incidents per page (1-250)"),
    after: Optional[str] = Query(None, description="Cursor from the previous page"),
    status_filter: Optional[str] = Query(None, alias="status", description="Status name or ID"),
    severity: Optional[str] = Query(None, description="Severity name or ID"),
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    result = await incident_service.list_incidents(
        page_size=page_size,
        after=after,
        status=status_filter,
        severity=severity
    )
    return unwrap(result)


@incidents_router.get(
    "/{reference}",
    summary="Get incident by reference",
    description="Looks up an incident by its human-readable reference, e.g. INC-123."
)
async def get_incident(
    reference: str = Path(..., description="Incident reference, e.g. INC-123"),
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    return unwrap(await incident_service.get_incident(reference))


@incidents_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    summary="Create incident",
    description="Creates an incident. `name`, `summary` and `severity` (name or ID) are required."
)
async def create_incident(
    request: CreateIncidentRequest,
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    logger.info(f"Create incident requested: {request.name}")
    return unwrap(await incident_service.create_incident(request))


@incidents_router.post(
    "/{reference}/status",
    summary="Update incident status",
    description="Moves an incident to the named status."
)
async def update_incident_status(
    request: UpdateStatusRequest,
    reference: str = Path(..., description="Incident reference, e.g. INC-123"),
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    return unwrap(await incident_service.update_incident_status(reference, request.status))


@incidents_router.post(
    "/{reference}/timestamps",
    summary="Add incident timestamp",
    description="Sets a named timestamp (e.g. 'Impact started') on an incident."
)
async def add_incident_timestamp(
    request: AddTimestampRequest,
    reference: str = Path(..., description="Incident reference, e.g. INC-123"),
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    result = await incident_service.add_incident_timestamp(
        reference,
        request.timestamp_name,
        request.value
    )
    return unwrap(result)
