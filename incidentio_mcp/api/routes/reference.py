from typing import Any, Dict

from fastapi import APIRouter, Depends

from incidentio_mcp.api.dependencies import get_incident_service
from incidentio_mcp.api.results import unwrap
from incidentio_mcp.services.incident_service import IncidentService

reference_router = APIRouter()


@reference_router.get(
    "/severities",
    summary="List severities",
    description="Returns the cached severities. Empty until the first successful refresh."
)
async def list_severities(
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    return unwrap(await incident_service.list_severities())


@reference_router.get(
    "/incident_types",
    summary="List incident types",
    description="Returns the cached incident types. Empty until the first successful refresh."
)
async def list_incident_types(
    incident_service: IncidentService = Depends(get_incident_service)
) -> Dict[str, Any]:
    return unwrap(await incident_service.list_incident_types())
