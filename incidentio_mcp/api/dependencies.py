from fastapi import Request

from incidentio_mcp.core.exceptions import ConfigurationError
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.services.incident_service import IncidentService

# Initialize logger
logger = get_logger(__name__)


async def get_incident_service(request: Request) -> IncidentService:
    """
    Dependency for providing the incident service.

    The service is built once in the application lifespan and kept on
    ``app.state``.

    Args:
        request: FastAPI request object

    Returns:
        IncidentService: The shared service instance

    Raises:
        ConfigurationError: If the application started without a service
    """
    service = getattr(request.app.state, "incident_service", None)
    if service is None:
        logger.error("Incident service requested before application startup completed")
        raise ConfigurationError(detail="Incident service is not initialized")
    return service
