from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from incidentio_mcp.core.exceptions import UpstreamError
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.domain.models.incident import (
    IncidentExtras,
    IncidentStatusChange,
    IncidentView,
)
from incidentio_mcp.domain.models.reference import ReferenceEntity

logger = get_logger(__name__)


def _name_of(value: Any) -> Optional[str]:
    """Flatten a nested upstream object (status, severity) to its name."""
    if isinstance(value, dict):
        return value.get("name")
    return value


def format_incident(incident: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map an upstream incident to the outward shape.

    The always-present fields are emitted even when null; the optional
    fields only when upstream defines them.

    Raises:
        UpstreamError: If upstream returned an incident this adapter cannot read
    """
    try:
        view = IncidentView(
            id=incident["id"],
            reference=incident.get("reference"),
            name=incident.get("name"),
            status=_name_of(incident.get("incident_status")),
            severity=_name_of(incident.get("severity")),
            created_at=incident.get("created_at"),
            permalink=incident.get("permalink"),
            visibility=incident.get("visibility"),
            mode=incident.get("mode"),
            summary=incident.get("summary"),
            incident_type=incident.get("incident_type"),
            postmortem_document_url=incident.get("postmortem_document_url"),
            slack_channel_id=incident.get("slack_channel_id"),
            slack_channel_name=incident.get("slack_channel_name"),
            slack_team_id=incident.get("slack_team_id"),
            updated_at=incident.get("updated_at"),
        )
        extras = IncidentExtras.model_validate(incident)
    except (KeyError, ValidationError) as e:
        logger.error(f"Unreadable incident payload from incident.io: {str(e)}")
        raise UpstreamError(
            detail="incident.io returned an unexpected incident payload",
            payload={"message": str(e)},
            original_exception=e,
        )

    return {**view.model_dump(), **extras.model_dump(exclude_none=True)}


def format_incidents(incidents: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [format_incident(incident) for incident in incidents]


def format_status_change(incident: Dict[str, Any]) -> Dict[str, Any]:
    return IncidentStatusChange(
        id=incident["id"],
        reference=incident.get("reference"),
        status=_name_of(incident.get("incident_status")),
        updated_at=incident.get("updated_at"),
    ).model_dump()


def format_reference_entities(entities: List[ReferenceEntity]) -> List[Dict[str, Any]]:
    return [entity.to_payload() for entity in entities]


def format_incident_list(body: Dict[str, Any]) -> Dict[str, Any]:
    """Shape one upstream page of incidents together with its pagination metadata."""
    return {
        "incidents": format_incidents(body.get("incidents", [])),
        "pagination": body.get("pagination_meta"),
    }
