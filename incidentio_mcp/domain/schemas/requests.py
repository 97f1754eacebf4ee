from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class CreateIncidentRequest(BaseModel):
    """
    Input for incident creation.

    Every field is optional at the schema level so that missing required
    values are reported by the request translator as a validation result
    rather than rejected by the framework.
    """

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    summary: Optional[str] = None
    severity: Optional[str] = Field(None, description="Severity name or ID")
    severity_id: Optional[str] = None
    status: Optional[str] = Field(None, description="Incident status name or ID")
    incident_type: Optional[Union[str, Dict[str, Any]]] = Field(
        None, description="Incident type name, ID, or an object with an id"
    )
    incident_type_id: Optional[str] = None
    visibility: Optional[str] = None
    mode: Optional[str] = None
    description: Optional[str] = None
    created_at: Optional[str] = None
    idempotency_key: Optional[str] = None
    custom_field_entries: Optional[List[Dict[str, Any]]] = None
    incident_role_assignments: Optional[List[Dict[str, Any]]] = None
    incident_timestamp_values: Optional[List[Dict[str, Any]]] = None
    labels: Optional[List[Any]] = None
    postmortem_document_url: Optional[str] = None
    slack_channel_id: Optional[str] = None
    slack_channel_name: Optional[str] = None
    slack_team_id: Optional[str] = None
    slack_team_name: Optional[str] = None
    external_issue_reference: Optional[Dict[str, Any]] = None
    duration_metrics: Optional[List[Dict[str, Any]]] = None
    product: Optional[str] = Field(None, description="Lifted into the 'Product' custom field")
    region: Optional[str] = Field(None, description="Lifted into the 'Region' custom field")
    feature: Optional[str] = Field(None, description="Lifted into the 'Feature' custom field")
    metadata: Optional[Dict[str, Any]] = Field(
        None,
        description=(
            "Fallback values for status, created_at, postmortem_document_url, "
            "slack_channel_name, incident_type and mode"
        ),
    )


class EditIncidentRequest(BaseModel):
    """Input for editing an existing incident. Omitted fields are left unchanged."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    summary: Optional[str] = None
    severity: Optional[str] = Field(None, description="Severity name or ID")
    status: Optional[str] = Field(None, description="Incident status name or ID")
    custom_field_entries: Optional[List[Dict[str, Any]]] = None
    product: Optional[str] = None
    region: Optional[str] = None
    feature: Optional[str] = None
    notify_incident_channel: bool = False


class UpdateStatusRequest(BaseModel):
    """Body of ``POST /mcp/incidents/{reference}/status``."""

    model_config = ConfigDict(extra="ignore")

    status: Optional[str] = None


class AddTimestampRequest(BaseModel):
    """Body of ``POST /mcp/incidents/{reference}/timestamps``."""

    model_config = ConfigDict(extra="ignore")

    timestamp_name: Optional[str] = None
    value: Optional[str] = None
