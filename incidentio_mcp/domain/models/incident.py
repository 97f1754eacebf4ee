from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict


class IncidentView(BaseModel):
    """
    Outward incident fields that are always emitted, even when null upstream.

    ``status`` and ``severity`` are flattened to the names of the upstream
    status and severity objects.
    """

    id: str
    reference: Optional[str] = None
    name: Optional[str] = None
    status: Optional[str] = None
    severity: Optional[str] = None
    created_at: Optional[str] = None
    permalink: Optional[str] = None
    visibility: Optional[str] = None
    mode: Optional[str] = None
    summary: Optional[str] = None
    incident_type: Optional[Dict[str, Any]] = None
    postmortem_document_url: Optional[str] = None
    slack_channel_id: Optional[str] = None
    slack_channel_name: Optional[str] = None
    slack_team_id: Optional[str] = None
    updated_at: Optional[str] = None


class IncidentExtras(BaseModel):
    """
    Outward incident fields emitted only when the upstream value is defined.

    The upstream schema evolves independently of this adapter, so these are
    serialized with ``exclude_none`` rather than as explicit nulls.
    """

    model_config = ConfigDict(extra="ignore")

    description: Optional[str] = None
    incident_role_assignments: Optional[List[Dict[str, Any]]] = None
    labels: Optional[List[Any]] = None
    custom_field_entries: Optional[List[Dict[str, Any]]] = None
    resolved_at: Optional[str] = None
    started_at: Optional[str] = None
    ended_at: Optional[str] = None
    call_url: Optional[str] = None
    external_issue_reference: Optional[Dict[str, Any]] = None
    duration_metrics: Optional[List[Dict[str, Any]]] = None
    incident_timestamp_values: Optional[List[Dict[str, Any]]] = None


class IncidentStatusChange(BaseModel):
    """Outward shape of a status update."""

    id: str
    reference: Optional[str] = None
    status: Optional[str] = None
    updated_at: Optional[str] = None
