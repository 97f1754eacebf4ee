from typing import Any, Dict

from fastapi import APIRouter

index_router = APIRouter()

INCIDENT_FIELDS = {
    "always": [
        "id", "reference", "name", "status", "severity", "created_at", "permalink",
        "visibility", "mode", "summary", "incident_type", "postmortem_document_url",
        "slack_channel_id", "slack_channel_name", "slack_team_id", "updated_at",
    ],
    "when_present": [
        "description", "incident_role_assignments", "labels", "custom_field_entries",
        "resolved_at", "started_at", "ended_at", "call_url", "external_issue_reference",
        "duration_metrics", "incident_timestamp_values",
    ],
}

ENDPOINTS = {
    "GET /health": {"description": "Liveness check", "response": {"status": "healthy"}},
    "GET /mcp/incidents": {
        "description": "List one page of incidents",
        "query": {
            "page_size": "1-250, default 25",
            "after": "cursor from pagination.after of the previous page",
            "status": "optional status name or ID",
            "severity": "optional severity name or ID",
        },
        "response": {"incidents": INCIDENT_FIELDS, "pagination": "incident.io pagination_meta"},
    },
    "GET /mcp/incidents/{reference}": {
        "description": "Get one incident by reference, e.g. INC-123",
        "response": INCIDENT_FIELDS,
    },
    "POST /mcp/incidents": {
        "description": "Create an incident (201)",
        "body": {
            "required": ["name", "summary", "severity or severity_id"],
            "optional": [
                "status", "incident_type", "incident_type_id", "visibility", "mode",
                "description", "created_at", "idempotency_key", "custom_field_entries",
                "incident_role_assignments", "incident_timestamp_values", "labels",
                "postmortem_document_url", "slack_channel_id", "slack_channel_name",
                "slack_team_id", "slack_team_name", "external_issue_reference",
                "duration_metrics", "product", "region", "feature", "metadata",
            ],
        },
        "response": INCIDENT_FIELDS,
    },
    "POST /mcp/incidents/{reference}/status": {
        "description": "Update the status of an incident",
        "body": {"required": ["status"]},
        "response": ["id", "reference", "status", "updated_at"],
    },
    "POST /mcp/incidents/{reference}/timestamps": {
        "description": "Set a named timestamp on an incident",
        "body": {"required": ["timestamp_name", "value"]},
        "response": INCIDENT_FIELDS,
    },
    "GET /mcp/severities": {"description": "Cached severities", "response": {"severities": "list"}},
    "GET /mcp/incident_types": {
        "description": "Cached incident types",
        "response": {"incident_types": "list"},
    },
}


@index_router.get(
    "/",
    summary="Endpoint index",
    description="Describes every endpoint, its inputs and response fields."
)
async def get_index() -> Dict[str, Any]:
    return {
        "service": "incident.io MCP adapter",
        "endpoints": ENDPOINTS,
        "pagination": (
            "List endpoints return a 'pagination' object; pass its 'after' value "
            "as the 'after' query parameter to fetch the next page."
        ),
        "errors": {"error": {"code": "str", "message": "str", "status_code": "int", "context": "object"}},
    }
