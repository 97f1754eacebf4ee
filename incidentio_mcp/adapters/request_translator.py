import time
import uuid
from typing import Any, Dict, List, Optional

from incidentio_mcp.core.exceptions import ValidationException
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.domain.schemas.requests import CreateIncidentRequest, EditIncidentRequest
from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache

logger = get_logger(__name__)

DEFAULT_VISIBILITY = "private"
DEFAULT_MODE = "standard"

# Convenience parameters and the custom field each one is lifted into.
CONVENIENCE_CUSTOM_FIELDS = {
    "product": "Product",
    "region": "Region",
    "feature": "Feature",
}

# Keys a REST caller may tuck into ``metadata`` instead of the top level.
METADATA_FALLBACK_FIELDS = (
    "status",
    "created_at",
    "postmortem_document_url",
    "slack_channel_name",
    "incident_type",
    "mode",
)

SELECT_FIELD_TYPES = {"single_select", "multi_select"}


def compact(values: Dict[str, Any]) -> Dict[str, Any]:
    """Drop keys whose value is None."""
    return {key: value for key, value in values.items() if value is not None}


def generate_idempotency_key() -> str:
    """Return a key unique to this request: epoch millis plus process-local randomness."""
    return f"mcp-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


class RequestTranslator:
    """
    Builds incident.io request payloads from adapter inputs.

    Validation happens here, before any network call: a missing required
    field or an unresolvable severity raises ``ValidationException``.
    Incident type and status are resolved best-effort and left out of the
    payload when they cannot be resolved.
    """

    def __init__(self, cache: ReferenceDataCache):
        self.cache = cache

    # Create

    def apply_metadata(self, request: CreateIncidentRequest) -> CreateIncidentRequest:
        """Fill unset top-level fields from ``metadata``."""
        if not request.metadata:
            return request
        updates = {
            key: request.metadata[key]
            for key in METADATA_FALLBACK_FIELDS
            if getattr(request, key) is None and request.metadata.get(key) is not None
        }
        return request.model_copy(update=updates) if updates else request

    def validate_create(self, request: CreateIncidentRequest) -> str:
        """
        Check required create fields and resolve the severity.

        Returns:
            The severity ID to send upstream

        Raises:
            ValidationException: On missing fields or an unknown severity
        """
        if not request.name or not request.summary or not (request.severity or request.severity_id):
            raise ValidationException(
                detail="Missing required fields",
                context={
                    "required": ["name", "summary", "severity or severity_id"],
                    "received": sorted(request.model_dump(exclude_none=True).keys()),
                },
            )

        if request.severity_id:
            return request.severity_id

        return self.require_severity(request.severity)

    def require_severity(self, severity: str) -> str:
        """
        Resolve a severity name or ID that the caller must supply correctly.

        Raises:
            ValidationException: If the severity matches no cached entry
        """
        severity_id = self.cache.resolve_severity_id(severity)
        if severity_id is None:
            available = ", ".join(s.name for s in self.cache.severities())
            raise ValidationException(
                detail="Invalid severity",
                field="severity",
                context={
                    "message": (
                        f'Severity "{severity}" not found. '
                        f"Available severities: {available}"
                    )
                },
            )
        return severity_id

    def resolve_incident_type(self, request: CreateIncidentRequest) -> Optional[str]:
        if request.incident_type_id:
            return request.incident_type_id

        incident_type = request.incident_type
        if isinstance(incident_type, dict):
            return incident_type.get("id")
        if incident_type:
            resolved = self.cache.resolve_incident_type_id(incident_type)
            if resolved is None:
                logger.warning(f"Incident type '{incident_type}' not found, omitting it")
            return resolved
        return None

    def resolve_optional_status(self, status: Optional[str]) -> Optional[str]:
        if not status:
            return None
        resolved = self.cache.resolve_status_id(status)
        if resolved is None:
            logger.warning(f"Incident status '{status}' not found, omitting it")
        return resolved

    def build_create_payload(
        self,
        request: CreateIncidentRequest,
        custom_field_entries: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Build the ``POST /v2/incidents`` body.

        Args:
            request: Create input, with metadata fallbacks already applied
            custom_field_entries: Entries to send, already merged from
                explicit entries and lifted convenience parameters

        Raises:
            ValidationException: If required fields are missing or the severity is unknown
        """
        severity_id = self.validate_create(request)

        payload = {
            "idempotency_key": request.idempotency_key or generate_idempotency_key(),
            "name": request.name,
            "summary": request.summary,
            "severity_id": severity_id,
            "incident_type_id": self.resolve_incident_type(request),
            "incident_status_id": self.resolve_optional_status(request.status),
            "visibility": request.visibility or DEFAULT_VISIBILITY,
            "mode": request.mode or DEFAULT_MODE,
            "description": request.description,
            "created_at": request.created_at,
            "custom_field_entries": custom_field_entries or None,
            "incident_role_assignments": request.incident_role_assignments,
            "incident_timestamp_values": request.incident_timestamp_values,
            "labels": request.labels,
            "postmortem_document_url": request.postmortem_document_url,
            "slack_channel_id": request.slack_channel_id,
            "slack_channel_name": request.slack_channel_name,
            "slack_team_id": request.slack_team_id,
            "slack_team_name": request.slack_team_name,
            "external_issue_reference": request.external_issue_reference,
            "duration_metrics": request.duration_metrics,
        }
        return compact(payload)

    # Custom fields

    @staticmethod
    def convenience_values(request: Any) -> Dict[str, str]:
        """Return the convenience parameters set on a create or edit input."""
        values = {}
        for attr in CONVENIENCE_CUSTOM_FIELDS:
            value = getattr(request, attr, None)
            if value:
                values[attr] = value
        return values

    @staticmethod
    def find_custom_field(
        custom_fields: List[Dict[str, Any]],
        convenience_name: str
    ) -> Optional[Dict[str, Any]]:
        field_name = CONVENIENCE_CUSTOM_FIELDS[convenience_name].lower()
        for field in custom_fields:
            if str(field.get("name", "")).lower() == field_name:
                return field
        return None

    @staticmethod
    def build_custom_field_entry(
        field: Dict[str, Any],
        value: str,
        options: Optional[List[Dict[str, Any]]] = None
    ) -> Optional[Dict[str, Any]]:
        """
        Build one custom field entry for ``value``.

        Select fields need the option ID matching ``value`` (case-insensitive);
        returns None when no option matches.
        """
        field_type = field.get("field_type", "text")
        if field_type in SELECT_FIELD_TYPES:
            for option in options or field.get("options") or []:
                option_value = str(option.get("value", ""))
                if option.get("id") == value or option_value.lower() == value.lower():
                    return {
                        "custom_field_id": field["id"],
                        "values": [{"value_option_id": option["id"]}],
                    }
            logger.warning(f"No option '{value}' on custom field '{field.get('name')}', skipping it")
            return None
        if field_type == "link":
            entry_value = {"value_link": value}
        elif field_type == "numeric":
            entry_value = {"value_numeric": value}
        else:
            entry_value = {"value_text": value}
        return {"custom_field_id": field["id"], "values": [entry_value]}

    @staticmethod
    def merge_custom_field_entries(
        explicit: Optional[List[Dict[str, Any]]],
        lifted: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Combine entries; an explicit entry wins over a lifted one for the same field."""
        merged = list(explicit or [])
        explicit_ids = {entry.get("custom_field_id") for entry in merged}
        merged.extend(entry for entry in lifted if entry["custom_field_id"] not in explicit_ids)
        return merged

    # Edits

    @staticmethod
    def wrap_edit(incident: Dict[str, Any], notify_incident_channel: bool = False) -> Dict[str, Any]:
        return {"incident": incident, "notify_incident_channel": notify_incident_channel}

    def build_edit_payload(
        self,
        request: EditIncidentRequest,
        custom_field_entries: Optional[List[Dict[str, Any]]] = None
    ) -> Dict[str, Any]:
        """
        Build the ``actions/edit`` body for a general edit.

        Raises:
            ValidationException: If nothing would change, or a given severity is unknown
        """
        severity_id = self.require_severity(request.severity) if request.severity else None

        incident = compact({
            "name": request.name,
            "summary": request.summary,
            "severity_id": severity_id,
            "incident_status_id": self.resolve_optional_status(request.status),
            "custom_field_entries": custom_field_entries or None,
        })
        if not incident:
            raise ValidationException(
                detail="No editable fields supplied",
                context={
                    "editable": [
                        "name", "summary", "severity", "status",
                        "custom_field_entries", "product", "region", "feature",
                    ]
                },
            )
        return self.wrap_edit(incident, request.notify_incident_channel)

    def build_status_payload(self, status: Optional[str]) -> Dict[str, Any]:
        """
        Build the ``actions/edit`` body for a status change.

        Raises:
            ValidationException: If the status is missing or unknown
        """
        if not status:
            raise ValidationException(
                detail="Missing required field",
                field="status",
                context={"required": ["status"]},
            )
        return self.wrap_edit({"incident_status_id": self.require_status(status)})

    def require_status(self, status: str) -> str:
        """
        Resolve a status name or ID that the caller must supply correctly.

        Raises:
            ValidationException: If the status matches no cached entry
        """
        status_id = self.cache.resolve_status_id(status)
        if status_id is None:
            available = ", ".join(s.name for s in self.cache.statuses())
            raise ValidationException(
                detail="Invalid status",
                field="status",
                context={"message": f'Status "{status}" not found. Available statuses: {available}'},
            )
        return status_id

    @staticmethod
    def build_timestamp_payload(timestamp_id: str, value: str) -> Dict[str, Any]:
        return RequestTranslator.wrap_edit({
            "incident_timestamp_values": [
                {"incident_timestamp_id": timestamp_id, "value": value}
            ]
        })

    @staticmethod
    def assignee_reference(user: str) -> Dict[str, str]:
        """Identify a user by email when the value looks like one, otherwise by ID."""
        user = user.strip()
        return {"email": user} if "@" in user else {"id": user}

    @staticmethod
    def build_role_assignment_payload(role_id: str, user: str) -> Dict[str, Any]:
        return RequestTranslator.wrap_edit({
            "incident_role_assignments": [
                {"incident_role_id": role_id, "assignee": RequestTranslator.assignee_reference(user)}
            ]
        })

    @staticmethod
    def build_role_revoke_payload(role_id: str) -> Dict[str, Any]:
        return RequestTranslator.wrap_edit({
            "incident_role_assignments": [{"incident_role_id": role_id}]
        })

    # Listing

    def build_incident_filters(
        self,
        status: Optional[str] = None,
        severity: Optional[str] = None
    ) -> Dict[str, str]:
        """
        Translate status/severity names into list filters.

        Raises:
            ValidationException: If a filter value cannot be resolved
        """
        filters: Dict[str, str] = {}
        if status:
            filters["status[one_of]"] = self.require_status(status)
        if severity:
            filters["severity[one_of]"] = self.require_severity(severity)
        return filters


def require_fields(values: Dict[str, Any]) -> None:
    """
    Raise a validation error naming every blank value in ``values``.

    Raises:
        ValidationException: If any value is missing or blank
    """
    missing = [name for name, value in values.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationException(
            detail="Missing required fields" if len(missing) > 1 else "Missing required field",
            context={"required": list(values.keys()), "missing": missing},
        )
