from functools import wraps
from typing import Any, Awaitable, Callable, Dict, List, Optional

from incidentio_mcp.adapters.client import IncidentIoClient
from incidentio_mcp.adapters.request_translator import RequestTranslator, require_fields
from incidentio_mcp.adapters.response_translator import (
    format_incident,
    format_incident_list,
    format_reference_entities,
    format_status_change,
)
from incidentio_mcp.core.exceptions import APIException, ValidationException
from incidentio_mcp.core.logging import get_logger
from incidentio_mcp.domain.models.reference import (
    IncidentRole,
    IncidentTimestamp,
    IncidentType,
)
from incidentio_mcp.domain.models.result import ErrorKind, OperationError, OperationResult
from incidentio_mcp.domain.schemas.requests import CreateIncidentRequest, EditIncidentRequest
from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache, find_entry

logger = get_logger(__name__)

MAX_PAGE_SIZE = 250


def operation(action: str) -> Callable:
    """
    Turn an async service method into an operation returning ``OperationResult``.

    Adapter exceptions become failed results of the matching kind; upstream
    failures are reported as "Failed to <action>" with the upstream payload
    as details. Nothing propagates past this boundary.
    """
    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[OperationResult]]:
        @wraps(func)
        async def wrapper(self, *args, **kwargs) -> OperationResult:
            try:
                data = await func(self, *args, **kwargs)
            except APIException as e:
                error = OperationError.from_exception(e)
                if error.kind == ErrorKind.VALIDATION:
                    logger.warning(f"Validation error during {action}: {e.detail}")
                elif error.kind == ErrorKind.NOT_FOUND:
                    logger.info(f"Not found during {action}: {e.detail}")
                else:
                    logger.error(f"Error during {action}: {e.detail}")
                    error = error.model_copy(update={"message": f"Failed to {action}"})
                return OperationResult.failure(error)
            except Exception as e:
                logger.error(f"Unexpected error during {action}: {str(e)}", exc_info=True)
                return OperationResult.failure(
                    OperationError(
                        kind=ErrorKind.UPSTREAM,
                        message=f"Failed to {action}",
                        details={"message": str(e)},
                    )
                )
            return OperationResult.success(data)
        return wrapper
    return decorator


def _validate_page_size(page_size: int) -> None:
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise ValidationException(
            detail=f"page_size must be between 1 and {MAX_PAGE_SIZE}",
            field="page_size",
            context={"received": page_size},
        )


class IncidentService:
    """
    Orchestrates every adapter operation.

    Each public method validates its input, resolves names through the
    reference cache, calls incident.io and shapes the response. Methods
    return an ``OperationResult`` rather than raising.
    """

    def __init__(
        self,
        client: IncidentIoClient,
        cache: ReferenceDataCache,
        translator: Optional[RequestTranslator] = None
    ):
        self.client = client
        self.cache = cache
        self.translator = translator or RequestTranslator(cache)

    # Incidents

    @operation("fetch incidents")
    async def list_incidents(
        self,
        page_size: int = 25,
        after: Optional[str] = None,
        status: Optional[str] = None,
        severity: Optional[str] = None
    ) -> Dict[str, Any]:
        _validate_page_size(page_size)
        filters = self.translator.build_incident_filters(status=status, severity=severity)
        logger.info(f"Fetching incidents: page_size={page_size}, after={after}, filters={filters}")
        body = await self.client.list_incidents(page_size=page_size, after=after, filters=filters)
        logger.debug(f"Incident page pagination: {body.get('pagination_meta')}")
        return format_incident_list(body)

    @operation("fetch incident")
    async def get_incident(self, reference: str) -> Dict[str, Any]:
        require_fields({"reference": reference})
        incident = await self.client.find_incident_by_reference(reference)
        return format_incident(incident)

    @operation("create incident")
    async def create_incident(self, request: CreateIncidentRequest) -> Dict[str, Any]:
        request = self.translator.apply_metadata(request)
        # Reject bad input before any upstream call, including the custom field lookup.
        self.translator.validate_create(request)

        entries = await self._custom_field_entries(request, request.custom_field_entries)
        payload = self.translator.build_create_payload(request, entries)

        logger.info(f"Creating incident '{request.name}'", extra={"data": {"payload": payload}})
        incident = await self.client.create_incident(payload)
        logger.info(f"Created incident {incident.get('reference')} ({incident.get('id')})")
        return format_incident(incident)

    @operation("edit incident")
    async def edit_incident(self, reference: str, request: EditIncidentRequest) -> Dict[str, Any]:
        require_fields({"reference": reference})
        if request.severity:
            self.translator.require_severity(request.severity)
        if not self.translator.convenience_values(request):
            # Raises before the upstream lookup when there is nothing to edit.
            self.translator.build_edit_payload(request, request.custom_field_entries)

        entries = await self._custom_field_entries(request, request.custom_field_entries)
        payload = self.translator.build_edit_payload(request, entries)

        incident = await self.client.find_incident_by_reference(reference)
        updated = await self.client.edit_incident(incident["id"], payload)
        return format_incident(updated)

    @operation("update incident status")
    async def update_incident_status(self, reference: str, status: Optional[str]) -> Dict[str, Any]:
        require_fields({"reference": reference})
        payload = self.translator.build_status_payload(status)

        incident = await self.client.find_incident_by_reference(reference)
        updated = await self.client.edit_incident(incident["id"], payload)
        return format_status_change(updated)

    @operation("fetch incident updates")
    async def list_incident_updates(
        self,
        reference: Optional[str] = None,
        page_size: int = 25,
        after: Optional[str] = None
    ) -> Dict[str, Any]:
        _validate_page_size(page_size)
        incident_id = None
        if reference:
            incident = await self.client.find_incident_by_reference(reference)
            incident_id = incident["id"]

        body = await self.client.list_incident_updates(
            incident_id=incident_id, page_size=page_size, after=after
        )
        return {
            "incident_updates": body.get("incident_updates", []),
            "pagination": body.get("pagination_meta"),
        }

    @operation("fetch incident timestamps")
    async def list_incident_timestamps(self, reference: Optional[str] = None) -> Dict[str, Any]:
        if reference:
            incident = await self.client.find_incident_by_reference(reference)
            return {
                "reference": incident.get("reference"),
                "incident_timestamp_values": incident.get("incident_timestamp_values") or [],
            }

        timestamps = await self.client.list_incident_timestamps()
        return {"incident_timestamps": timestamps}

    @operation("add incident timestamp")
    async def add_incident_timestamp(
        self,
        reference: str,
        timestamp_name: Optional[str],
        value: Optional[str]
    ) -> Dict[str, Any]:
        require_fields({"reference": reference, "timestamp_name": timestamp_name, "value": value})

        timestamps = [
            IncidentTimestamp.model_validate(t) for t in await self.client.list_incident_timestamps()
        ]
        timestamp = find_entry(timestamps, timestamp_name)
        if timestamp is None:
            raise ValidationException(
                detail="Invalid timestamp name",
                field="timestamp_name",
                context={
                    "message": (
                        f'Timestamp "{timestamp_name}" not found. '
                        f"Available timestamps: {', '.join(t.name for t in timestamps)}"
                    )
                },
            )

        incident = await self.client.find_incident_by_reference(reference)
        payload = self.translator.build_timestamp_payload(timestamp.id, value)
        updated = await self.client.edit_incident(incident["id"], payload)
        return format_incident(updated)

    # Roles

    @operation("fetch incident roles")
    async def list_incident_roles(self) -> Dict[str, Any]:
        roles = await self._incident_roles()
        return {"incident_roles": format_reference_entities(roles)}

    @operation("assign incident role")
    async def assign_role_to_incident(
        self,
        reference: str,
        role: Optional[str],
        user: Optional[str]
    ) -> Dict[str, Any]:
        require_fields({"reference": reference, "role": role, "user": user})
        incident_role = await self._require_role(role)

        incident = await self.client.find_incident_by_reference(reference)
        payload = self.translator.build_role_assignment_payload(incident_role.id, user)
        updated = await self.client.edit_incident(incident["id"], payload)
        logger.info(f"Assigned role '{incident_role.name}' on {reference} to {user}")
        return format_incident(updated)

    @operation("revoke incident role")
    async def revoke_role_from_incident(self, reference: str, role: Optional[str]) -> Dict[str, Any]:
        require_fields({"reference": reference, "role": role})
        incident_role = await self._require_role(role)

        incident = await self.client.find_incident_by_reference(reference)
        payload = self.translator.build_role_revoke_payload(incident_role.id)
        updated = await self.client.edit_incident(incident["id"], payload)
        logger.info(f"Revoked role '{incident_role.name}' on {reference}")
        return format_incident(updated)

    # Users

    @operation("fetch users")
    async def list_users(
        self,
        page_size: int = 25,
        after: Optional[str] = None,
        email: Optional[str] = None
    ) -> Dict[str, Any]:
        _validate_page_size(page_size)
        body = await self.client.list_users(page_size=page_size, after=after, email=email)
        return {"users": body.get("users", []), "pagination": body.get("pagination_meta")}

    @operation("fetch user")
    async def get_user(self, user_id: str) -> Dict[str, Any]:
        require_fields({"user_id": user_id})
        return await self.client.get_user(user_id)

    # Reference data

    @operation("fetch severities")
    async def list_severities(self) -> Dict[str, Any]:
        return {"severities": format_reference_entities(self.cache.severities())}

    @operation("fetch incident types")
    async def list_incident_types(self) -> Dict[str, Any]:
        return {"incident_types": format_reference_entities(self.cache.incident_types())}

    @operation("fetch incident type")
    async def get_incident_type(self, name_or_id: str) -> Dict[str, Any]:
        require_fields({"incident_type": name_or_id})
        incident_type = self.cache.find_incident_type(name_or_id)
        if incident_type is None:
            raw = await self.client.get_incident_type(name_or_id.strip())
            incident_type = IncidentType.model_validate(raw)
        return incident_type.to_payload()

    @operation("fetch incident statuses")
    async def list_incident_statuses(self) -> Dict[str, Any]:
        return {"incident_statuses": format_reference_entities(self.cache.statuses())}

    # Helpers

    async def _incident_roles(self) -> List[IncidentRole]:
        return [IncidentRole.model_validate(r) for r in await self.client.list_incident_roles()]

    async def _require_role(self, role: str) -> IncidentRole:
        roles = await self._incident_roles()
        incident_role = find_entry(roles, role)
        if incident_role is None:
            raise ValidationException(
                detail="Invalid incident role",
                field="role",
                context={
                    "message": (
                        f'Role "{role}" not found. '
                        f"Available roles: {', '.join(r.name for r in roles)}"
                    )
                },
            )
        return incident_role

    async def _custom_field_entries(
        self,
        request: Any,
        explicit: Optional[List[Dict[str, Any]]]
    ) -> Optional[List[Dict[str, Any]]]:
        """Lift product/region/feature into custom field entries and merge them with ``explicit``."""
        values = self.translator.convenience_values(request)
        if not values:
            return explicit

        custom_fields = await self.client.list_custom_fields()
        lifted = []
        for convenience_name, value in values.items():
            field = self.translator.find_custom_field(custom_fields, convenience_name)
            if field is None:
                logger.warning(f"No custom field for '{convenience_name}', skipping value '{value}'")
                continue

            options = None
            if field.get("field_type") in ("single_select", "multi_select") and not field.get("options"):
                options = await self.client.list_custom_field_options(field["id"])

            entry = self.translator.build_custom_field_entry(field, value, options)
            if entry is not None:
                lifted.append(entry)

        return self.translator.merge_custom_field_entries(explicit, lifted)
