import json
import logging
import sys
from contextlib import asynccontextmanager
from typing import Annotated, Any, AsyncIterator, Dict, List, Optional

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError
from pydantic import Field

from incidentio_mcp.adapters.client import IncidentIoClient
from incidentio_mcp.core.config import Settings, get_settings
from incidentio_mcp.core.exceptions import ConfigurationError
from incidentio_mcp.core.logging import configure_logging, get_logger, set_correlation_id
from incidentio_mcp.domain.models.result import OperationResult
from incidentio_mcp.domain.schemas.requests import CreateIncidentRequest, EditIncidentRequest
from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache
from incidentio_mcp.services.incident_service import IncidentService

logger = get_logger(__name__)

SERVER_NAME = "incident-io"

Reference = Annotated[str, Field(description="Incident reference, e.g. 'INC-123'")]
PageSize = Annotated[int, Field(description="Results per page (1-250)", ge=1, le=250)]
After = Annotated[Optional[str], Field(description="Pagination cursor from a previous page")]


def render(result: OperationResult) -> str:
    """
    Render an operation result as tool output.

    Returns:
        The success payload as JSON text

    Raises:
        ToolError: For a failed result; the message starts with the error kind
    """
    if not result.ok:
        error = result.error
        message = f"{error.kind.value}: {error.message}"
        if error.details:
            message = f"{message}\n{json.dumps(error.details, indent=2, default=str)}"
        raise ToolError(message)
    return json.dumps(result.data, indent=2, default=str)


class IncidentTools:
    """Tool handlers backed by an ``IncidentService``; one method per tool."""

    def __init__(self, service: IncidentService):
        self.service = service

    async def list_incidents(
        self,
        page_size: PageSize = 25,
        after: After = None,
        status: Annotated[Optional[str], Field(description="Filter by status name or ID")] = None,
        severity: Annotated[Optional[str], Field(description="Filter by severity name or ID")] = None,
    ) -> str:
        set_correlation_id()
        return render(await self.service.list_incidents(
            page_size=page_size, after=after, status=status, severity=severity
        ))

    async def get_incident(self, reference: Reference) -> str:
        set_correlation_id()
        return render(await self.service.get_incident(reference))

    async def create_incident(
        self,
        name: Annotated[str, Field(description="Short incident title")],
        summary: Annotated[str, Field(description="What is happening and who is affected")],
        severity: Annotated[str, Field(description="Severity name (e.g. 'Critical') or ID")],
        status: Annotated[Optional[str], Field(description="Initial status name or ID")] = None,
        incident_type: Annotated[Optional[str], Field(description="Incident type name or ID")] = None,
        visibility: Annotated[Optional[str], Field(description="'public' or 'private' (default)")] = None,
        mode: Annotated[Optional[str], Field(description="'standard' (default), 'retrospective' or 'test'")] = None,
        description: Annotated[Optional[str], Field(description="Longer free-text description")] = None,
        product: Annotated[Optional[str], Field(description="Value for the 'Product' custom field")] = None,
        region: Annotated[Optional[str], Field(description="Value for the 'Region' custom field")] = None,
        feature: Annotated[Optional[str], Field(description="Value for the 'Feature' custom field")] = None,
        custom_field_entries: Annotated[
            Optional[List[Dict[str, Any]]],
            Field(description="Raw incident.io custom field entries; win over product/region/feature")
        ] = None,
        slack_channel_name: Annotated[Optional[str], Field(description="Name for the incident Slack channel")] = None,
        idempotency_key: Annotated[
            Optional[str], Field(description="Key preventing duplicate creation; generated when omitted")
        ] = None,
    ) -> str:
        set_correlation_id()
        request = CreateIncidentRequest(
            name=name,
            summary=summary,
            severity=severity,
            status=status,
            incident_type=incident_type,
            visibility=visibility,
            mode=mode,
            description=description,
            product=product,
            region=region,
            feature=feature,
            custom_field_entries=custom_field_entries,
            slack_channel_name=slack_channel_name,
            idempotency_key=idempotency_key,
        )
        return render(await self.service.create_incident(request))

    async def edit_incident(
        self,
        reference: Reference,
        name: Annotated[Optional[str], Field(description="New title")] = None,
        summary: Annotated[Optional[str], Field(description="New summary")] = None,
        severity: Annotated[Optional[str], Field(description="New severity name or ID")] = None,
        status: Annotated[Optional[str], Field(description="New status name or ID")] = None,
        product: Annotated[Optional[str], Field(description="Value for the 'Product' custom field")] = None,
        region: Annotated[Optional[str], Field(description="Value for the 'Region' custom field")] = None,
        feature: Annotated[Optional[str], Field(description="Value for the 'Feature' custom field")] = None,
        custom_field_entries: Annotated[
            Optional[List[Dict[str, Any]]], Field(description="Raw incident.io custom field entries")
        ] = None,
        notify_incident_channel: Annotated[
            bool, Field(description="Post the change to the incident Slack channel")
        ] = False,
    ) -> str:
        set_correlation_id()
        request = EditIncidentRequest(
            name=name,
            summary=summary,
            severity=severity,
            status=status,
            product=product,
            region=region,
            feature=feature,
            custom_field_entries=custom_field_entries,
            notify_incident_channel=notify_incident_channel,
        )
        return render(await self.service.edit_incident(reference, request))

    async def update_incident_status(
        self,
        reference: Reference,
        status: Annotated[str, Field(description="Target status name (e.g. 'Fixing') or ID")],
    ) -> str:
        set_correlation_id()
        return render(await self.service.update_incident_status(reference, status))

    async def list_incident_updates(
        self,
        reference: Annotated[Optional[str], Field(description="Only updates for this incident")] = None,
        page_size: PageSize = 25,
        after: After = None,
    ) -> str:
        set_correlation_id()
        return render(await self.service.list_incident_updates(
            reference=reference, page_size=page_size, after=after
        ))

    async def list_incident_timestamps(
        self,
        reference: Annotated[
            Optional[str],
            Field(description="Return this incident's timestamp values instead of the definitions")
        ] = None,
    ) -> str:
        set_correlation_id()
        return render(await self.service.list_incident_timestamps(reference))

    async def add_incident_timestamp(
        self,
        reference: Reference,
        timestamp_name: Annotated[str, Field(description="Timestamp name (e.g. 'Impact started') or ID")],
        value: Annotated[str, Field(description="ISO 8601 date-time")],
    ) -> str:
        set_correlation_id()
        return render(await self.service.add_incident_timestamp(reference, timestamp_name, value))

    async def list_users(
        self,
        page_size: PageSize = 25,
        after: After = None,
        email: Annotated[Optional[str], Field(description="Only the user with this email")] = None,
    ) -> str:
        set_correlation_id()
        return render(await self.service.list_users(page_size=page_size, after=after, email=email))

    async def get_user(self, user_id: Annotated[str, Field(description="incident.io user ID")]) -> str:
        set_correlation_id()
        return render(await self.service.get_user(user_id))

    async def list_incident_roles(self) -> str:
        set_correlation_id()
        return render(await self.service.list_incident_roles())

    async def assign_role_to_incident(
        self,
        reference: Reference,
        role: Annotated[str, Field(description="Role name (e.g. 'Incident Lead') or ID")],
        user: Annotated[str, Field(description="User ID or email address")],
    ) -> str:
        set_correlation_id()
        return render(await self.service.assign_role_to_incident(reference, role, user))

    async def revoke_role_from_incident(
        self,
        reference: Reference,
        role: Annotated[str, Field(description="Role name or ID")],
    ) -> str:
        set_correlation_id()
        return render(await self.service.revoke_role_from_incident(reference, role))

    async def list_severities(self) -> str:
        set_correlation_id()
        return render(await self.service.list_severities())

    async def list_incident_types(self) -> str:
        set_correlation_id()
        return render(await self.service.list_incident_types())

    async def get_incident_type(
        self,
        incident_type: Annotated[str, Field(description="Incident type name or ID")],
    ) -> str:
        set_correlation_id()
        return render(await self.service.get_incident_type(incident_type))

    async def list_incident_statuses(self) -> str:
        set_correlation_id()
        return render(await self.service.list_incident_statuses())

    def register(self, mcp: FastMCP) -> None:
        """Register every tool on ``mcp``."""
        for name, description in TOOL_DESCRIPTIONS.items():
            mcp.add_tool(getattr(self, name), name=name, description=description)


TOOL_DESCRIPTIONS = {
    "list_incidents": "List incidents, newest first, optionally filtered by status or severity.",
    "get_incident": "Get one incident by its reference (e.g. INC-123).",
    "create_incident": "Create an incident. Severity, status and type accept names or IDs.",
    "edit_incident": "Edit an incident's name, summary, severity, status or custom fields.",
    "update_incident_status": "Move an incident to another status.",
    "list_incident_updates": "List status/severity updates, optionally for one incident.",
    "list_incident_timestamps": "List timestamp definitions, or one incident's timestamp values.",
    "add_incident_timestamp": "Set a named timestamp on an incident.",
    "list_users": "List users in the incident.io organisation.",
    "get_user": "Get a user by ID.",
    "list_incident_roles": "List the roles that can be assigned on incidents.",
    "assign_role_to_incident": "Assign a role on an incident to a user (by ID or email).",
    "revoke_role_from_incident": "Remove the assignee of a role on an incident.",
    "list_severities": "List the configured severities.",
    "list_incident_types": "List the configured incident types.",
    "get_incident_type": "Get an incident type by name or ID.",
    "list_incident_statuses": "List the configured incident statuses.",
}


def build_server(
    tools: IncidentTools,
    cache: Optional[ReferenceDataCache] = None,
    client: Optional[IncidentIoClient] = None
) -> FastMCP:
    """
    Build the FastMCP server with all tools registered.

    Args:
        tools: Tool handlers
        cache: Reference cache to start and stop with the server, if any
        client: Upstream client to close on shutdown, if any

    Returns:
        FastMCP: Server ready to run
    """
    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        logger.info(f"Starting MCP server '{SERVER_NAME}'")
        if cache is not None:
            await cache.start()
        try:
            yield
        finally:
            logger.info(f"Shutting down MCP server '{SERVER_NAME}'")
            if cache is not None:
                await cache.stop()
            if client is not None:
                await client.close()

    mcp = FastMCP(SERVER_NAME, lifespan=lifespan)
    tools.register(mcp)
    return mcp


def create_server(settings: Optional[Settings] = None) -> FastMCP:
    """Wire the client, cache, service and tools from settings."""
    settings = settings or get_settings()
    client = IncidentIoClient.from_settings(settings)
    cache = ReferenceDataCache(client, refresh_interval=settings.CACHE_REFRESH_INTERVAL)
    service = IncidentService(client, cache)
    return build_server(IncidentTools(service), cache=cache, client=client)


def run() -> None:
    """Entry point for the stdio MCP server."""
    try:
        settings = get_settings()
    except ConfigurationError as e:
        logging.basicConfig(stream=sys.stderr, level=logging.INFO)
        logger.error(f"Configuration error: {e.detail}", extra={"data": e.context})
        sys.exit(1)

    # stdout carries the protocol
    configure_logging(settings, stream=sys.stderr)
    create_server(settings).run()


if __name__ == "__main__":
    run()
