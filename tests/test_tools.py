"""Tests for the MCP tool surface."""

import json

import pytest
from mcp.server.fastmcp.exceptions import ToolError

from incidentio_mcp.domain.models.result import ErrorKind, OperationError, OperationResult
from incidentio_mcp.tools.server import TOOL_DESCRIPTIONS, IncidentTools, build_server, render

EXPECTED_TOOLS = {
    "list_incidents",
    "get_incident",
    "create_incident",
    "edit_incident",
    "update_incident_status",
    "list_incident_updates",
    "list_incident_timestamps",
    "add_incident_timestamp",
    "list_users",
    "get_user",
    "list_incident_roles",
    "assign_role_to_incident",
    "revoke_role_from_incident",
    "list_severities",
    "list_incident_types",
    "get_incident_type",
    "list_incident_statuses",
}


@pytest.fixture
def tools(service) -> IncidentTools:
    return IncidentTools(service)


class TestRender:
    """Test the tool result envelope."""

    def test_success_is_json_text(self):
        text = render(OperationResult.success({"severities": []}))
        assert json.loads(text) == {"severities": []}

    def test_failure_raises_tool_error_prefixed_by_kind(self):
        result = OperationResult.failure(
            OperationError(kind=ErrorKind.NOT_FOUND, message="No incident found with reference INC-9")
        )

        with pytest.raises(ToolError) as exc_info:
            render(result)

        assert str(exc_info.value) == "not_found: No incident found with reference INC-9"

    def test_failure_details_are_appended(self):
        result = OperationResult.failure(
            OperationError(kind=ErrorKind.UPSTREAM, message="Failed to fetch users", details={"type": "rate_limited"})
        )

        with pytest.raises(ToolError) as exc_info:
            render(result)

        message = str(exc_info.value)
        assert message.startswith("upstream: Failed to fetch users\n")
        assert json.loads(message.split("\n", 1)[1]) == {"type": "rate_limited"}


class TestServer:
    """Test tool registration."""

    @pytest.mark.asyncio
    async def test_all_tools_are_registered(self, tools):
        server = build_server(tools)

        registered = await server.list_tools()

        assert {tool.name for tool in registered} == EXPECTED_TOOLS
        assert set(TOOL_DESCRIPTIONS) == EXPECTED_TOOLS

    @pytest.mark.asyncio
    async def test_input_schemas_are_typed(self, tools):
        server = build_server(tools)

        registered = {tool.name: tool for tool in await server.list_tools()}

        create_schema = registered["create_incident"].inputSchema
        assert set(create_schema["required"]) == {"name", "summary", "severity"}
        assert create_schema["properties"]["severity"]["description"]
        assert "self" not in create_schema["properties"]
        assert registered["list_severities"].inputSchema.get("required", []) == []


class TestTools:
    """Test tool handlers against the fake incident.io API."""

    @pytest.mark.asyncio
    async def test_get_incident(self, tools):
        payload = json.loads(await tools.get_incident("INC-1"))
        assert payload["reference"] == "INC-1"

    @pytest.mark.asyncio
    async def test_create_incident(self, tools, upstream):
        payload = json.loads(
            await tools.create_incident(
                name="Checkout down", summary="Payments failing", severity="Critical", product="Payments"
            )
        )

        assert payload["reference"] == "INC-3"
        [body] = upstream.bodies("POST", "/v2/incidents")
        assert body["custom_field_entries"] == [
            {"custom_field_id": "cf-product", "values": [{"value_option_id": "opt-payments"}]}
        ]

    @pytest.mark.asyncio
    async def test_create_with_invalid_severity_is_error(self, tools, upstream):
        calls_before = len(upstream.requests)

        with pytest.raises(ToolError) as exc_info:
            await tools.create_incident(name="Outage", summary="Down", severity="Catastrophic")

        assert str(exc_info.value).startswith("validation: Invalid severity")
        assert len(upstream.requests) == calls_before

    @pytest.mark.asyncio
    async def test_update_status(self, tools):
        payload = json.loads(await tools.update_incident_status("INC-2", "Closed"))
        assert payload["status"] == "Closed"

    @pytest.mark.asyncio
    async def test_edit_incident(self, tools):
        payload = json.loads(await tools.edit_incident("INC-1", summary="Rolled back"))
        assert payload["summary"] == "Rolled back"

    @pytest.mark.asyncio
    async def test_assign_and_revoke_role(self, tools, upstream):
        await tools.assign_role_to_incident("INC-1", "Incident Lead", "user-ada")
        await tools.revoke_role_from_incident("INC-1", "Incident Lead")

        assign, revoke = upstream.bodies("POST", "/v2/incidents/inc-1/actions/edit")
        assert assign["incident"]["incident_role_assignments"][0]["assignee"] == {"id": "user-ada"}
        assert "assignee" not in revoke["incident"]["incident_role_assignments"][0]

    @pytest.mark.asyncio
    async def test_reference_listings(self, tools):
        severities = json.loads(await tools.list_severities())["severities"]
        statuses = json.loads(await tools.list_incident_statuses())["incident_statuses"]
        incident_type = json.loads(await tools.get_incident_type("default"))

        assert severities[0]["name"] == "critical"
        assert [s["name"] for s in statuses] == ["Triage", "Fixing", "Closed"]
        assert incident_type["id"] == "type-default"

    @pytest.mark.asyncio
    async def test_users_and_timestamps(self, tools):
        users = json.loads(await tools.list_users(page_size=10))["users"]
        user = json.loads(await tools.get_user("user-alan"))
        timestamps = json.loads(await tools.list_incident_timestamps())

        assert len(users) == 2
        assert user["name"] == "Alan Turing"
        assert timestamps["incident_timestamps"][0]["id"] == "ts-impact"

    @pytest.mark.asyncio
    async def test_unknown_user_is_not_found_error(self, tools):
        with pytest.raises(ToolError) as exc_info:
            await tools.get_user("user-nobody")
        assert str(exc_info.value).startswith("not_found:")
