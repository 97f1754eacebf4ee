"""Shared fixtures: a fake incident.io API served through ``httpx.MockTransport``."""

import copy
import json
import re
from typing import Any, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio

from incidentio_mcp.adapters.client import IncidentIoClient
from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache
from incidentio_mcp.services.incident_service import IncidentService

BASE_URL = "https://api.incident.io"

SEVERITIES = [
    {"id": "sev-critical", "name": "critical", "description": "Full outage", "rank": 1},
    {"id": "sev-major", "name": "Major", "description": "Partial outage", "rank": 2},
    {"id": "sev-minor", "name": "Minor", "description": "Degraded", "rank": 3},
]

INCIDENT_TYPES = [
    {"id": "type-default", "name": "Default", "description": "Everything else", "rank": 1},
    {"id": "type-security", "name": "Security", "description": "Security incidents", "rank": 2},
]

STATUSES = [
    {"id": "status-triage", "name": "Triage", "category": "triage"},
    {"id": "status-fixing", "name": "Fixing", "category": "live"},
    {"id": "status-closed", "name": "Closed", "category": "closed"},
]

ROLES = [
    {"id": "role-lead", "name": "Incident Lead", "role_type": "lead", "shortform": "lead"},
    {"id": "role-comms", "name": "Communications", "role_type": "custom", "shortform": "comms"},
]

TIMESTAMPS = [
    {"id": "ts-impact", "name": "Impact started", "rank": 1},
    {"id": "ts-detected", "name": "Detected", "rank": 2},
]

CUSTOM_FIELDS = [
    {
        "id": "cf-product",
        "name": "Product",
        "field_type": "single_select",
        "options": [
            {"id": "opt-payments", "value": "Payments"},
            {"id": "opt-search", "value": "Search"},
        ],
    },
    {"id": "cf-region", "name": "Region", "field_type": "text"},
    {"id": "cf-feature", "name": "Feature", "field_type": "single_select", "options": []},
]

CUSTOM_FIELD_OPTIONS = {
    "cf-feature": [
        {"id": "opt-checkout", "value": "Checkout", "custom_field_id": "cf-feature"},
    ],
}

USERS = [
    {"id": "user-ada", "name": "Ada Lovelace", "email": "ada@example.com", "role": "responder"},
    {"id": "user-alan", "name": "Alan Turing", "email": "alan@example.com", "role": "viewer"},
]


def make_incident(incident_id: str, reference: str, **overrides: Any) -> Dict[str, Any]:
    """Build an upstream v2 incident; ``description`` is deliberately absent."""
    incident = {
        "id": incident_id,
        "reference": reference,
        "name": f"Checkout failures ({reference})",
        "summary": "Card payments are failing at checkout",
        "incident_status": {"id": "status-triage", "name": "Triage", "category": "triage"},
        "severity": {"id": "sev-critical", "name": "critical", "rank": 1},
        "incident_type": {"id": "type-default", "name": "Default"},
        "created_at": "2024-05-01T10:00:00Z",
        "updated_at": "2024-05-01T10:05:00Z",
        "permalink": f"https://app.incident.io/acme/incidents/{reference.split('-')[-1]}",
        "visibility": "public",
        "mode": "standard",
        "postmortem_document_url": None,
        "slack_channel_id": "C0123",
        "slack_channel_name": f"inc-{reference.split('-')[-1]}-checkout",
        "slack_team_id": "T0123",
        "custom_field_entries": [],
        "incident_role_assignments": [],
        "incident_timestamp_values": [
            {
                "incident_timestamp": {"id": "ts-impact", "name": "Impact started"},
                "value": {"value": "2024-05-01T09:55:00Z"},
            }
        ],
    }
    incident.update(overrides)
    return incident


class FakeIncidentIo:
    """
    In-memory incident.io API.

    Records every request, serves canned reference data, and keeps incidents
    in a list so edits are observable. ``fail(path, status, payload)`` forces
    an error response for a path; ``page_cap`` limits incident page sizes to
    exercise pagination.
    """

    def __init__(self):
        self.severities = copy.deepcopy(SEVERITIES)
        self.incident_types = copy.deepcopy(INCIDENT_TYPES)
        self.statuses = copy.deepcopy(STATUSES)
        self.roles = copy.deepcopy(ROLES)
        self.timestamps = copy.deepcopy(TIMESTAMPS)
        self.custom_fields = copy.deepcopy(CUSTOM_FIELDS)
        self.users = copy.deepcopy(USERS)
        self.incidents: List[Dict[str, Any]] = [
            make_incident("inc-1", "INC-1"),
            make_incident("inc-2", "INC-2", name="Search latency", severity={"id": "sev-minor", "name": "Minor"}),
        ]
        self.requests: List[httpx.Request] = []
        self.failures: Dict[str, Tuple[int, Any]] = {}
        self.page_cap: Optional[int] = None

    # Test helpers

    def fail(self, path: str, status_code: int, payload: Any = None) -> None:
        self.failures[path] = (status_code, payload)

    def calls(self, method: str, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def bodies(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls(method, path)]

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params

        if path in self.failures:
            status_code, payload = self.failures[path]
            if payload is None:
                return httpx.Response(status_code, text="upstream exploded")
            return httpx.Response(status_code, json=payload)

        if path == "/v1/severities":
            return httpx.Response(200, json={"severities": self.severities})
        if path == "/v1/incident_types":
            return httpx.Response(200, json={"incident_types": self.incident_types})
        if path == "/v1/incident_statuses":
            return httpx.Response(200, json={"incident_statuses": self.statuses})
        if path == "/v1/custom_field_options":
            options = CUSTOM_FIELD_OPTIONS.get(params.get("custom_field_id"), [])
            return httpx.Response(200, json={"custom_field_options": options})

        match = re.fullmatch(r"/v1/incident_types/([^/]+)", path)
        if match:
            for incident_type in self.incident_types:
                if incident_type["id"] == match.group(1):
                    return httpx.Response(200, json={"incident_type": incident_type})
            return self._not_found()

        if path == "/v2/incidents" and request.method == "GET":
            return self._incident_page(params)
        if path == "/v2/incidents" and request.method == "POST":
            return self._create_incident(json.loads(request.content))

        match = re.fullmatch(r"/v2/incidents/([^/]+)/actions/edit", path)
        if match:
            return self._edit_incident(match.group(1), json.loads(request.content))

        if path == "/v2/incident_updates":
            updates = [
                {
                    "id": "update-1",
                    "incident_id": params.get("incident_id", "inc-1"),
                    "message": "Rolled back the deploy",
                    "new_incident_status": {"id": "status-fixing", "name": "Fixing"},
                }
            ]
            return httpx.Response(
                200,
                json={"incident_updates": updates, "pagination_meta": {"page_size": 25, "after": None}},
            )
        if path == "/v2/incident_timestamps":
            return httpx.Response(200, json={"incident_timestamps": self.timestamps})
        if path == "/v2/custom_fields":
            return httpx.Response(200, json={"custom_fields": self.custom_fields})
        if path == "/v2/incident_roles":
            return httpx.Response(200, json={"incident_roles": self.roles})
        if path == "/v2/users":
            users = self.users
            if params.get("email"):
                users = [u for u in users if u["email"] == params.get("email")]
            return httpx.Response(
                200,
                json={"users": users, "pagination_meta": {"page_size": 25, "after": None}},
            )

        match = re.fullmatch(r"/v2/users/([^/]+)", path)
        if match:
            for user in self.users:
                if user["id"] == match.group(1):
                    return httpx.Response(200, json={"user": user})
            return self._not_found()

        return self._not_found()

    def _not_found(self) -> httpx.Response:
        return httpx.Response(404, json={"type": "not_found", "status": 404})

    def _incident_page(self, params: httpx.QueryParams) -> httpx.Response:
        page_size = int(params.get("page_size", 25))
        if self.page_cap:
            page_size = min(page_size, self.page_cap)

        incidents = self.incidents
        if params.get("status[one_of]"):
            incidents = [i for i in incidents if i["incident_status"]["id"] == params.get("status[one_of]")]
        if params.get("severity[one_of]"):
            incidents = [i for i in incidents if i["severity"]["id"] == params.get("severity[one_of]")]

        start = 0
        if params.get("after"):
            ids = [i["id"] for i in incidents]
            start = ids.index(params.get("after")) + 1
        page = incidents[start:start + page_size]
        after = page[-1]["id"] if page and start + page_size < len(incidents) else None
        return httpx.Response(
            200,
            json={
                "incidents": page,
                "pagination_meta": {"after": after, "page_size": page_size, "total_record_count": len(incidents)},
            },
        )

    def _create_incident(self, body: Dict[str, Any]) -> httpx.Response:
        number = len(self.incidents) + 1
        severity = next(s for s in self.severities if s["id"] == body["severity_id"])
        incident = make_incident(
            f"inc-{number}",
            f"INC-{number}",
            name=body["name"],
            summary=body["summary"],
            severity={"id": severity["id"], "name": severity["name"]},
            visibility=body.get("visibility"),
            mode=body.get("mode"),
            custom_field_entries=body.get("custom_field_entries", []),
        )
        self.incidents.append(incident)
        return httpx.Response(201, json={"incident": incident})

    def _edit_incident(self, incident_id: str, body: Dict[str, Any]) -> httpx.Response:
        incident = next((i for i in self.incidents if i["id"] == incident_id), None)
        if incident is None:
            return self._not_found()

        changes = body["incident"]
        for key in ("name", "summary", "custom_field_entries", "incident_timestamp_values"):
            if key in changes:
                incident[key] = changes[key]
        if "incident_status_id" in changes:
            status = next(s for s in self.statuses if s["id"] == changes["incident_status_id"])
            incident["incident_status"] = status
        if "severity_id" in changes:
            severity = next(s for s in self.severities if s["id"] == changes["severity_id"])
            incident["severity"] = {"id": severity["id"], "name": severity["name"]}
        if "incident_role_assignments" in changes:
            incident["incident_role_assignments"] = changes["incident_role_assignments"]
        incident["updated_at"] = "2024-05-01T11:00:00Z"
        return httpx.Response(200, json={"incident": incident})


@pytest.fixture
def upstream() -> FakeIncidentIo:
    return FakeIncidentIo()


@pytest.fixture
def client(upstream) -> IncidentIoClient:
    return IncidentIoClient(
        api_key="test-api-key",
        base_url=BASE_URL,
        transport=httpx.MockTransport(upstream.handler),
    )


@pytest.fixture
def cache(client) -> ReferenceDataCache:
    """A cache that has not fetched anything yet."""
    return ReferenceDataCache(client, refresh_interval=3600)


@pytest_asyncio.fixture
async def loaded_cache(cache) -> ReferenceDataCache:
    await cache.refresh()
    return cache


@pytest.fixture
def service(client, loaded_cache) -> IncidentService:
    return IncidentService(client, loaded_cache)
