"""Tests for shaping incident.io responses."""

import pytest

from conftest import make_incident
from incidentio_mcp.adapters.response_translator import (
    format_incident,
    format_incident_list,
    format_reference_entities,
    format_status_change,
)
from incidentio_mcp.core.exceptions import UpstreamError
from incidentio_mcp.domain.models.reference import Severity

ALWAYS_PRESENT = {
    "id", "reference", "name", "status", "severity", "created_at", "permalink",
    "visibility", "mode", "summary", "incident_type", "postmortem_document_url",
    "slack_channel_id", "slack_channel_name", "slack_team_id", "updated_at",
}


class TestFormatIncident:
    """Test the outward incident shape."""

    def test_status_and_severity_are_flattened_to_names(self):
        formatted = format_incident(make_incident("inc-1", "INC-1"))

        assert formatted["status"] == "Triage"
        assert formatted["severity"] == "critical"
        assert formatted["incident_type"] == {"id": "type-default", "name": "Default"}

    def test_always_present_fields_are_emitted_even_when_null(self):
        formatted = format_incident({"id": "inc-9"})

        assert ALWAYS_PRESENT <= set(formatted)
        assert formatted["postmortem_document_url"] is None
        assert formatted["status"] is None

    def test_absent_optional_fields_are_not_keys(self):
        incident = make_incident("inc-1", "INC-1")
        assert "description" not in incident

        formatted = format_incident(incident)

        for key in ("description", "resolved_at", "call_url", "labels", "duration_metrics"):
            assert key not in formatted

    def test_present_optional_fields_are_passed_through(self):
        incident = make_incident(
            "inc-1", "INC-1", description="Root cause: expired cert", call_url="https://meet.example.com/x"
        )

        formatted = format_incident(incident)

        assert formatted["description"] == "Root cause: expired cert"
        assert formatted["call_url"] == "https://meet.example.com/x"
        assert formatted["incident_timestamp_values"][0]["incident_timestamp"]["name"] == "Impact started"

    def test_unknown_upstream_fields_are_dropped(self):
        formatted = format_incident(make_incident("inc-1", "INC-1", creator={"user": {"id": "u"}}))
        assert "creator" not in formatted
        assert "incident_status" not in formatted

    def test_unreadable_payload_raises_upstream_error(self):
        with pytest.raises(UpstreamError) as exc_info:
            format_incident({"reference": "INC-1"})
        assert exc_info.value.detail == "incident.io returned an unexpected incident payload"


class TestOtherShapes:
    """Test list, status change and reference shapes."""

    def test_status_change(self):
        incident = make_incident(
            "inc-1", "INC-1", incident_status={"id": "status-closed", "name": "Closed"}
        )
        assert format_status_change(incident) == {
            "id": "inc-1",
            "reference": "INC-1",
            "status": "Closed",
            "updated_at": "2024-05-01T10:05:00Z",
        }

    def test_incident_list_keeps_pagination(self):
        body = {
            "incidents": [make_incident("inc-1", "INC-1")],
            "pagination_meta": {"after": "inc-1", "page_size": 1},
        }

        formatted = format_incident_list(body)

        assert [i["reference"] for i in formatted["incidents"]] == ["INC-1"]
        assert formatted["pagination"] == {"after": "inc-1", "page_size": 1}

    def test_empty_incident_list(self):
        assert format_incident_list({}) == {"incidents": [], "pagination": None}

    def test_reference_entities(self):
        entities = [Severity(id="sev-1", name="critical", rank=1)]
        assert format_reference_entities(entities) == [
            {"id": "sev-1", "name": "critical", "description": None, "rank": 1}
        ]
