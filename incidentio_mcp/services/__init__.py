"""
Services package for the incident.io adapter.

Services orchestrate the adapter's operations, coordinating the reference
cache, the request/response translators and the upstream client. Both the
HTTP routes and the MCP tools call into this layer.
"""

from incidentio_mcp.services.incident_service import IncidentService

__all__ = ["IncidentService"]
