"""
incident.io MCP adapter - protocol façade for the incident.io API.

This package exposes the incident.io incident-management API through an HTTP
REST surface and a tool-invocation (MCP) server, translating human-readable
names into upstream IDs and reshaping upstream responses.
"""

__version__ = "0.1.0"
