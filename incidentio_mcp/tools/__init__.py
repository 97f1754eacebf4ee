"""
MCP tool surface for the incident.io adapter.

Exposes every incident service operation as a FastMCP tool served over
stdio.
"""
