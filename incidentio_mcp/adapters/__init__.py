"""
Adapters package for the incident.io adapter.

This package contains the components that talk to incident.io:
- The upstream HTTP client for the v1 and v2 API roots
- The request translator building upstream payloads from adapter inputs
- The response translator shaping upstream responses for callers
"""
