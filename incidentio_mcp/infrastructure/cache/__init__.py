"""Caching implementations for the incident.io adapter."""

from incidentio_mcp.infrastructure.cache.reference_cache import ReferenceDataCache, find_entry

__all__ = ["ReferenceDataCache", "find_entry"]
