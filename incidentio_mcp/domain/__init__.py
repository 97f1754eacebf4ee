"""
Domain package for the incident.io adapter.

This package contains the models and request schemas that describe the
adapter's outward contract, independent of the HTTP and tool surfaces.
"""
