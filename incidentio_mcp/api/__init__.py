"""
HTTP REST surface for the incident.io adapter.

Routes translate HTTP requests into service operations and render failed
operation results through the registered exception handlers.
"""
