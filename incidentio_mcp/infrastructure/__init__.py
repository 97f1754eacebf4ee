"""Infrastructure layer for the incident.io adapter."""
