"""Core configuration, logging and exception types."""
