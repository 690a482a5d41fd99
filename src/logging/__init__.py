"""Logging setup, formatters and run context."""
