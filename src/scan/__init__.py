"""Scan coordination and progress reporting."""
