"""Item sources."""
