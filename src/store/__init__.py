"""Record stores and checkpoint persistence."""
