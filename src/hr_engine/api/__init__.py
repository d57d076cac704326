"""HTTP wrapper around the core services."""
