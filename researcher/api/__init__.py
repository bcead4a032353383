"""HTTP API for the research service."""
