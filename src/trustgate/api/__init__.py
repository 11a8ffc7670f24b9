"""HTTP API for the Trustgate service."""
