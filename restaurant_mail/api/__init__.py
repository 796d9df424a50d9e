"""HTTP API module for the restaurant mail service."""
