"""Integrations with external services (text generation)."""
