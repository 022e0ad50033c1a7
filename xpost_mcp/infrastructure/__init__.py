"""Adapters for storage and external services."""
