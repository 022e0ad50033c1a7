"""Command-line interface for xpost-mcp."""
