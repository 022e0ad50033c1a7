"""xpost-mcp: MCP gateway for drafting and publishing X.com posts."""

__version__ = "1.0.0"
