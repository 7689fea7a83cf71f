"""Per-session transport registry behind the MCP streamable HTTP endpoint."""
