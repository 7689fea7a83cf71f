"""OAuth 2.1 authorization server for the MCP session gateway."""
