"""MCP server surface for the Wolai sync engine."""
