"""MCP server configuration: native formats and operations."""
