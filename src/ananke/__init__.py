"""Install, sync and edit AI-assistant skills and MCP servers across local tools."""

__version__ = "0.1.0"
