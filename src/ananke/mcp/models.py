"""Canonical MCP server records."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict


class McpFormatKind(StrEnum):
    CODEX_TOML = "codex-toml"
    CLAUDE_JSON = "claude-json"
    ANTIGRAVITY_JSON = "antigravity-json"
    OPENCODE_JSON = "opencode-json"


class StandardServerConfig(BaseModel):
    """Neutral server configuration shared by every native format.

    Recognized fields are strictly typed; anything else is kept verbatim as
    extra data so round-trips never lose keys.
    """

    command: str | None = None
    args: list[str] | None = None
    url: str | None = None
    env: dict[str, str] | None = None
    type: str | None = None
    enabled: bool | None = None

    model_config = ConfigDict(extra="allow", strict=True)

    def to_config(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


@dataclass(frozen=True, slots=True)
class McpServer:
    id: str
    config: Any


@dataclass(frozen=True, slots=True)
class McpSource:
    id: str
    label: str
    path: str
    format: str
    exists: bool
    servers: list[McpServer] = field(default_factory=list)
