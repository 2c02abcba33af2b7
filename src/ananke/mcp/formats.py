"""Native MCP configuration formats and their canonical conversions.

Each format knows which top-level key holds its servers, how to load and save
its document, and how to translate one server entry to and from the canonical
schema. Writes are always read-modify-write so unrelated keys survive.
"""

from __future__ import annotations

from collections.abc import Mapping, MutableMapping
from typing import TYPE_CHECKING, Any, ClassVar

import tomlkit

from ananke.core.exceptions import NotFoundError, StructuralError
from ananke.core.logging import get_logger
from ananke.mcp.documents import (
    load_json_document,
    load_toml_document,
    plain_to_toml,
    save_json_document,
    save_toml_document,
    toml_to_plain,
)
from ananke.mcp.models import McpFormatKind, McpServer

if TYPE_CHECKING:
    from pathlib import Path

logger = get_logger(__name__)


def _require_object(config: Any) -> dict[str, Any]:
    if not isinstance(config, Mapping):
        raise StructuralError("MCP server config must be an object")
    return dict(config)


class ServerFormat:
    """Base class: JSON document, servers under :attr:`container_key`, no renaming."""

    kind: ClassVar[McpFormatKind]
    container_key: ClassVar[str] = "mcpServers"
    document_label: ClassVar[str] = "JSON"

    def to_standard(self, native: Any) -> Any:
        return native

    def from_standard(self, config: Any) -> dict[str, Any]:
        return _require_object(config)

    def load_document(self, path: Path) -> Any:
        return load_json_document(path)

    def save_document(self, path: Path, document: Any) -> None:
        save_json_document(path, document)

    def to_plain(self, value: Any) -> Any:
        return value

    def from_plain(self, value: Any) -> Any:
        return value

    def read_entries(self, path: Path) -> list[McpServer]:
        if not path.exists():
            return []
        document = self.load_document(path)
        if not isinstance(document, Mapping):
            return []
        container = document.get(self.container_key)
        if not isinstance(container, Mapping):
            return []
        servers = [
            McpServer(id=str(server_id), config=self.to_standard(self.to_plain(native)))
            for server_id, native in container.items()
        ]
        servers.sort(key=lambda server: server.id)
        return servers

    def upsert_entries(self, path: Path, entries: Mapping[str, Any]) -> None:
        document = self.load_document(path)
        if not isinstance(document, MutableMapping):
            raise StructuralError(f"Invalid {self.document_label} format in {path}")
        if self.container_key not in document:
            document[self.container_key] = self._new_container()
        container = document[self.container_key]
        if not isinstance(container, MutableMapping):
            raise StructuralError(f"Invalid {self.container_key} format in {path}")

        for server_id, config in entries.items():
            container[server_id] = self.from_plain(self.from_standard(config))

        self.save_document(path, document)
        logger.info(
            "Wrote MCP servers",
            data={"path": str(path), "servers": sorted(entries), "format": str(self.kind)},
        )

    def delete_entry(self, path: Path, server_id: str) -> None:
        document = self.load_document(path)
        if not isinstance(document, MutableMapping):
            raise StructuralError(f"Invalid {self.document_label} format in {path}")
        container = document.get(self.container_key)
        if not isinstance(container, MutableMapping):
            raise NotFoundError("No MCP servers configured")
        if server_id not in container:
            raise NotFoundError(f"MCP server not found: {server_id}")
        del container[server_id]
        self.save_document(path, document)
        logger.info("Deleted MCP server", data={"path": str(path), "server": server_id})

    def _new_container(self) -> Any:
        return {}


class ClaudeJsonFormat(ServerFormat):
    """``{"mcpServers": {id: config}}`` already in canonical shape."""

    kind = McpFormatKind.CLAUDE_JSON


class CodexTomlFormat(ServerFormat):
    """``[mcp_servers.<id>]`` tables in a TOML document."""

    kind = McpFormatKind.CODEX_TOML
    container_key = "mcp_servers"
    document_label = "TOML"

    def load_document(self, path: Path) -> Any:
        return load_toml_document(path)

    def save_document(self, path: Path, document: Any) -> None:
        save_toml_document(path, document)

    def to_plain(self, value: Any) -> Any:
        return toml_to_plain(value)

    def from_plain(self, value: Any) -> Any:
        return plain_to_toml(value)

    def _new_container(self) -> Any:
        return tomlkit.table()


class AntigravityJsonFormat(ServerFormat):
    """Remote servers use ``serverUrl`` instead of ``url``."""

    kind = McpFormatKind.ANTIGRAVITY_JSON

    def to_standard(self, native: Any) -> Any:
        if not isinstance(native, Mapping):
            return native
        out: dict[str, Any] = {}
        for key, value in native.items():
            if key == "serverUrl":
                out["url"] = value
            elif key != "url" or "url" not in out:
                out[key] = value
        return out

    def from_standard(self, config: Any) -> dict[str, Any]:
        obj = _require_object(config)
        out = {key: value for key, value in obj.items() if key != "url"}
        if "serverUrl" not in out and "url" in obj:
            out["serverUrl"] = obj["url"]
        return out


class OpenCodeJsonFormat(ServerFormat):
    """Servers under ``mcp`` with the command and its args in one array."""

    kind = McpFormatKind.OPENCODE_JSON
    container_key = "mcp"

    _HANDLED_KEYS = frozenset({"command", "url", "enabled", "type", "env", "environment"})

    def to_standard(self, native: Any) -> Any:
        if not isinstance(native, Mapping):
            return native
        out: dict[str, Any] = {}

        if "url" in native:
            out["url"] = native["url"]

        command = native.get("command")
        if isinstance(command, list):
            if command and isinstance(command[0], str):
                out["command"] = command[0]
                args = [item for item in command[1:] if isinstance(item, str)]
                if args:
                    out["args"] = args
        elif isinstance(command, str):
            out["command"] = command

        for key in ("enabled", "type"):
            if key in native:
                out[key] = native[key]

        if "environment" in native:
            out["env"] = native["environment"]
        elif "env" in native:
            out["env"] = native["env"]

        for key, value in native.items():
            if key not in self._HANDLED_KEYS:
                out[key] = value
        return out

    def from_standard(self, config: Any) -> dict[str, Any]:
        out = _require_object(config)

        if "command" in out:
            command = out["command"]
            if isinstance(command, str):
                args = out.get("args")
                if not isinstance(args, list):
                    args = []
                out["command"] = [command, *(arg for arg in args if isinstance(arg, str))]
            out.pop("args", None)

        if "env" in out:
            env = out.pop("env")
            out.setdefault("environment", env)

        if "type" not in out:
            if "url" in out:
                out["type"] = "remote"
            elif "command" in out:
                out["type"] = "local"
        return out


FORMATS: dict[McpFormatKind, ServerFormat] = {
    fmt.kind: fmt
    for fmt in (
        ClaudeJsonFormat(),
        CodexTomlFormat(),
        AntigravityJsonFormat(),
        OpenCodeJsonFormat(),
    )
}


def get_format(kind: McpFormatKind) -> ServerFormat:
    return FORMATS[kind]
