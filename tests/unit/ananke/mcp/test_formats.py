from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import tomlkit

from ananke.core.exceptions import InputValidationError, NotFoundError, StructuralError
from ananke.mcp.formats import (
    AntigravityJsonFormat,
    ClaudeJsonFormat,
    CodexTomlFormat,
    OpenCodeJsonFormat,
    ServerFormat,
    get_format,
)
from ananke.mcp.models import McpFormatKind, McpServer

if TYPE_CHECKING:
    from pathlib import Path

CODEX_CONFIG = """\
# global settings
model = "o3"

[mcp_servers.docs]
command = "npx"
args = ["-y", "docs-server"]
startup_timeout_ms = 20000
ratio = 0.5
enabled = true

[mcp_servers.docs.env]
API_KEY = "abc"
"""


def _write_json(path: Path, payload: object) -> None:
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def test_get_format_covers_every_kind() -> None:
    for kind in McpFormatKind:
        assert get_format(kind).kind is kind


def test_claude_read_sorts_and_keeps_passthrough(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    _write_json(
        path,
        {
            "mcpServers": {
                "zeta": {"url": "https://zeta.example/mcp", "headers": {"X-Key": "1"}},
                "alpha": {"command": "uvx", "args": ["alpha"], "timeout": 30},
            }
        },
    )

    servers = ClaudeJsonFormat().read_entries(path)

    assert servers == [
        McpServer(id="alpha", config={"command": "uvx", "args": ["alpha"], "timeout": 30}),
        McpServer(
            id="zeta", config={"url": "https://zeta.example/mcp", "headers": {"X-Key": "1"}}
        ),
    ]


def test_read_missing_file_or_container(tmp_path: Path) -> None:
    fmt = ClaudeJsonFormat()
    assert fmt.read_entries(tmp_path / "absent.json") == []

    path = tmp_path / "mcp.json"
    _write_json(path, {"mcpServers": ["not", "an", "object"]})
    assert fmt.read_entries(path) == []


def test_read_reports_parse_position(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text('{\n  "mcpServers": {,}\n}\n', encoding="utf-8")

    with pytest.raises(InputValidationError, match=r"line 2, column"):
        ClaudeJsonFormat().read_entries(path)


def test_upsert_preserves_unrelated_keys_and_siblings(tmp_path: Path) -> None:
    path = tmp_path / "claude.json"
    _write_json(
        path,
        {"numStartups": 7, "mcpServers": {"old": {"command": "old"}}, "theme": "dark"},
    )

    ClaudeJsonFormat().upsert_entries(path, {"new": {"url": "https://new.example"}})

    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload == {
        "numStartups": 7,
        "mcpServers": {"old": {"command": "old"}, "new": {"url": "https://new.example"}},
        "theme": "dark",
    }
    assert path.read_text(encoding="utf-8").endswith("}\n")


def test_upsert_creates_missing_file_and_parents(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "dir" / "mcp.json"

    ClaudeJsonFormat().upsert_entries(path, {"fs": {"command": "fs"}})

    assert json.loads(path.read_text(encoding="utf-8")) == {"mcpServers": {"fs": {"command": "fs"}}}


def test_upsert_treats_blank_file_as_empty(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text("  \n", encoding="utf-8")

    ClaudeJsonFormat().upsert_entries(path, {"fs": {"command": "fs"}})

    assert ClaudeJsonFormat().read_entries(path) == [McpServer(id="fs", config={"command": "fs"})]


def test_upsert_rejects_non_object_container_or_root(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    _write_json(path, {"mcpServers": []})
    with pytest.raises(StructuralError):
        ClaudeJsonFormat().upsert_entries(path, {"fs": {"command": "fs"}})

    _write_json(path, [1, 2])
    with pytest.raises(StructuralError):
        ClaudeJsonFormat().upsert_entries(path, {"fs": {"command": "fs"}})


def test_delete_missing_entry_leaves_file_untouched(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    path.write_text('{"mcpServers": {"fs": {"command": "fs"}}, "x": 1}', encoding="utf-8")
    before = path.read_bytes()

    with pytest.raises(NotFoundError, match="MCP server not found"):
        ClaudeJsonFormat().delete_entry(path, "missing")

    assert path.read_bytes() == before


def test_delete_without_container(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    _write_json(path, {"other": True})

    with pytest.raises(NotFoundError, match="No MCP servers configured"):
        ClaudeJsonFormat().delete_entry(path, "fs")


def test_delete_removes_only_that_entry(tmp_path: Path) -> None:
    path = tmp_path / "mcp.json"
    _write_json(path, {"mcpServers": {"a": {"command": "a"}, "b": {"command": "b"}}})

    ClaudeJsonFormat().delete_entry(path, "a")

    assert json.loads(path.read_text(encoding="utf-8")) == {"mcpServers": {"b": {"command": "b"}}}


def test_codex_read_keeps_value_types(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(CODEX_CONFIG, encoding="utf-8")

    (server,) = CodexTomlFormat().read_entries(path)

    assert server.id == "docs"
    assert server.config == {
        "command": "npx",
        "args": ["-y", "docs-server"],
        "startup_timeout_ms": 20000,
        "ratio": 0.5,
        "enabled": True,
        "env": {"API_KEY": "abc"},
    }
    assert type(server.config["startup_timeout_ms"]) is int
    assert type(server.config["ratio"]) is float


def test_codex_upsert_keeps_comments_and_other_tables(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(CODEX_CONFIG, encoding="utf-8")
    fmt = CodexTomlFormat()

    fmt.upsert_entries(
        path, {"search": {"url": "https://search.example/mcp", "env": {"TOKEN": "t"}}}
    )

    text = path.read_text(encoding="utf-8")
    assert "# global settings" in text
    assert tomlkit.parse(text)["model"] == "o3"
    servers = {server.id: server.config for server in fmt.read_entries(path)}
    assert set(servers) == {"docs", "search"}
    assert servers["search"] == {"url": "https://search.example/mcp", "env": {"TOKEN": "t"}}
    assert servers["docs"]["startup_timeout_ms"] == 20000


def test_codex_upsert_into_new_file(tmp_path: Path) -> None:
    path = tmp_path / ".codex" / "config.toml"
    config = {"command": "uvx", "args": ["srv"], "retries": 3, "weight": 1.5, "enabled": False}

    CodexTomlFormat().upsert_entries(path, {"srv": config})

    assert CodexTomlFormat().read_entries(path) == [McpServer(id="srv", config=config)]


def test_codex_rejects_null_values(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text(CODEX_CONFIG, encoding="utf-8")

    with pytest.raises(StructuralError, match="Null values are not supported"):
        CodexTomlFormat().upsert_entries(path, {"bad": {"command": "x", "cwd": None}})

    assert path.read_text(encoding="utf-8") == CODEX_CONFIG


def test_codex_invalid_toml(tmp_path: Path) -> None:
    path = tmp_path / "config.toml"
    path.write_text("[mcp_servers\n", encoding="utf-8")

    with pytest.raises(InputValidationError, match="Invalid TOML"):
        CodexTomlFormat().read_entries(path)


def test_antigravity_maps_server_url() -> None:
    fmt = AntigravityJsonFormat()

    assert fmt.to_standard({"serverUrl": "https://a", "headers": {"k": "v"}}) == {
        "url": "https://a",
        "headers": {"k": "v"},
    }
    assert fmt.to_standard({"url": "https://b", "serverUrl": "https://a"}) == {"url": "https://a"}
    assert fmt.from_standard({"url": "https://a", "headers": {}}) == {
        "headers": {},
        "serverUrl": "https://a",
    }
    assert fmt.from_standard({"url": "https://b", "serverUrl": "https://a"}) == {
        "serverUrl": "https://a"
    }
    assert fmt.from_standard({"command": "npx"}) == {"command": "npx"}


def test_opencode_to_standard() -> None:
    native = {
        "type": "local",
        "command": ["npx", "-y", "fs-server"],
        "environment": {"ROOT": "/tmp"},
        "enabled": True,
        "timeout": 5000,
    }

    assert OpenCodeJsonFormat().to_standard(native) == {
        "type": "local",
        "command": "npx",
        "args": ["-y", "fs-server"],
        "env": {"ROOT": "/tmp"},
        "enabled": True,
        "timeout": 5000,
    }
    assert OpenCodeJsonFormat().to_standard({"command": ["solo"]}) == {"command": "solo"}


def test_opencode_from_standard_infers_type() -> None:
    fmt = OpenCodeJsonFormat()

    assert fmt.from_standard({"command": "uvx", "args": ["srv"], "env": {"A": "1"}}) == {
        "command": ["uvx", "srv"],
        "environment": {"A": "1"},
        "type": "local",
    }
    assert fmt.from_standard({"url": "https://remote"}) == {
        "url": "https://remote",
        "type": "remote",
    }
    assert fmt.from_standard({"url": "https://remote", "type": "sse"})["type"] == "sse"
    assert "type" not in fmt.from_standard({"note": "nothing to run"})


@pytest.mark.parametrize(
    "fmt",
    [ClaudeJsonFormat(), AntigravityJsonFormat(), OpenCodeJsonFormat(), CodexTomlFormat()],
    ids=lambda fmt: str(fmt.kind),
)
def test_write_then_read_returns_canonical_config(fmt: ServerFormat, tmp_path: Path) -> None:
    local = {"command": "npx", "args": ["-y", "pkg"], "env": {"K": "v"}, "extra": {"deep": [1, 2]}}
    remote = {"url": "https://remote.example/mcp", "custom": "kept"}
    path = tmp_path / "config"

    fmt.upsert_entries(path, {"local": local, "remote": remote})
    servers = {server.id: server.config for server in fmt.read_entries(path)}

    if isinstance(fmt, OpenCodeJsonFormat):
        assert servers["local"] == {**local, "type": "local"}
        assert servers["remote"] == {**remote, "type": "remote"}
    else:
        assert servers == {"local": local, "remote": remote}
