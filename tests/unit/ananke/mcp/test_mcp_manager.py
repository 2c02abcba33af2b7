from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import tomlkit

from ananke.core.exceptions import InputValidationError, NotFoundError
from ananke.mcp import manager
from ananke.mcp.models import McpServer

if TYPE_CHECKING:
    from pathlib import Path

    from ananke.config import Settings


def _write_json(path: Path, payload: object) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")


def test_parse_mcp_json_keeps_passthrough_fields() -> None:
    servers = manager.parse_mcp_json(
        '{"mcpServers": {"fs": {"command": "npx", "args": ["fs"], "timeout": 10}}}'
    )
    assert servers == {"fs": {"command": "npx", "args": ["fs"], "timeout": 10}}


@pytest.mark.parametrize(
    ("text", "message"),
    [
        ("{not json", "Invalid MCP JSON"),
        ('{"servers": {}}', "mcpServers object missing"),
        ('{"mcpServers": []}', "mcpServers object missing"),
        ("[]", "mcpServers object missing"),
        ('{"mcpServers": {"fs": {"args": "not-a-list"}}}', "Invalid MCP server 'fs'"),
        ('{"mcpServers": {"fs": {"env": {"PORT": 8080}}}}', "Invalid MCP server 'fs'"),
        ('{"mcpServers": {"fs": "npx fs"}}', "Invalid MCP server 'fs'"),
    ],
)
def test_parse_mcp_json_rejects(text: str, message: str) -> None:
    with pytest.raises(InputValidationError, match=message):
        manager.parse_mcp_json(text)


def test_upsert_preserves_unrelated_top_level_keys(home: Path, settings: Settings) -> None:
    path = home / ".claude.json"
    _write_json(
        path,
        {"numStartups": 3, "projects": {"/src": {}}, "mcpServers": {"old": {"command": "old"}}},
    )

    servers = manager.upsert_mcp_server_json(
        "claude", '{"mcpServers": {"new": {"url": "https://new.example/mcp"}}}', settings
    )

    assert servers == [McpServer(id="new", config={"url": "https://new.example/mcp"})]
    payload = json.loads(path.read_text(encoding="utf-8"))
    assert payload["numStartups"] == 3
    assert payload["projects"] == {"/src": {}}
    assert payload["mcpServers"] == {
        "old": {"command": "old"},
        "new": {"url": "https://new.example/mcp"},
    }


def test_upsert_into_codex_creates_toml(home: Path, settings: Settings) -> None:
    manager.upsert_mcp_server_json(
        "codex", '{"mcpServers": {"fs": {"command": "npx", "args": ["-y", "fs"]}}}', settings
    )

    document = tomlkit.parse((home / ".codex" / "config.toml").read_text(encoding="utf-8"))
    assert document.unwrap() == {"mcp_servers": {"fs": {"command": "npx", "args": ["-y", "fs"]}}}


def test_upsert_into_opencode_uses_native_shape(home: Path, settings: Settings) -> None:
    manager.upsert_mcp_server_json(
        "opencode",
        '{"mcpServers": {"fs": {"command": "npx", "args": ["fs"], "env": {"A": "1"}}}}',
        settings,
    )

    payload = json.loads(
        (home / ".config" / "opencode" / "opencode.json").read_text(encoding="utf-8")
    )
    assert payload == {
        "mcp": {"fs": {"command": ["npx", "fs"], "environment": {"A": "1"}, "type": "local"}}
    }


def test_upsert_unknown_source(settings: Settings) -> None:
    with pytest.raises(NotFoundError, match="Unknown MCP source: nope"):
        manager.upsert_mcp_server_json("nope", '{"mcpServers": {}}', settings)


def test_delete_missing_server_leaves_file_byte_identical(home: Path, settings: Settings) -> None:
    path = home / ".cursor" / "mcp.json"
    _write_json(path, {"mcpServers": {"fs": {"command": "fs"}}})
    before = path.read_bytes()

    with pytest.raises(NotFoundError):
        manager.delete_mcp_server("cursor", "missing", settings)

    assert path.read_bytes() == before


def test_delete_server(home: Path, settings: Settings) -> None:
    path = home / ".cursor" / "mcp.json"
    _write_json(path, {"mcpServers": {"fs": {"command": "fs"}, "web": {"url": "https://w"}}})

    manager.delete_mcp_server("cursor", "fs", settings)

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "mcpServers": {"web": {"url": "https://w"}}
    }


def test_list_mcp_sources_reports_installed_tools(home: Path, settings: Settings) -> None:
    _write_json(home / ".claude" / "mcp.json", {"mcpServers": {"fs": {"command": "fs"}}})
    (home / ".cursor").mkdir()

    sources = {source.id: source for source in manager.list_mcp_sources(settings)}

    assert set(sources) == {"claude", "cursor"}
    claude = sources["claude"]
    assert claude.path == str(home / ".claude" / "mcp.json")
    assert claude.exists is True
    assert claude.servers == [McpServer(id="fs", config={"command": "fs"})]
    cursor = sources["cursor"]
    assert cursor.exists is False
    assert cursor.servers == []
    assert cursor.path == str(home / ".cursor" / "mcp.json")


def test_list_mcp_sources_includes_config_without_install_root(
    home: Path, settings: Settings
) -> None:
    _write_json(home / ".claude.json", {"mcpServers": {}})

    sources = manager.list_mcp_sources(settings)

    assert [source.id for source in sources] == ["claude"]
    assert sources[0].path == str(home / ".claude.json")


def test_antigravity_legacy_location_is_read_and_written(home: Path, settings: Settings) -> None:
    legacy = home / ".antigravity" / "mcp.json"
    _write_json(legacy, {"mcpServers": {"web": {"serverUrl": "https://web"}}})

    (source,) = manager.list_mcp_sources(settings)
    assert source.id == "antigravity"
    assert source.servers == [McpServer(id="web", config={"url": "https://web"})]

    manager.upsert_mcp_server_json(
        "antigravity", '{"mcpServers": {"docs": {"url": "https://docs"}}}', settings
    )
    payload = json.loads(legacy.read_text(encoding="utf-8"))
    assert payload["mcpServers"]["docs"] == {"serverUrl": "https://docs"}


def test_sync_mcp_between_is_add_only_and_idempotent(home: Path, settings: Settings) -> None:
    _write_json(
        home / ".claude.json",
        {
            "mcpServers": {
                "fs": {"command": "npx", "args": ["fs"]},
                "web": {"url": "https://web"},
            }
        },
    )
    codex = home / ".codex" / "config.toml"
    codex.parent.mkdir(parents=True)
    codex.write_text('[mcp_servers.web]\nurl = "https://codex-web"\n', encoding="utf-8")

    first = manager.sync_mcp_between("claude", "codex", settings)
    second = manager.sync_mcp_between("claude", "codex", settings)

    assert (first.added, first.skipped) == (1, 1)
    assert (second.added, second.skipped) == (0, 2)
    document = tomlkit.parse(codex.read_text(encoding="utf-8")).unwrap()
    assert document["mcp_servers"] == {
        "web": {"url": "https://codex-web"},
        "fs": {"command": "npx", "args": ["fs"]},
    }


def test_sync_mcp_between_errors(settings: Settings) -> None:
    with pytest.raises(InputValidationError):
        manager.sync_mcp_between("claude", "claude", settings)
    with pytest.raises(NotFoundError, match="Unknown MCP target"):
        manager.sync_mcp_between("claude", "nope", settings)
