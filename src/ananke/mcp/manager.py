"""MCP server operations across tool configuration files."""

from __future__ import annotations

import json
from typing import Any

from pydantic import ValidationError

from ananke.config import Settings, get_settings
from ananke.core.exceptions import InputValidationError
from ananke.core.logging import get_logger
from ananke.mcp.formats import get_format
from ananke.mcp.models import McpServer, McpSource, StandardServerConfig
from ananke.sources import find_mcp_source, mcp_source_configs
from ananke.sync import SyncResult, ensure_distinct, plan_sync

logger = get_logger(__name__)


def parse_mcp_json(text: str) -> dict[str, dict[str, Any]]:
    """Parse ``{"mcpServers": {...}}`` into canonical configs keyed by server id."""
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InputValidationError(
            f"Invalid MCP JSON (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc

    servers = payload.get("mcpServers") if isinstance(payload, dict) else None
    if not isinstance(servers, dict):
        raise InputValidationError("mcpServers object missing")

    results: dict[str, dict[str, Any]] = {}
    for server_id, config in servers.items():
        try:
            standard = StandardServerConfig.model_validate(config)
        except ValidationError as exc:
            raise InputValidationError(f"Invalid MCP server '{server_id}': {exc}") from exc
        results[server_id] = standard.to_config()
    return results


def list_mcp_sources(settings: Settings | None = None) -> list[McpSource]:
    home = (settings or get_settings()).resolve_home()
    response: list[McpSource] = []
    for config in mcp_source_configs(home):
        if not config.install_root.is_dir() and not config.has_config():
            continue
        path = config.resolve_read_path()
        exists = path.exists()
        servers = get_format(config.kind).read_entries(path) if exists else []
        response.append(
            McpSource(
                id=config.id,
                label=config.label,
                path=str(path),
                format=config.format,
                exists=exists,
                servers=servers,
            )
        )
    return response


def sync_mcp_between(
    source_id: str,
    target_id: str,
    settings: Settings | None = None,
) -> SyncResult:
    """Copy servers missing from the target; servers already there are left alone."""
    ensure_distinct(source_id, target_id)
    home = (settings or get_settings()).resolve_home()
    source = find_mcp_source(home, source_id)
    target = find_mcp_source(home, target_id, missing_message="Unknown MCP target")

    source_servers = get_format(source.kind).read_entries(source.resolve_read_path())
    target_format = get_format(target.kind)
    target_servers = target_format.read_entries(target.resolve_read_path())

    plan = plan_sync(
        source_servers,
        (server.id for server in target_servers),
        key=lambda server: server.id,
    )
    for server in plan.skipped:
        logger.debug("Server already present in target", data={"server": server.id})

    if plan.to_add:
        target_format.upsert_entries(
            target.primary_path,
            {server.id: server.config for server in plan.to_add},
        )
    return plan.result


def upsert_mcp_server_json(
    source_id: str,
    json_text: str,
    settings: Settings | None = None,
) -> list[McpServer]:
    """Insert or replace the servers described by a canonical JSON document."""
    home = (settings or get_settings()).resolve_home()
    config = find_mcp_source(home, source_id)
    servers = parse_mcp_json(json_text)
    get_format(config.kind).upsert_entries(config.primary_path, servers)
    return [McpServer(id=server_id, config=servers[server_id]) for server_id in sorted(servers)]


def delete_mcp_server(
    source_id: str,
    server_id: str,
    settings: Settings | None = None,
) -> None:
    home = (settings or get_settings()).resolve_home()
    config = find_mcp_source(home, source_id)
    get_format(config.kind).delete_entry(config.primary_path, server_id)
