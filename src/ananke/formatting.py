"""Formatting helpers shared by the CLI listings."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ananke.sync import SyncResult


def format_last_modified(timestamp: int | None) -> str:
    if timestamp is None:
        return "unknown"
    try:
        parsed = datetime.fromtimestamp(timestamp, tz=UTC)
    except (OverflowError, OSError, ValueError):
        return str(timestamp)
    return parsed.strftime("%Y-%m-%d %H:%M:%S")


def format_source_url(url: str | None) -> str:
    if url is None:
        return "-"
    trimmed = url.strip()
    return trimmed or "-"


def format_server_target(config: Any) -> str:
    """One-line summary of where a canonical server config points."""
    if not isinstance(config, dict):
        return "?"
    url = config.get("url")
    if isinstance(url, str) and url:
        return url
    command = config.get("command")
    if not isinstance(command, str) or not command:
        return "?"
    args = config.get("args")
    if isinstance(args, list):
        return " ".join([command, *(str(arg) for arg in args)])
    return command


def format_sync_result(result: SyncResult) -> str:
    return f"added {result.added}, skipped {result.skipped}"
