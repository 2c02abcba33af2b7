"""Typer application for the ``ananke`` command."""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich.tree import Tree

from ananke import __version__
from ananke.config import Settings, get_settings
from ananke.core.exceptions import AnankeError, ContentEncodingError
from ananke.core.logging import configure_logging
from ananke.formatting import (
    format_last_modified,
    format_server_target,
    format_source_url,
    format_sync_result,
)
from ananke.mcp import manager as mcp_manager
from ananke.skills import manager as skills_manager

if TYPE_CHECKING:
    from collections.abc import Iterator

    from ananke.skills.registry import SkillTreeNode

app = typer.Typer(
    name="ananke",
    help="Install, sync and edit skills and MCP servers across AI coding tools.",
    no_args_is_help=True,
)
skills_app = typer.Typer(help="Manage skill directories.", no_args_is_help=True)
mcp_app = typer.Typer(help="Manage MCP server entries.", no_args_is_help=True)
app.add_typer(skills_app, name="skills")
app.add_typer(mcp_app, name="mcp")

console = Console()
err_console = Console(stderr=True)

TokenOption = Annotated[
    str | None,
    typer.Option(
        "--token",
        help="GitHub token. Defaults to SKILL_GITHUB_TOKEN, GITHUB_TOKEN or GH_TOKEN.",
    ),
]


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except (AnankeError, OSError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _settings(ctx: typer.Context) -> Settings:
    if isinstance(ctx.obj, Settings):
        return ctx.obj
    return get_settings()


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"ananke {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        bool, typer.Option("--verbose", "-v", help="Log debug details to stderr.")
    ] = False,
    config: Annotated[
        Path | None, typer.Option("--config", help="Path to an ananke YAML config file.")
    ] = None,
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show version."),
    ] = False,
) -> None:
    configure_logging(logging.DEBUG if verbose else logging.WARNING)
    with _handle_errors():
        ctx.obj = get_settings(config)


@skills_app.command("list")
def skills_list(ctx: typer.Context) -> None:
    """List installed skills for every tool found on this machine."""
    with _handle_errors():
        sources = skills_manager.list_skills(_settings(ctx))

    if not sources:
        console.print("[dim]No supported tools found.[/dim]")
        return

    for source in sources:
        title = f"{escape(source.label)} [dim]({escape(source.id)})[/dim]"
        if not source.exists:
            console.print(f"{title}: [dim]no skills directory at {escape(source.root)}[/dim]")
            continue
        if not source.skills:
            console.print(f"{title}: [dim]no skills[/dim]")
            continue
        table = Table(title=title, title_justify="left")
        table.add_column("ID", style="cyan")
        table.add_column("Name")
        table.add_column("Description", overflow="fold")
        table.add_column("Modified")
        table.add_column("Source URL", overflow="fold")
        for skill in source.skills:
            table.add_row(
                escape(skill.id),
                escape(skill.name),
                escape(skill.description),
                format_last_modified(skill.last_modified),
                escape(format_source_url(skill.source_url)),
            )
        console.print(table)


def _add_tree_children(tree: Tree, node: SkillTreeNode) -> None:
    for child in node.children:
        if child.kind == "dir":
            branch = tree.add(f"[bold]{escape(child.name)}/[/bold]")
            _add_tree_children(branch, child)
        elif child.kind == "link":
            tree.add(f"[magenta]{escape(child.name)}[/magenta] [dim](link)[/dim]")
        else:
            tree.add(escape(child.name))


@skills_app.command("tree")
def skills_tree(ctx: typer.Context, source_id: str, skill_id: str) -> None:
    """Show the files inside one skill directory."""
    with _handle_errors():
        node = skills_manager.list_skill_tree(source_id, skill_id, _settings(ctx))
    tree = Tree(f"[bold]{escape(node.name)}/[/bold]")
    _add_tree_children(tree, node)
    console.print(tree)


@skills_app.command("install")
def skills_install(
    ctx: typer.Context,
    source_id: str,
    url: str,
    token: TokenOption = None,
) -> None:
    """Install a skill from a GitHub or direct URL."""
    with _handle_errors():
        item = skills_manager.install_skill_from_url(
            source_id, url, token=token, settings=_settings(ctx)
        )
    console.print(
        f"Installed [bold]{escape(item.name)}[/bold] as [cyan]{escape(item.id)}[/cyan] "
        f"in {escape(item.path)}"
    )


@skills_app.command("sync")
def skills_sync(
    ctx: typer.Context,
    source_id: str,
    skill_id: str,
    url: Annotated[
        str | None,
        typer.Argument(help="Defaults to the URL recorded when the skill was installed."),
    ] = None,
    token: TokenOption = None,
) -> None:
    """Refresh an installed skill from its URL."""
    settings = _settings(ctx)
    with _handle_errors():
        if url is None:
            url = skills_manager.recorded_skill_url(source_id, skill_id, settings)
        item = skills_manager.sync_skill_from_url(
            source_id, skill_id, url, token=token, settings=settings
        )
    console.print(f"Synced [bold]{escape(item.name)}[/bold] from {escape(url)}")


@skills_app.command("delete")
def skills_delete(
    ctx: typer.Context,
    source_id: str,
    skill_id: str,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete a skill directory."""
    if not yes:
        typer.confirm(f"Delete skill {skill_id} from {source_id}?", abort=True)
    with _handle_errors():
        skills_manager.delete_skill(source_id, skill_id, _settings(ctx))
    console.print(f"Deleted [cyan]{escape(skill_id)}[/cyan]")


@skills_app.command("copy")
def skills_copy(ctx: typer.Context, source_id: str, target_id: str) -> None:
    """Copy skills missing from TARGET_ID out of SOURCE_ID."""
    with _handle_errors():
        result = skills_manager.sync_skills_between(source_id, target_id, _settings(ctx))
    console.print(
        f"Skills {escape(source_id)} -> {escape(target_id)}: {format_sync_result(result)}"
    )


@mcp_app.command("list")
def mcp_list(ctx: typer.Context) -> None:
    """List MCP servers configured for every tool found on this machine."""
    with _handle_errors():
        sources = mcp_manager.list_mcp_sources(_settings(ctx))

    if not sources:
        console.print("[dim]No supported tools found.[/dim]")
        return

    for source in sources:
        title = f"{escape(source.label)} [dim]({escape(source.id)}, {source.format})[/dim]"
        if not source.exists:
            console.print(f"{title}: [dim]{escape(source.path)} does not exist[/dim]")
            continue
        if not source.servers:
            console.print(f"{title}: [dim]no servers in {escape(source.path)}[/dim]")
            continue
        table = Table(title=title, title_justify="left", caption=escape(source.path))
        table.add_column("ID", style="cyan")
        table.add_column("Target", overflow="fold")
        for server in source.servers:
            table.add_row(escape(server.id), escape(format_server_target(server.config)))
        console.print(table)


@mcp_app.command("copy")
def mcp_copy(ctx: typer.Context, source_id: str, target_id: str) -> None:
    """Copy MCP servers missing from TARGET_ID out of SOURCE_ID."""
    with _handle_errors():
        result = mcp_manager.sync_mcp_between(source_id, target_id, _settings(ctx))
    console.print(f"MCP {escape(source_id)} -> {escape(target_id)}: {format_sync_result(result)}")


def _read_json_input(json_file: Path | None) -> str:
    from_stdin = json_file is None or str(json_file) == "-"
    try:
        if from_stdin:
            return sys.stdin.read()
        return json_file.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        name = "stdin" if from_stdin else str(json_file)
        raise ContentEncodingError(f"{name} is not valid UTF-8") from exc


@mcp_app.command("upsert")
def mcp_upsert(
    ctx: typer.Context,
    source_id: str,
    json_file: Annotated[
        Path | None,
        typer.Argument(help='JSON file with an "mcpServers" object; reads stdin when omitted.'),
    ] = None,
) -> None:
    """Add or replace MCP servers from canonical JSON."""
    with _handle_errors():
        text = _read_json_input(json_file)
        servers = mcp_manager.upsert_mcp_server_json(source_id, text, _settings(ctx))
    names = ", ".join(server.id for server in servers) or "nothing"
    console.print(f"Updated {escape(source_id)}: {escape(names)}")


@mcp_app.command("delete")
def mcp_delete(ctx: typer.Context, source_id: str, server_id: str) -> None:
    """Remove one MCP server entry."""
    with _handle_errors():
        mcp_manager.delete_mcp_server(source_id, server_id, _settings(ctx))
    console.print(f"Deleted [cyan]{escape(server_id)}[/cyan] from {escape(source_id)}")
