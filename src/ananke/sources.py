"""Known tool installations and where they keep skills and MCP configuration."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ananke.core.exceptions import NotFoundError
from ananke.mcp.models import McpFormatKind

SKILL_MD = ("SKILL.md",)


@dataclass(frozen=True, slots=True)
class SkillSourceConfig:
    id: str
    label: str
    install_root: Path
    root: Path
    core_files: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class McpSourceConfig:
    id: str
    label: str
    format: str
    kind: McpFormatKind
    install_root: Path
    primary_path: Path
    read_paths: tuple[Path, ...]

    def resolve_read_path(self) -> Path:
        """First existing read path, else the primary path."""
        for path in self.read_paths:
            if path.exists():
                return path
        return self.primary_path

    def has_config(self) -> bool:
        return self.primary_path.exists() or any(path.exists() for path in self.read_paths)


def _antigravity_root(home: Path) -> Path:
    gemini_root = home / ".gemini" / "antigravity"
    legacy_root = home / ".antigravity"
    if gemini_root.exists() or not legacy_root.exists():
        return gemini_root
    return legacy_root


def skill_source_configs(home: Path) -> list[SkillSourceConfig]:
    antigravity_root = _antigravity_root(home)

    def simple(source_id: str, label: str, install_root: Path) -> SkillSourceConfig:
        return SkillSourceConfig(
            id=source_id,
            label=label,
            install_root=install_root,
            root=install_root / "skills",
            core_files=SKILL_MD,
        )

    return [
        simple("claude-user", "Claude Code", home / ".claude"),
        simple("roo-user", "Roo Code (Cline)", home / ".roo"),
        simple("copilot-user", "GitHub Copilot", home / ".copilot"),
        simple("cursor-user", "Cursor", home / ".cursor"),
        simple("opencode-user", "OpenCode", home / ".config" / "opencode"),
        simple("gemini-user", "Gemini CLI", home / ".gemini"),
        simple("codex-user", "Codex", home / ".codex"),
        simple("trae-user", "Trae", home / ".trae"),
        simple("goose-user", "Goose", home / ".config" / "goose"),
        SkillSourceConfig(
            id="standard-user",
            label="Common Standard",
            install_root=home / ".skills",
            root=home / ".skills",
            core_files=SKILL_MD,
        ),
        SkillSourceConfig(
            id="antigravity-user",
            label="Antigravity",
            install_root=antigravity_root,
            root=antigravity_root / "skills",
            core_files=("manifest.json", "SKILL.md"),
        ),
        SkillSourceConfig(
            id="kiro-user",
            label="Kiro",
            install_root=home / ".kiro",
            root=home / ".kiro" / "skills",
            core_files=("instructions.md",),
        ),
        SkillSourceConfig(
            id="qoder-user",
            label="Qoder",
            install_root=home / ".qoder",
            root=home / ".qoder" / "skills",
            core_files=("config.yaml",),
        ),
        SkillSourceConfig(
            id="codebuddy-user",
            label="CodeBuddy",
            install_root=home / ".codebuddy",
            root=home / ".codebuddy" / "skills",
            core_files=(".cb-rules", "SKILL.md"),
        ),
    ]


def mcp_source_configs(home: Path) -> list[McpSourceConfig]:
    antigravity_primary = home / ".gemini" / "antigravity" / "mcp_config.json"
    antigravity_legacy = home / ".antigravity" / "mcp.json"
    if antigravity_primary.exists() or not antigravity_legacy.exists():
        antigravity_path = antigravity_primary
    else:
        antigravity_path = antigravity_legacy

    def claude_style(
        source_id: str,
        label: str,
        install_root: Path,
        primary: Path,
        *extra_reads: Path,
    ) -> McpSourceConfig:
        return McpSourceConfig(
            id=source_id,
            label=label,
            format="json",
            kind=McpFormatKind.CLAUDE_JSON,
            install_root=install_root,
            primary_path=primary,
            read_paths=(primary, *extra_reads),
        )

    return [
        claude_style(
            "claude",
            "Claude Code",
            home / ".claude",
            home / ".claude.json",
            home / ".claude" / ".mcp.json",
            home / ".claude" / "mcp.json",
        ),
        claude_style("roo", "Roo Code (Cline)", home / ".roo", home / ".roo" / "mcp.json"),
        claude_style(
            "copilot", "GitHub Copilot", home / ".copilot", home / ".copilot" / "mcp.json"
        ),
        claude_style("cursor", "Cursor", home / ".cursor", home / ".cursor" / "mcp.json"),
        claude_style(
            "gemini",
            "Gemini CLI",
            home / ".gemini",
            home / ".gemini" / "settings.json",
            home / ".gemini" / "mcp.json",
        ),
        McpSourceConfig(
            id="codex",
            label="Codex",
            format="toml",
            kind=McpFormatKind.CODEX_TOML,
            install_root=home / ".codex",
            primary_path=home / ".codex" / "config.toml",
            read_paths=(home / ".codex" / "config.toml",),
        ),
        McpSourceConfig(
            id="opencode",
            label="OpenCode",
            format="json",
            kind=McpFormatKind.OPENCODE_JSON,
            install_root=home / ".config" / "opencode",
            primary_path=home / ".config" / "opencode" / "opencode.json",
            read_paths=(home / ".config" / "opencode" / "opencode.json",),
        ),
        claude_style("trae", "Trae", home / ".trae", home / ".trae" / "mcp.json"),
        claude_style(
            "goose", "Goose", home / ".config" / "goose", home / ".config" / "goose" / "mcp.json"
        ),
        McpSourceConfig(
            id="antigravity",
            label="Antigravity",
            format="json",
            kind=McpFormatKind.ANTIGRAVITY_JSON,
            install_root=antigravity_path.parent,
            primary_path=antigravity_path,
            read_paths=(antigravity_primary, antigravity_legacy),
        ),
        claude_style("kiro", "Kiro", home / ".kiro", home / ".kiro" / "mcp.json"),
        claude_style("qoder", "Qoder", home / ".qoder", home / ".qoder" / "mcp.json"),
        claude_style(
            "codebuddy", "CodeBuddy", home / ".codebuddy", home / ".codebuddy" / "mcp.json"
        ),
    ]


def find_skill_source(
    home: Path, source_id: str, *, missing_message: str = "Unknown skill source"
) -> SkillSourceConfig:
    for source in skill_source_configs(home):
        if source.id == source_id:
            return source
    raise NotFoundError(f"{missing_message}: {source_id}")


def find_mcp_source(
    home: Path, source_id: str, *, missing_message: str = "Unknown MCP source"
) -> McpSourceConfig:
    for source in mcp_source_configs(home):
        if source.id == source_id:
            return source
    raise NotFoundError(f"{missing_message}: {source_id}")
