"""Discover installed skills and read their descriptor files."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ananke.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from ananke.sources import SkillSourceConfig

logger = get_logger(__name__)

SKILL_SOURCE_FILENAME = ".skill-source.json"


@dataclass(frozen=True)
class SkillItem:
    id: str
    name: str
    description: str
    path: str
    core_file: str
    core_file_path: str
    source_url: str | None
    source_id: str
    metadata: dict[str, str]
    body: str
    last_modified: int | None


@dataclass(frozen=True)
class SkillSource:
    id: str
    label: str
    root: str
    exists: bool
    skills: list[SkillItem] = field(default_factory=list)


@dataclass(frozen=True)
class SkillTreeNode:
    name: str
    path: str
    kind: str
    children: list[SkillTreeNode] = field(default_factory=list)


def parse_frontmatter(raw: str) -> tuple[dict[str, str], str]:
    """Split ``---`` delimited ``key: value`` frontmatter from the body.

    Returns empty metadata and the untouched text when there is no closed
    frontmatter block.
    """
    lines = raw.splitlines()
    if not lines or lines[0].strip() != "---":
        return {}, raw

    for index, line in enumerate(lines[1:], start=1):
        if line.strip() == "---":
            closing = index
            break
    else:
        return {}, raw

    metadata: dict[str, str] = {}
    for line in lines[1:closing]:
        key, sep, value = line.partition(":")
        key = key.strip()
        if not sep or not key:
            continue
        metadata[key] = value.strip()

    body = "\n".join(lines[closing + 1 :])
    return metadata, body.lstrip()


def extract_description(body: str) -> str:
    for line in body.splitlines():
        trimmed = line.strip()
        if not trimmed or trimmed.startswith("#"):
            continue
        return trimmed
    return ""


def get_skill_source_sidecar_path(skill_dir: Path) -> Path:
    return skill_dir / SKILL_SOURCE_FILENAME


def read_skill_source_url(skill_dir: Path) -> str | None:
    sidecar_path = get_skill_source_sidecar_path(skill_dir)
    try:
        payload = json.loads(sidecar_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(payload, dict):
        return None
    url = payload.get("url")
    return url if isinstance(url, str) else None


def write_skill_source_url(skill_dir: Path, url: str) -> None:
    trimmed = url.strip()
    if not trimmed:
        return
    sidecar_path = get_skill_source_sidecar_path(skill_dir)
    sidecar_path.write_text(
        json.dumps({"url": trimmed}, indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def find_core_file(skill_dir: Path, core_files: Sequence[str]) -> tuple[Path, str] | None:
    for file_name in core_files:
        path = skill_dir / file_name
        if path.is_file():
            return path, file_name
    return None


def _last_modified(skill_dir: Path, core_file_path: Path) -> int | None:
    for candidate in (skill_dir / "SKILL.md", core_file_path):
        try:
            return int(candidate.stat().st_mtime)
        except OSError:
            continue
    return None


def load_skill(
    skill_dir: Path,
    core_file_path: Path,
    core_file_name: str,
    source: SkillSourceConfig,
) -> SkillItem:
    raw = core_file_path.read_text(encoding="utf-8")
    is_markdown = core_file_name.endswith(".md")
    if is_markdown:
        metadata, body = parse_frontmatter(raw)
    else:
        metadata, body = {}, raw

    dir_name = skill_dir.name or "skill"
    name = metadata.get("name", "").strip() or dir_name
    description = metadata.get("description", "").strip()
    if not description and is_markdown:
        description = extract_description(body)

    return SkillItem(
        id=dir_name,
        name=name,
        description=description,
        path=str(skill_dir),
        core_file=core_file_name,
        core_file_path=str(core_file_path),
        source_url=read_skill_source_url(skill_dir),
        source_id=source.id,
        metadata=metadata,
        body=body,
        last_modified=_last_modified(skill_dir, core_file_path),
    )


def read_skills(source: SkillSourceConfig) -> list[SkillItem]:
    """Load every skill directory under ``source.root``; unreadable ones are skipped."""
    try:
        entries = list(source.root.iterdir())
    except OSError:
        return []

    skills: list[SkillItem] = []
    for entry in entries:
        if not entry.is_dir():
            continue
        core = find_core_file(entry, source.core_files)
        if core is None:
            continue
        core_file_path, core_file_name = core
        try:
            skills.append(load_skill(entry, core_file_path, core_file_name, source))
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning(
                "Failed to load skill",
                data={"path": str(entry), "error": str(exc)},
            )

    skills.sort(key=lambda skill: skill.name.lower())
    return skills


def build_skill_tree(path: Path) -> SkillTreeNode:
    """Describe ``path`` and its children without following symlinks."""
    if path.is_symlink():
        kind = "link"
    elif path.is_dir():
        kind = "dir"
    else:
        kind = "file"

    children: list[SkillTreeNode] = []
    if kind == "dir":
        items = sorted(
            path.iterdir(),
            key=lambda item: (not (item.is_dir() and not item.is_symlink()), item.name.lower()),
        )
        children = [build_skill_tree(item) for item in items]

    return SkillTreeNode(name=path.name or str(path), path=str(path), kind=kind, children=children)
