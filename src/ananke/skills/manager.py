from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from ananke.config import Settings, get_settings
from ananke.core.exceptions import (
    AnankeError,
    InputValidationError,
    NotFoundError,
    TransportError,
)
from ananke.core.logging import get_logger
from ananke.remote.direct import fetch_first_available, open_http_client
from ananke.remote.github import GitHubClient, resolve_branch_candidates
from ananke.remote.locations import (
    candidate_skill_urls,
    fallback_name_from_url,
    github_file_path,
    parse_github_location,
)
from ananke.skills.paths import allocate_skill_dir, ensure_within_root, resolve_child
from ananke.skills.registry import (
    SkillItem,
    SkillSource,
    SkillTreeNode,
    build_skill_tree,
    find_core_file,
    load_skill,
    parse_frontmatter,
    read_skill_source_url,
    read_skills,
    write_skill_source_url,
)
from ananke.sources import find_skill_source, skill_source_configs
from ananke.sync import SyncResult, ensure_distinct, plan_sync

if TYPE_CHECKING:
    from pathlib import Path

    import httpx

    from ananke.remote.locations import RemoteLocation
    from ananke.sources import SkillSourceConfig

logger = get_logger(__name__)


def _github_location_or_none(url: str) -> RemoteLocation | None:
    try:
        return parse_github_location(url)
    except InputValidationError:
        return None


def _existing_skill_dir(source: SkillSourceConfig, skill_id: str) -> Path:
    """Return ``source.root/skill_id`` once it exists and resolves inside the root."""
    resolve_child(source.root, skill_id)
    # skill_id is now a single name, so this is the checked entry itself, link included.
    skill_dir = source.root / skill_id
    if not skill_dir.exists() and not skill_dir.is_symlink():
        raise NotFoundError(f"Skill not found: {skill_id}")
    return skill_dir


def list_skills(settings: Settings | None = None) -> list[SkillSource]:
    home = (settings or get_settings()).resolve_home()
    response: list[SkillSource] = []
    for source in skill_source_configs(home):
        if not source.install_root.is_dir():
            continue
        root_exists = source.root.is_dir()
        response.append(
            SkillSource(
                id=source.id,
                label=source.label,
                root=str(source.root),
                exists=root_exists,
                skills=read_skills(source) if root_exists else [],
            )
        )
    return response


def list_skill_tree(
    source_id: str,
    skill_id: str,
    settings: Settings | None = None,
) -> SkillTreeNode:
    home = (settings or get_settings()).resolve_home()
    source = find_skill_source(home, source_id)
    return build_skill_tree(_existing_skill_dir(source, skill_id))


def recorded_skill_url(
    source_id: str,
    skill_id: str,
    settings: Settings | None = None,
) -> str:
    """URL stored in the skill's sidecar when it was installed or last synced."""
    home = (settings or get_settings()).resolve_home()
    source = find_skill_source(home, source_id)
    url = read_skill_source_url(_existing_skill_dir(source, skill_id))
    if not url:
        raise NotFoundError(f"No source URL recorded for skill: {skill_id}")
    return url


def _fetch_core_from_github(
    client: GitHubClient,
    location: RemoteLocation,
    branches: list[str],
    core_files: tuple[str, ...],
) -> tuple[str, str, str]:
    """Find the first core file the repository has; return (content, file name, branch)."""
    last_error: AnankeError | None = None
    for file_name in core_files:
        try:
            content, branch = client.fetch_text_any(
                location, github_file_path(location, file_name), branches
            )
        except AnankeError as exc:
            last_error = exc
            continue
        return content, file_name, branch
    raise last_error or TransportError("Unable to download skill file")


def _fetch_core_direct(
    url: str,
    core_files: tuple[str, ...],
    *,
    client: httpx.Client,
    settings: Settings,
) -> tuple[str, str]:
    last_error: AnankeError | None = None
    for file_name in core_files:
        candidates = candidate_skill_urls(
            url, file_name, fallback_branches=settings.fallback_branches
        )
        try:
            content = fetch_first_available(candidates, client=client, file_label=file_name)
        except AnankeError as exc:
            logger.debug(
                "Core file not available",
                data={"url": url, "core_file": file_name, "error": str(exc)},
            )
            last_error = exc
            continue
        return content, file_name
    raise last_error or TransportError("Unable to download skill file")


def _skill_name(content: str, core_file_name: str, url: str) -> str:
    metadata: dict[str, str] = {}
    if core_file_name.endswith(".md"):
        metadata, _ = parse_frontmatter(content)
    name = metadata.get("name", "").strip()
    return name or fallback_name_from_url(url, core_file_name)


def _write_core_file(skill_dir: Path, core_file_name: str, url: str, content: str) -> Path:
    write_skill_source_url(skill_dir, url)
    core_path = ensure_within_root(skill_dir, skill_dir / core_file_name)
    core_path.write_text(content, encoding="utf-8")
    return skill_dir / core_file_name


def install_skill_from_url(
    source_id: str,
    url: str,
    *,
    token: str | None = None,
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> SkillItem:
    """Download a skill into a fresh directory of ``source_id``.

    GitHub locations are fetched through the contents API so the whole skill
    directory comes along; any other URL only yields the core file.
    """
    resolved = settings or get_settings()
    source = find_skill_source(resolved.resolve_home(), source_id)
    source.root.mkdir(parents=True, exist_ok=True)

    location = _github_location_or_none(url)
    if location is None:
        with open_http_client(resolved, transport=transport) as http_client:
            content, core_file_name = _fetch_core_direct(
                url, source.core_files, client=http_client, settings=resolved
            )
        skill_dir = allocate_skill_dir(source.root, _skill_name(content, core_file_name, url))
        skill_dir.mkdir(parents=True)
    else:
        with GitHubClient(token=token, settings=resolved, transport=transport) as client:
            branches = resolve_branch_candidates(client, location)
            content, core_file_name, selected = _fetch_core_from_github(
                client, location, branches, source.core_files
            )
            skill_dir = allocate_skill_dir(
                source.root, _skill_name(content, core_file_name, url)
            )
            skill_dir.mkdir(parents=True)
            ordered = [selected, *(branch for branch in branches if branch != selected)]
            client.download_directory_any(location, ordered, skill_dir)

    core_path = _write_core_file(skill_dir, core_file_name, url, content)
    logger.info(
        "Installed skill",
        data={"source": source.id, "path": str(skill_dir), "url": url},
    )
    return load_skill(skill_dir, core_path, core_file_name, source)


def sync_skill_from_url(
    source_id: str,
    skill_id: str,
    url: str,
    *,
    token: str | None = None,
    settings: Settings | None = None,
    transport: httpx.BaseTransport | None = None,
) -> SkillItem:
    """Refresh an installed skill in place from ``url``."""
    resolved = settings or get_settings()
    source = find_skill_source(resolved.resolve_home(), source_id)
    skill_dir = _existing_skill_dir(source, skill_id)

    core = find_core_file(skill_dir, source.core_files)
    if core is None:
        raise NotFoundError(f"Missing core file in {skill_dir}")
    _, core_file_name = core

    location = _github_location_or_none(url)
    if location is None:
        candidates = candidate_skill_urls(
            url, core_file_name, fallback_branches=resolved.fallback_branches
        )
        with open_http_client(resolved, transport=transport) as http_client:
            content = fetch_first_available(
                candidates, client=http_client, file_label=core_file_name
            )
    else:
        with GitHubClient(token=token, settings=resolved, transport=transport) as client:
            branches = resolve_branch_candidates(client, location)
            confirmed = client.download_directory_any(location, branches, skill_dir)
            content = client.fetch_text(
                location.owner,
                location.repo,
                github_file_path(location, core_file_name),
                confirmed,
            )

    core_path = _write_core_file(skill_dir, core_file_name, url, content)
    logger.info("Synced skill", data={"source": source.id, "skill": skill_id, "url": url})
    return load_skill(skill_dir, core_path, core_file_name, source)


def delete_skill(
    source_id: str,
    skill_id: str,
    settings: Settings | None = None,
) -> None:
    home = (settings or get_settings()).resolve_home()
    source = find_skill_source(home, source_id)
    skill_dir = _existing_skill_dir(source, skill_id)
    if skill_dir.is_symlink():
        skill_dir.unlink()
    else:
        shutil.rmtree(skill_dir)
    logger.info("Deleted skill", data={"source": source.id, "skill": skill_id})


def sync_skills_between(
    source_id: str,
    target_id: str,
    settings: Settings | None = None,
) -> SyncResult:
    """Copy skills missing from ``target_id``; existing directories are never touched."""
    ensure_distinct(source_id, target_id)
    home = (settings or get_settings()).resolve_home()
    source = find_skill_source(home, source_id)
    target = find_skill_source(home, target_id, missing_message="Unknown target source")

    if not source.root.is_dir():
        raise NotFoundError(f"Source skills directory missing: {source.root}")
    target.root.mkdir(parents=True, exist_ok=True)

    skills = read_skills(source)
    for skill in skills:
        ensure_within_root(source.root, source.root / skill.id)

    plan = plan_sync(
        skills,
        (entry.name for entry in target.root.iterdir()),
        key=lambda skill: skill.id,
    )
    for skill in plan.skipped:
        logger.debug("Skill already present in target", data={"skill": skill.id})

    for skill in plan.to_add:
        target_dir = ensure_within_root(target.root, target.root / skill.id)
        shutil.copytree(source.root / skill.id, target_dir)
        logger.info(
            "Copied skill",
            data={"skill": skill.id, "source": source.id, "target": target.id},
        )
    return plan.result
