"""GitHub contents API client: branch resolution, file and directory fetches."""

from __future__ import annotations

import base64
import binascii
import os
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ananke.config import Settings, get_settings
from ananke.core.exceptions import (
    AnankeError,
    ContentEncodingError,
    PathSafetyError,
    StructuralError,
    TransportError,
)
from ananke.core.logging import get_logger
from ananke.skills.paths import ensure_within_root, write_bytes

if TYPE_CHECKING:
    from collections.abc import Sequence
    from pathlib import Path

    from ananke.remote.locations import RemoteLocation

logger = get_logger(__name__)

TOKEN_ENV_VARS = ("SKILL_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


class RemoteEntry(BaseModel):
    name: str
    path: str
    kind: str = Field(alias="type")
    sha: str | None = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


def resolve_github_token(override: str | None = None) -> str | None:
    """Pick the bearer token for GitHub requests.

    An explicit override wins, then the first non-blank of
    ``SKILL_GITHUB_TOKEN``, ``GITHUB_TOKEN`` and ``GH_TOKEN``.
    """
    if override and override.strip():
        return override.strip()
    for name in TOKEN_ENV_VARS:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None


def decode_base64_payload(content: str) -> bytes:
    cleaned = content.replace("\n", "")
    try:
        return base64.b64decode(cleaned, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ContentEncodingError(f"Failed to decode base64 payload: {exc}") from exc


def _decode_content_field(payload: dict[str, Any], what: str) -> bytes:
    encoding = payload.get("encoding") or "base64"
    if encoding != "base64":
        raise ContentEncodingError(f"Unsupported GitHub {what} encoding: {encoding}")
    content = payload["content"]
    if not isinstance(content, str):
        raise StructuralError(f"Invalid content in GitHub {what} response")
    return decode_base64_payload(content)


class GitHubClient:
    """Blocking GitHub API client scoped to one operation.

    The token is resolved once at construction and never stored globally.
    """

    def __init__(
        self,
        *,
        token: str | None = None,
        settings: Settings | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        resolved_settings = settings or get_settings()
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": resolved_settings.user_agent,
        }
        resolved_token = resolve_github_token(token)
        if resolved_token:
            headers["Authorization"] = f"Bearer {resolved_token}"
        self.api_url = resolved_settings.github_api_url.rstrip("/")
        self.fallback_branches = list(resolved_settings.fallback_branches)
        self._client = httpx.Client(
            headers=headers,
            timeout=resolved_settings.request_timeout,
            transport=transport,
            follow_redirects=True,
        )

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def _get_json(self, url: str, *, what: str, params: dict[str, str] | None = None) -> Any:
        try:
            response = self._client.get(url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"Failed to read GitHub {what}: HTTP {exc.response.status_code} for {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to read GitHub {what}: {exc}") from exc
        try:
            return response.json()
        except ValueError as exc:
            raise StructuralError(f"Invalid GitHub response: {exc}") from exc

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{self.api_url}/repos/{quote(owner)}/{quote(repo)}"

    def _contents_url(self, owner: str, repo: str, path: str) -> str:
        base = f"{self._repo_url(owner, repo)}/contents"
        if not path:
            return base
        return f"{base}/{quote(path, safe='/')}"

    def fetch_default_branch(self, owner: str, repo: str) -> str:
        payload = self._get_json(self._repo_url(owner, repo), what="repo info")
        branch = payload.get("default_branch") if isinstance(payload, dict) else None
        if not isinstance(branch, str) or not branch:
            raise StructuralError("Missing default_branch in GitHub response")
        return branch

    def list_contents(self, owner: str, repo: str, path: str, branch: str) -> list[RemoteEntry]:
        payload = self._get_json(
            self._contents_url(owner, repo, path),
            what="contents",
            params={"ref": branch},
        )
        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise StructuralError("Unexpected GitHub response")
        try:
            return [RemoteEntry.model_validate(item) for item in payload]
        except ValidationError as exc:
            raise StructuralError(f"Invalid GitHub entry: {exc}") from exc

    def fetch_blob(self, owner: str, repo: str, sha: str) -> bytes:
        payload = self._get_json(f"{self._repo_url(owner, repo)}/git/blobs/{sha}", what="blob")
        if not isinstance(payload, dict):
            raise StructuralError("Invalid GitHub blob response")
        if "content" not in payload:
            raise StructuralError("Missing content in GitHub blob response")
        return _decode_content_field(payload, "blob")

    def fetch_file(self, owner: str, repo: str, path: str, branch: str) -> bytes:
        payload = self._get_json(
            self._contents_url(owner, repo, path),
            what="file",
            params={"ref": branch},
        )
        if not isinstance(payload, dict):
            raise StructuralError("Invalid GitHub file response")
        if isinstance(payload.get("content"), str):
            return _decode_content_field(payload, "file")
        sha = payload.get("sha")
        if isinstance(sha, str) and sha:
            return self.fetch_blob(owner, repo, sha)
        raise StructuralError("Missing content in GitHub file response")

    def fetch_text(self, owner: str, repo: str, path: str, branch: str) -> str:
        data = self.fetch_file(owner, repo, path, branch)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ContentEncodingError(f"GitHub file is not UTF-8: {exc}") from exc

    def download_directory(self, location: RemoteLocation, branch: str, dest_dir: Path) -> None:
        """Mirror ``location.path`` at ``branch`` into ``dest_dir``.

        Walks the tree with an explicit worklist. Files already written stay
        on disk if a later request fails.
        """
        pending: list[tuple[str, Path]] = [(location.path, dest_dir)]
        while pending:
            repo_path, local_dir = pending.pop()
            ensure_within_root(dest_dir, local_dir).mkdir(parents=True, exist_ok=True)
            entries = self.list_contents(location.owner, location.repo, repo_path, branch)
            for entry in entries:
                target = ensure_within_root(dest_dir, local_dir / entry.name)
                if entry.kind == "dir":
                    pending.append((entry.path, target))
                elif entry.kind == "file":
                    if entry.sha:
                        data = self.fetch_blob(location.owner, location.repo, entry.sha)
                    else:
                        data = self.fetch_file(location.owner, location.repo, entry.path, branch)
                    write_bytes(target, data)
                    logger.debug("Downloaded file", data={"path": entry.path, "branch": branch})

    def download_directory_any(
        self, location: RemoteLocation, branches: Sequence[str], dest_dir: Path
    ) -> str:
        """Download with the first branch that works; return that branch."""
        last_error: AnankeError | None = None
        for branch in branches:
            try:
                self.download_directory(location, branch, dest_dir)
            except PathSafetyError:
                raise
            except AnankeError as exc:
                logger.debug(
                    "Directory download failed for branch",
                    data={"branch": branch, "error": str(exc)},
                )
                last_error = exc
                continue
            return branch
        if last_error is not None:
            raise last_error
        raise TransportError("Unable to download GitHub directory")

    def fetch_text_any(
        self, location: RemoteLocation, file_path: str, branches: Sequence[str]
    ) -> tuple[str, str]:
        """Fetch ``file_path`` from the first branch that has it."""
        last_error: AnankeError | None = None
        for branch in branches:
            try:
                text = self.fetch_text(location.owner, location.repo, file_path, branch)
            except AnankeError as exc:
                logger.debug(
                    "File fetch failed for branch",
                    data={"branch": branch, "path": file_path, "error": str(exc)},
                )
                last_error = exc
                continue
            return text, branch
        if last_error is not None:
            raise last_error
        raise TransportError(f"Unable to download {file_path}")


def resolve_branch_candidates(client: GitHubClient, location: RemoteLocation) -> list[str]:
    """Ordered branches to try for ``location``.

    An explicit branch is the only candidate. Otherwise the repository's
    default branch (when the query succeeds) comes first, followed by the
    configured fallbacks.
    """
    if location.branch:
        return [location.branch]

    branches: list[str] = []
    try:
        branches.append(client.fetch_default_branch(location.owner, location.repo))
    except AnankeError as exc:
        logger.debug(
            "Default branch lookup failed",
            data={"owner": location.owner, "repo": location.repo, "error": str(exc)},
        )
    for candidate in client.fallback_branches:
        if candidate not in branches:
            branches.append(candidate)
    if not branches:
        branches.append("main")
    return branches
