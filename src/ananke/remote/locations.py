"""Parse skill URLs into GitHub locations or direct-download candidates."""

from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import urlparse

from ananke.core.exceptions import InputValidationError

GITHUB_HOSTS = {"github.com", "www.github.com"}
RAW_GITHUB_HOST = "raw.githubusercontent.com"
RAW_GITHUB_BASE = f"https://{RAW_GITHUB_HOST}"


@dataclass(frozen=True, slots=True)
class RemoteLocation:
    owner: str
    repo: str
    branch: str | None
    path: str


def _host(url: str) -> str:
    parsed = urlparse(url)
    host = (parsed.hostname or "").lower()
    return host.removeprefix("www.")


def _path_segments(url: str) -> list[str]:
    return [segment for segment in urlparse(url).path.split("/") if segment]


def _require_http_url(url: str) -> str:
    trimmed = url.strip()
    if not trimmed:
        raise InputValidationError("URL is required")
    if not trimmed.startswith(("http://", "https://")):
        raise InputValidationError("URL must start with http:// or https://")
    try:
        parsed = urlparse(trimmed)
        # Accessing port validates it.
        parsed.port
    except ValueError as exc:
        raise InputValidationError("Invalid URL") from exc
    if not parsed.netloc:
        raise InputValidationError("Invalid URL")
    return trimmed


def is_github_url(url: str) -> bool:
    try:
        parse_github_location(url)
    except InputValidationError:
        return False
    return True


def parse_github_location(url: str) -> RemoteLocation:
    trimmed = _require_http_url(url)
    host = _host(trimmed)
    segments = _path_segments(trimmed)

    if host == RAW_GITHUB_HOST:
        if len(segments) < 3:
            raise InputValidationError("Raw GitHub URL must include owner/repo/branch")
        owner, repo, branch = segments[:3]
        return RemoteLocation(
            owner=owner,
            repo=repo.removesuffix(".git"),
            branch=branch,
            path="/".join(segments[3:]),
        )

    if host not in GITHUB_HOSTS:
        raise InputValidationError("Not a GitHub URL")
    if len(segments) < 2:
        raise InputValidationError("GitHub URL must include owner and repo")

    owner = segments[0]
    repo = segments[1].removesuffix(".git")

    if len(segments) >= 4 and segments[2] in {"tree", "blob"}:
        path = "/".join(segments[4:])
        if segments[2] == "blob":
            # A blob points at a file; keep its directory.
            path = path.rsplit("/", 1)[0] if "/" in path else ""
        return RemoteLocation(owner=owner, repo=repo, branch=segments[3], path=path)

    return RemoteLocation(owner=owner, repo=repo, branch=None, path="/".join(segments[2:]))


def _append_core_file(path: str, core_file: str) -> str:
    if not path:
        return core_file
    if path.endswith(core_file):
        return path
    return f"{path}/{core_file}"


def github_file_path(location: RemoteLocation, core_file: str) -> str:
    return _append_core_file(location.path, core_file)


def _raw_url(owner: str, repo: str, branch: str, file_path: str) -> str:
    return f"{RAW_GITHUB_BASE}/{owner}/{repo}/{branch}/{file_path}"


def candidate_skill_urls(
    url: str,
    core_file: str,
    *,
    fallback_branches: tuple[str, ...] | list[str] = ("main", "master"),
) -> list[str]:
    """Direct-download URLs to try, in order, for ``core_file`` under ``url``."""
    trimmed = _require_http_url(url)
    host = _host(trimmed)
    segments = _path_segments(trimmed)

    if host in GITHUB_HOSTS:
        if len(segments) < 2:
            raise InputValidationError("GitHub URL must include owner and repo")
        owner = segments[0]
        repo = segments[1].removesuffix(".git")
        if len(segments) >= 4 and segments[2] in {"tree", "blob"}:
            file_path = _append_core_file("/".join(segments[4:]), core_file)
            return [_raw_url(owner, repo, segments[3], file_path)]
        file_path = _append_core_file("/".join(segments[2:]), core_file)
        return [_raw_url(owner, repo, branch, file_path) for branch in fallback_branches]

    return [_append_core_file(trimmed.rstrip("/"), core_file)]


def fallback_name_from_url(url: str, core_file: str) -> str:
    """Guess a skill name from the URL path when metadata carries none."""
    try:
        segments = _path_segments(url.strip())
    except ValueError:
        return "skill"
    if not segments:
        return "skill"
    last = segments.pop()
    if last.lower() == core_file.lower() and segments:
        return segments[-1]
    return last
