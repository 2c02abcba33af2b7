"""Filesystem helpers for skill directories: root containment and slug names."""

from __future__ import annotations

import re
import time
from pathlib import Path

from ananke.core.exceptions import PathSafetyError

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")


def ensure_within_root(root: Path, target: Path) -> Path:
    """Return the canonical form of ``target`` if it lies inside ``root``.

    Both paths are resolved first, so symlinks and ``..`` segments are
    followed before the check. Raises :class:`PathSafetyError` otherwise.
    """
    root_canon = Path(root).resolve()
    target_canon = Path(target).resolve()
    if target_canon != root_canon and root_canon not in target_canon.parents:
        raise PathSafetyError(f"Refusing to touch {target}: path is outside {root}")
    return target_canon


def resolve_child(root: Path, name: str) -> Path:
    """Join a single directory name onto ``root`` and check it lands strictly below it."""
    if (
        not name
        or name in {".", ".."}
        or "/" in name
        or "\\" in name
        or Path(name).name != name
    ):
        raise PathSafetyError(f"Invalid identifier: {name!r}")
    target_canon = ensure_within_root(root, Path(root) / name)
    if target_canon == Path(root).resolve():
        raise PathSafetyError(f"Invalid identifier: {name!r}")
    return target_canon


def slugify(name: str) -> str:
    ascii_lower = "".join(ch.lower() if ch.isascii() else "-" for ch in name)
    slug = _NON_SLUG_RE.sub("-", ascii_lower).strip("-")
    if not slug:
        return f"skill-{int(time.time())}"
    return slug


def allocate_skill_dir(root: Path, name: str) -> Path:
    """Pick ``root/<slug>``, or ``<slug>-1``, ``<slug>-2``… if taken."""
    base_slug = slugify(name)
    candidate = root / base_slug
    suffix = 1
    while candidate.exists():
        candidate = root / f"{base_slug}-{suffix}"
        suffix += 1
    return candidate


def write_bytes(dest_path: Path, data: bytes) -> None:
    dest_path.parent.mkdir(parents=True, exist_ok=True)
    dest_path.write_bytes(data)
