"""Load and save native configuration documents (JSON and TOML)."""

from __future__ import annotations

import datetime as dt
import json
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

import tomlkit
from tomlkit.exceptions import ParseError

from ananke.core.exceptions import ContentEncodingError, InputValidationError, StructuralError

if TYPE_CHECKING:
    from pathlib import Path


def _read_text(path: Path) -> str | None:
    """File contents, or ``None`` when the file is absent or blank."""
    if not path.exists():
        return None
    try:
        content = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise ContentEncodingError(f"{path} is not valid UTF-8: {exc}") from exc
    if not content.strip():
        return None
    return content


def load_json_document(path: Path) -> Any:
    content = _read_text(path)
    if content is None:
        return {}
    try:
        return json.loads(content)
    except json.JSONDecodeError as exc:
        raise InputValidationError(
            f"Invalid JSON in {path} (line {exc.lineno}, column {exc.colno}): {exc.msg}"
        ) from exc


def save_json_document(path: Path, value: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(value, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


def load_toml_document(path: Path) -> tomlkit.TOMLDocument:
    content = _read_text(path)
    if content is None:
        return tomlkit.document()
    try:
        return tomlkit.parse(content)
    except ParseError as exc:
        raise InputValidationError(
            f"Invalid TOML in {path} (line {exc.line}, column {exc.col}): {exc}"
        ) from exc


def save_toml_document(path: Path, document: tomlkit.TOMLDocument) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(tomlkit.dumps(document), encoding="utf-8")


def toml_to_plain(value: Any) -> Any:
    """Convert tomlkit values into plain JSON-compatible Python values.

    Integers, floats, strings, booleans, arrays and tables keep their type;
    dates and times become ISO 8601 strings.
    """
    if hasattr(value, "unwrap"):
        value = value.unwrap()
    if isinstance(value, Mapping):
        return {str(key): toml_to_plain(item) for key, item in value.items()}
    if isinstance(value, list):
        return [toml_to_plain(item) for item in value]
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    return value


def plain_to_toml(value: Any) -> Any:
    """Validate a JSON-compatible value for TOML; ``None`` cannot be represented."""
    if value is None:
        raise StructuralError("Null values are not supported")
    if isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, list):
        return [plain_to_toml(item) for item in value]
    if isinstance(value, Mapping):
        return {str(key): plain_to_toml(item) for key, item in value.items()}
    raise StructuralError(f"Unsupported value type: {type(value).__name__}")
