from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from ananke.config import Settings, reset_settings
from ananke.remote.github import TOKEN_ENV_VARS

if TYPE_CHECKING:
    from collections.abc import Iterator
    from pathlib import Path


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Iterator[None]:
    for name in TOKEN_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    for name in list(os.environ):
        if name.startswith("ANANKE_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("ANANKE_CONFIG_FILE", str(tmp_path / "missing.config.yaml"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def settings(home: Path) -> Settings:
    return Settings(home=home)
