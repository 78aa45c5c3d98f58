"""Integration test fixtures.

Provides a real upstream git repository on tmp_path and resolver settings
pointing a mirror at it. Tests here shell out to ``git`` and are skipped
when it is not installed.
"""

from __future__ import annotations

import json
import shutil
import subprocess
from typing import TYPE_CHECKING

import pytest

from libdefs.config import MirrorSettings, Settings

if TYPE_CHECKING:
    from collections.abc import Callable
    from pathlib import Path


def git(*args: str, cwd: Path) -> str:
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=libdefs tests",
            "-c",
            "user.email=tests@example.com",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout


def add_definitions(repo: Path, *entries: str, message: str = "add definitions") -> None:
    """Write libdef files under definitions/npm and commit them."""
    defs_dir = repo / "definitions" / "npm"
    for entry in entries:
        path = defs_dir / entry
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text("declare module 'stub' {}\n")
    git("add", "-A", cwd=repo)
    git("commit", "-q", "-m", message, cwd=repo)


@pytest.fixture(autouse=True)
def _require_git() -> None:
    if shutil.which("git") is None:
        pytest.skip("git is not installed")


@pytest.fixture()
def commit_definitions() -> Callable[..., None]:
    return add_definitions


@pytest.fixture()
def run_git() -> Callable[..., str]:
    return git


@pytest.fixture()
def upstream_repo(tmp_path: Path) -> Path:
    """A committed definitions repository with one package."""
    repo = tmp_path / "upstream"
    repo.mkdir()
    git("init", "-q", cwd=repo)
    defs_dir = repo / "definitions" / "npm"
    defs_dir.mkdir(parents=True)
    (defs_dir / ".cli-metadata.json").write_text(json.dumps({"compatibleCLIRange": ">=0.1.0"}))
    add_definitions(repo, "foo_v1.x.x/all/foo_1.x.x.js", message="initial")
    return repo


@pytest.fixture()
def settings(tmp_path: Path, upstream_repo: Path) -> Settings:
    return Settings(
        mirror=MirrorSettings(remote_url=str(upstream_repo), cache_dir=str(tmp_path / "cache")),
        local_repo_dir=str(upstream_repo),
    )
