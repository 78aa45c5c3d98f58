"""Unit-specific fixtures (tmp_path filesystem only, no network or git)."""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Iterable
from pathlib import Path

import pytest

from libdefs.config import MirrorSettings
from libdefs.mirror import MirrorCache
from libdefs.models.mirror import MirrorState
from libdefs.vcs import VcsError


def write_tree(root: Path, entries: Iterable[str]) -> None:
    """Create files (and directories, for entries ending in '/') under root."""
    for entry in entries:
        path = root / entry
        if entry.endswith("/"):
            path.mkdir(parents=True, exist_ok=True)
        else:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("// definitions\n")


@pytest.fixture()
def defs_dir(tmp_path: Path) -> Path:
    path = tmp_path / "definitions" / "npm"
    path.mkdir(parents=True)
    return path


@pytest.fixture()
def make_tree(defs_dir: Path) -> Callable[..., Path]:
    """Build a definitions tree: ``make_tree("foo_v1.0.0/all/foo_1.0.0.js", ...)``."""

    def _make(*entries: str) -> Path:
        write_tree(defs_dir, entries)
        return defs_dir

    return _make


# ---------------------------------------------------------------------------
# Mirror fakes
# ---------------------------------------------------------------------------


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    @property
    def now_ms(self) -> int:
        return int(self.now * 1000)


class FakeVcs:
    """In-memory VcsClient that records calls and can block or fail on demand."""

    def __init__(self) -> None:
        self.clones: list[tuple[str, str]] = []
        self.rebases: list[str] = []
        self.log_paths: list[str] = []
        self.fail_clone = False
        self.fail_rebase = False
        self.commit = "0123456789abcdef0123"
        self.gate: asyncio.Event | None = None
        self.active = 0
        self.max_active = 0

    async def _enter(self) -> None:
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            if self.gate is not None:
                await self.gate.wait()
        finally:
            self.active -= 1

    async def clone(self, remote_url: str, dest: str) -> None:
        self.clones.append((remote_url, dest))
        await self._enter()
        if self.fail_clone:
            raise VcsError(["git", "clone", remote_url, dest], 128, "fatal: unable to access")
        (Path(dest) / ".git").mkdir(parents=True)

    async def rebase_to_upstream(self, repo: str) -> None:
        self.rebases.append(repo)
        await self._enter()
        if self.fail_rebase:
            raise VcsError(["git", "pull", "--rebase"], 1, "fatal: could not read from remote")

    async def latest_commit_hash_for_path(self, repo: str, rel_path: str) -> str:
        self.log_paths.append(rel_path)
        return self.commit


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def fake_vcs() -> FakeVcs:
    return FakeVcs()


@pytest.fixture()
def mirror_settings(tmp_path: Path) -> MirrorSettings:
    return MirrorSettings(
        remote_url="https://example.com/definitions.git",
        cache_dir=str(tmp_path / "cache"),
    )


@pytest.fixture()
def mirror(mirror_settings: MirrorSettings, fake_vcs: FakeVcs, clock: FakeClock) -> MirrorCache:
    return MirrorCache(mirror_settings, fake_vcs, MirrorState(), clock=clock, cli_version="0.4.0")
