"""Version-control collaborator used by the mirror cache.

``VcsClient`` is the seam: ``MirrorCache`` only ever talks to this protocol,
so tests substitute an in-memory fake and production uses ``GitClient``.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

import structlog

log = structlog.get_logger()


class VcsError(Exception):
    """A VCS command exited non-zero, timed out, or could not be started."""

    def __init__(self, command: list[str], returncode: int | None, stderr: str) -> None:
        detail = stderr.strip()[:300] or "no output"
        super().__init__(f"{' '.join(command)} failed (rc={returncode}): {detail}")
        self.command = command
        self.returncode = returncode
        self.stderr = stderr


class VcsClient(Protocol):
    async def clone(self, remote_url: str, dest: str) -> None: ...

    async def rebase_to_upstream(self, repo: str) -> None: ...

    async def latest_commit_hash_for_path(self, repo: str, rel_path: str) -> str: ...


class GitClient:
    """``VcsClient`` backed by the ``git`` executable."""

    def __init__(self, git: str = "git", timeout_seconds: float = 120) -> None:
        self._git = git
        self._timeout = timeout_seconds

    async def _run(self, *args: str, cwd: str | None = None) -> str:
        command = [self._git, *args]
        log.debug("git_command", command=command, cwd=cwd)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                cwd=cwd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise VcsError(command, None, str(exc)) from exc

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
        except TimeoutError as exc:
            proc.kill()
            await proc.wait()
            raise VcsError(command, None, f"timed out after {self._timeout}s") from exc

        if proc.returncode != 0:
            raise VcsError(command, proc.returncode, stderr.decode(errors="replace"))
        return stdout.decode(errors="replace")

    async def clone(self, remote_url: str, dest: str) -> None:
        await self._run("clone", remote_url, dest)

    async def rebase_to_upstream(self, repo: str) -> None:
        await self._run("pull", "--rebase", cwd=repo)

    async def latest_commit_hash_for_path(self, repo: str, rel_path: str) -> str:
        output = await self._run("log", "-1", "--format=%H", "--", rel_path, cwd=repo)
        return output.strip()
