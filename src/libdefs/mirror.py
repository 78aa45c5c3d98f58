"""Local mirror of the remote definitions repository.

The mirror is a full checkout under ``<cache_dir>/repo`` plus a sibling
``<cache_dir>/lastUpdated`` file holding the epoch-millisecond time of the
last successful clone or rebase. ``ensure()`` moves it between three
states:

- absent -> clone, stamp                          (``MirrorStatus.CLONED``)
- present, stamp older than expiry -> rebase      (``REBASED`` or ``STALE``)
- present, stamp recent                           (``FRESH``)

Refreshes are single-flight: each new refresh waits for the previous one to
finish, so two clones or rebases never run against the same working tree.
Calls within ``debounce_seconds`` of the last scheduled refresh do no new
work and share that refresh's outcome.

A failed rebase is not fatal: the stale checkout stays usable and the
next refresh tries again. A failed clone is fatal, since there is nothing
to fall back on.
"""

from __future__ import annotations

import asyncio
import json
import os
import shutil
import time
from typing import TYPE_CHECKING, TextIO

import aiofiles
import aiofiles.os
import structlog

from libdefs import __version__, semver
from libdefs.errors import ErrorCode, LibDefsError
from libdefs.models.mirror import MirrorState, MirrorStatus
from libdefs.scanner import CLI_METADATA_FILE
from libdefs.vcs import VcsError

if TYPE_CHECKING:
    from collections.abc import Callable

    from libdefs.config import MirrorSettings
    from libdefs.models.libdef import LibDef
    from libdefs.vcs import VcsClient

log = structlog.get_logger()


def _write_verbose(stream: TextIO | None, message: str, newline: bool = True) -> None:
    if stream is not None:
        stream.write(message + ("\n" if newline else ""))


async def assert_cli_compatible(defs_dir: str, cli_version: str = __version__) -> None:
    """Fail unless this tool's version satisfies the repository's ``compatibleCLIRange``."""
    metadata_path = os.path.join(defs_dir, CLI_METADATA_FILE)
    if not await aiofiles.os.path.isfile(metadata_path):
        raise LibDefsError(
            ErrorCode.METADATA_MISSING,
            f"Unable to find {metadata_path}. Is {defs_dir} a definitions directory?",
        )

    async with aiofiles.open(metadata_path, encoding="utf-8") as f:
        raw = await f.read()
    try:
        metadata = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise LibDefsError(
            ErrorCode.METADATA_INVALID, f"{metadata_path} is not valid JSON: {exc}"
        ) from exc

    compatible_range = metadata.get("compatibleCLIRange") if isinstance(metadata, dict) else None
    if not compatible_range:
        raise LibDefsError(
            ErrorCode.METADATA_INVALID,
            f"Unable to find the 'compatibleCLIRange' property in {metadata_path}. "
            "You might need to update to a newer version of libdefs.",
        )
    if not semver.satisfies(cli_version, compatible_range):
        raise LibDefsError(
            ErrorCode.CLI_OUTDATED,
            f"Please upgrade libdefs! This is version {cli_version}, but the definitions "
            f"in {defs_dir} are only compatible with libdefs@{compatible_range}",
        )


class MirrorCache:
    """Owns the on-disk mirror described in the module docstring."""

    def __init__(
        self,
        settings: MirrorSettings,
        vcs: VcsClient,
        state: MirrorState,
        clock: Callable[[], float] = time.time,
        cli_version: str = __version__,
    ) -> None:
        self._settings = settings
        self._vcs = vcs
        self._state = state
        self._clock = clock
        self._cli_version = cli_version

    @property
    def repo_dir(self) -> str:
        return self._settings.repo_dir

    @property
    def defs_dir(self) -> str:
        return self._settings.defs_dir

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    # ------------------------------------------------------------------
    # Refresh
    # ------------------------------------------------------------------

    async def ensure(
        self,
        expiry_ms: int | None = None,
        verbose: TextIO | None = None,
    ) -> MirrorStatus:
        """Make sure the mirror exists and was refreshed within ``expiry_ms``."""
        if expiry_ms is None:
            expiry_ms = self._settings.expiry_seconds * 1000
        state = self._state
        now = self._now_ms()

        if state.pending is not None and (
            state.last_assured_at + self._settings.debounce_seconds * 1000 >= now
        ):
            return await asyncio.shield(state.pending)

        state.last_assured_at = now
        state.pending = asyncio.ensure_future(
            self._refresh_after(state.pending, expiry_ms, verbose)
        )
        return await asyncio.shield(state.pending)

    async def update(self, verbose: TextIO | None = None) -> MirrorStatus:
        """``ensure()`` with an expiry of zero: rebase unless debounced."""
        return await self.ensure(expiry_ms=0, verbose=verbose)

    async def _refresh_after(
        self,
        prior: asyncio.Future[MirrorStatus] | None,
        expiry_ms: int,
        verbose: TextIO | None,
    ) -> MirrorStatus:
        if prior is not None and not prior.done():
            # wait for completion only; the prior outcome belongs to its own callers
            await asyncio.wait([prior])
        return await self._refresh(expiry_ms, verbose)

    async def _refresh(self, expiry_ms: int, verbose: TextIO | None) -> MirrorStatus:
        repo_dir = self.repo_dir
        has_checkout = await aiofiles.os.path.isdir(repo_dir) and await aiofiles.os.path.exists(
            os.path.join(repo_dir, ".git")
        )
        if not has_checkout:
            _write_verbose(verbose, "• libdefs cache not found, fetching from upstream...", False)
            await self._clone(verbose)
            _write_verbose(verbose, "done.")
            return MirrorStatus.CLONED

        last_updated = await self._read_last_updated()
        if last_updated + expiry_ms >= self._now_ms():
            log.debug("mirror_fresh", repo=repo_dir, last_updated=last_updated)
            return MirrorStatus.FRESH

        _write_verbose(verbose, "• rebasing libdefs cache...", False)
        if await self._rebase(verbose):
            _write_verbose(verbose, "done.")
            return MirrorStatus.REBASED
        _write_verbose(
            verbose,
            "\nNOTE: Unable to rebase local cache! If you don't currently have internet "
            "connectivity, no worries -- we'll update the local cache the next time you do.\n",
        )
        return MirrorStatus.STALE

    async def _clone(self, verbose: TextIO | None) -> None:
        repo_dir = self.repo_dir
        await aiofiles.os.makedirs(os.path.dirname(repo_dir), exist_ok=True)
        if await aiofiles.os.path.exists(repo_dir):
            # a checkout without .git is unusable and blocks the clone
            log.info("mirror_removing_broken_checkout", repo=repo_dir)
            await asyncio.to_thread(shutil.rmtree, repo_dir)
        try:
            await self._vcs.clone(self._settings.remote_url, repo_dir)
        except VcsError as exc:
            log.error("mirror_clone_failed", remote=self._settings.remote_url, error=str(exc))
            _write_verbose(verbose, "ERROR: Unable to clone the local cache repo.")
            raise LibDefsError(
                ErrorCode.MIRROR_CLONE_FAILED,
                f"Unable to clone {self._settings.remote_url} into {repo_dir}: {exc}",
                recoverable=True,
            ) from exc
        await self._write_last_updated()
        log.info("mirror_cloned", remote=self._settings.remote_url, repo=repo_dir)

    async def _rebase(self, verbose: TextIO | None) -> bool:
        try:
            await self._vcs.rebase_to_upstream(self.repo_dir)
        except VcsError as exc:
            log.warning("mirror_rebase_failed", repo=self.repo_dir, error=str(exc))
            _write_verbose(verbose, f"ERROR: Unable to rebase the local cache repo. {exc}")
            return False
        await self._write_last_updated()
        log.info("mirror_rebased", repo=self.repo_dir)
        return True

    # ------------------------------------------------------------------
    # Timestamp file
    # ------------------------------------------------------------------

    async def _read_last_updated(self) -> int:
        path = self._settings.last_updated_file
        if not await aiofiles.os.path.isfile(path):
            return 0
        async with aiofiles.open(path, encoding="utf-8") as f:
            raw = await f.read()
        # anything other than a bare decimal integer means "never updated"
        try:
            value = int(raw)
        except ValueError:
            return 0
        return value if str(value) == raw else 0

    async def _write_last_updated(self) -> None:
        path = self._settings.last_updated_file
        await aiofiles.os.makedirs(os.path.dirname(path), exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(str(self._now_ms()))

    # ------------------------------------------------------------------
    # Queries against the mirror
    # ------------------------------------------------------------------

    async def assert_compatibility(self, defs_dir: str | None = None) -> None:
        await assert_cli_compatible(defs_dir or self.defs_dir, self._cli_version)

    async def latest_revision_label(self, lib_def: LibDef) -> str:
        """``<hash[:10]>/<pkg>_<version>/checker_<checker version>`` for a mirrored LibDef."""
        await self.ensure()
        await self.assert_compatibility()
        commit = await self._vcs.latest_commit_hash_for_path(
            self.repo_dir, os.path.relpath(lib_def.path, self.repo_dir)
        )
        return (
            f"{commit[:10]}/"
            f"{lib_def.pkg_name}_{lib_def.pkg_version_str}/"
            f"checker_{lib_def.checker_version_str}"
        )
