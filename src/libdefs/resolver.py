"""Top-level query entry points.

Composes the pieces in the order every query needs them: refresh the mirror
(cache mode only), check that this tool understands the repository, scan
the definitions tree, then filter.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, TextIO

import structlog

from libdefs.errors import ErrorCode, LibDefsError
from libdefs.matching import filter_lib_defs
from libdefs.mirror import MirrorCache, assert_cli_compatible
from libdefs.models.mirror import MirrorState
from libdefs.scanner import scan_definitions
from libdefs.vcs import GitClient

if TYPE_CHECKING:
    from libdefs.config import Settings
    from libdefs.models.libdef import LibDef, LibDefFilter
    from libdefs.validation import ValidationErrors

log = structlog.get_logger()


@dataclass
class LibDefResolver:
    settings: Settings
    mirror: MirrorCache

    async def get_local_lib_defs(self, errors: ValidationErrors | None = None) -> list[LibDef]:
        """LibDefs from a local checkout of the definitions repository.

        Mainly useful while working on the definitions repository itself.
        """
        defs_dir = self.settings.local_defs_dir
        if defs_dir is None:
            raise LibDefsError(
                ErrorCode.LOCAL_REPO_NOT_CONFIGURED,
                "No local definitions repository configured (set local_repo_dir).",
            )
        await assert_cli_compatible(defs_dir)
        return await scan_definitions(defs_dir, errors)

    async def get_cache_lib_defs(
        self,
        errors: ValidationErrors | None = None,
        verbose: TextIO | None = None,
    ) -> list[LibDef]:
        """LibDefs from the mirror, cloning or rebasing it first if needed."""
        await self.mirror.ensure(verbose=verbose)
        await self.mirror.assert_compatibility()
        return await scan_definitions(self.mirror.defs_dir, errors)

    async def get_cache_lib_def_version(self, lib_def: LibDef) -> str:
        return await self.mirror.latest_revision_label(lib_def)

    async def find(
        self,
        lib_def_filter: LibDefFilter,
        *,
        local: bool = False,
        errors: ValidationErrors | None = None,
    ) -> list[LibDef]:
        if local:
            defs = await self.get_local_lib_defs(errors)
        else:
            defs = await self.get_cache_lib_defs(errors)
        matches = filter_lib_defs(defs, lib_def_filter)
        log.info(
            "libdefs_found",
            filter=lib_def_filter.type,
            local=local,
            scanned=len(defs),
            matched=len(matches),
        )
        return matches


def build_resolver(settings: Settings) -> LibDefResolver:
    """Wire a resolver with a git-backed mirror and a fresh ``MirrorState``."""
    vcs = GitClient(timeout_seconds=settings.mirror.git_timeout_seconds)
    mirror = MirrorCache(settings.mirror, vcs, MirrorState())
    return LibDefResolver(settings=settings, mirror=mirror)
