"""Definitions-tree scanner.

Walks a ``definitions/npm`` directory and turns it into ``LibDef`` records::

    <pkgName>_v<major>.<minor|x>.<patch|x>/
        test_*.js                       shared by every checker version
        <checkerVersionDir>/
            <baseName>_<pkgVersionStr>.js
            test_*.js
    @<scope>/<pkgName>_v.../...

Naming-convention violations never abort the scan. Each one is appended to
a ``ValidationErrors`` sink and the walk carries on, so one pass reports
every structural problem in the repository.
"""

from __future__ import annotations

import asyncio
import os
import re
import stat
from dataclasses import dataclass
from typing import TYPE_CHECKING, Literal

import aiofiles.os
import structlog

from libdefs.models.libdef import LibDef
from libdefs.models.version import PackageVersion
from libdefs.validation import ValidationErrors
from libdefs.versions import (
    disjoint_versions_all,
    empty_version,
    parse_dir_string,
    to_dir_string,
    version_to_string,
)

if TYPE_CHECKING:
    from libdefs.models.version import CheckerVersion, VersionPart

log = structlog.get_logger()

CLI_METADATA_FILE = ".cli-metadata.json"

# Stands in for a package whose directory name could not be parsed, so the
# rest of its tree is still walked without reporting the same problem twice.
INVALID_PKG_NAME = "ERROR"

_PKG_DIR_NAME_RE = re.compile(r"^(.*)_v([0-9]+)\.([0-9]+|x)\.([0-9]+|x)$")
_TEST_FILE_NAME_RE = re.compile(r"^test_.*\.js$")
_SWAP_FILE_EXT = ".swp"

EntryKind = Literal["file", "dir", "other"]


@dataclass(frozen=True)
class _PkgDir:
    pkg_name: str
    pkg_version: PackageVersion


async def _entry_kind(path: str) -> EntryKind:
    mode = (await aiofiles.os.stat(path)).st_mode
    if stat.S_ISDIR(mode):
        return "dir"
    if stat.S_ISREG(mode):
        return "file"
    return "other"


async def _list_entries(dir_path: str) -> list[tuple[str, str, EntryKind]]:
    """Return ``(name, path, kind)`` for each entry, sorted by name."""
    names = sorted(await aiofiles.os.listdir(dir_path))
    paths = [os.path.join(dir_path, name) for name in names]
    kinds = await asyncio.gather(*(_entry_kind(path) for path in paths))
    return list(zip(names, paths, kinds, strict=True))


# ---------------------------------------------------------------------------
# Name validation
# ---------------------------------------------------------------------------


def _validate_version_num_part(
    part: str, part_name: str, context: str, errors: ValidationErrors
) -> int:
    num = int(part)
    if str(num) != part:
        errors.add(
            context, f"'{context}': Invalid {part_name} number: '{part}'. Expected a number."
        )
    return num


def _validate_version_part(
    part: str, part_name: str, context: str, errors: ValidationErrors
) -> VersionPart:
    if part == "x":
        return "x"
    return _validate_version_num_part(part, part_name, context, errors)


def _parse_pkg_dir_name(pkg_dir_path: str, errors: ValidationErrors) -> _PkgDir:
    dir_name = os.path.basename(pkg_dir_path)
    match = _PKG_DIR_NAME_RE.match(dir_name)
    if match is None:
        errors.add(
            pkg_dir_path,
            f"'{dir_name}' is a malformed definitions/npm/ directory name! "
            "Expected the name to be formatted as <PKGNAME>_v<MAJOR>.<MINOR>.<PATCH>",
        )
        return _PkgDir(pkg_name=INVALID_PKG_NAME, pkg_version=empty_version())

    pkg_name, major, minor, patch = match.groups()
    parent = os.path.basename(os.path.dirname(pkg_dir_path))
    if parent.startswith("@"):
        pkg_name = f"{parent}/{pkg_name}"

    return _PkgDir(
        pkg_name=pkg_name,
        pkg_version=PackageVersion(
            major=_validate_version_num_part(major, "major", pkg_dir_path, errors),
            minor=_validate_version_part(minor, "minor", pkg_dir_path, errors),
            patch=_validate_version_part(patch, "patch", pkg_dir_path, errors),
        ),
    )


def _validate_test_file(test_file_path: str, errors: ValidationErrors) -> bool:
    if _TEST_FILE_NAME_RE.match(os.path.basename(test_file_path)) is None:
        errors.add(
            test_file_path,
            "Malformed test file name! Test files must be formatted as test_(.*).js",
        )
        return False
    return True


# ---------------------------------------------------------------------------
# Directory walk
# ---------------------------------------------------------------------------


async def _scan_checker_dir(
    pkg: _PkgDir,
    pkg_version_str: str,
    checker_dir_path: str,
    checker_version: CheckerVersion,
    common_test_files: list[str],
    errors: ValidationErrors,
) -> LibDef | None:
    base_name = pkg.pkg_name.rsplit("/", 1)[-1]
    libdef_file_name = f"{base_name}_{pkg_version_str}.js"
    test_file_paths = list(common_test_files)
    libdef_path: str | None = None

    for name, path, kind in await _list_entries(checker_dir_path):
        if kind != "file":
            errors.add(path, "Unexpected directory item")
            continue
        if pkg.pkg_name == INVALID_PKG_NAME or name.endswith(_SWAP_FILE_EXT):
            continue
        if name == libdef_file_name:
            libdef_path = path
            continue
        if _validate_test_file(path, errors):
            test_file_paths.append(path)

    if libdef_path is None:
        if pkg.pkg_name != INVALID_PKG_NAME:
            errors.add(checker_dir_path, "No libdef file found!")
        return None

    return LibDef(
        pkg_name=pkg.pkg_name,
        pkg_version_str=pkg_version_str,
        checker_version=checker_version,
        checker_version_str=to_dir_string(checker_version),
        path=libdef_path,
        test_file_paths=tuple(test_file_paths),
    )


async def _scan_pkg_dir(pkg_dir_path: str, errors: ValidationErrors) -> list[LibDef]:
    """Scan one ``<pkgName>_v<version>`` directory into a LibDef per checker version."""
    pkg = _parse_pkg_dir_name(pkg_dir_path, errors)
    pkg_version_str = version_to_string(pkg.pkg_version)

    common_test_files: list[str] = []
    checker_dirs: list[tuple[str, CheckerVersion | None]] = []
    for name, path, kind in await _list_entries(pkg_dir_path):
        if kind == "file":
            if name.endswith(_SWAP_FILE_EXT):
                continue
            if _validate_test_file(path, errors):
                common_test_files.append(path)
        elif kind == "dir":
            checker_dirs.append((path, parse_dir_string(name, errors, context=path)))
        else:
            errors.add(path, "Unexpected directory item")

    parsed_dirs = [(path, ver) for path, ver in checker_dirs if ver is not None]
    if not disjoint_versions_all([ver for _, ver in parsed_dirs]):
        errors.add(pkg_dir_path, "Checker versions not disjoint!")
    if not checker_dirs:
        errors.add(pkg_dir_path, "No libdef files found!")

    lib_defs = await asyncio.gather(
        *(
            _scan_checker_dir(pkg, pkg_version_str, path, ver, common_test_files, errors)
            for path, ver in parsed_dirs
        )
    )
    return [lib_def for lib_def in lib_defs if lib_def is not None]


async def _scan_scope_dir(scope_dir_path: str, errors: ValidationErrors) -> list[LibDef]:
    pkg_dirs = []
    for _, path, kind in await _list_entries(scope_dir_path):
        if kind == "dir":
            pkg_dirs.append(path)
        else:
            errors.add(
                path, "Expected only directories in the 'definitions/npm/@<scope>' directory!"
            )
    batches = await asyncio.gather(*(_scan_pkg_dir(path, errors) for path in pkg_dirs))
    return [lib_def for batch in batches for lib_def in batch]


async def scan_definitions(
    defs_dir: str,
    errors: ValidationErrors | None = None,
) -> list[LibDef]:
    """Return every LibDef found under a ``definitions/npm`` directory.

    Validation problems go to ``errors``. When no sink is given they are
    logged as warnings instead, so they are never silently lost.
    """
    sink = errors if errors is not None else ValidationErrors()

    scans = []
    for name, path, kind in await _list_entries(defs_dir):
        if name == CLI_METADATA_FILE:
            continue
        if kind != "dir":
            sink.add(path, "Expected only directories in the 'definitions/npm' directory!")
        elif name.startswith("@"):
            scans.append(_scan_scope_dir(path, sink))
        else:
            scans.append(_scan_pkg_dir(path, sink))
    batches = await asyncio.gather(*scans)
    lib_defs = [lib_def for batch in batches for lib_def in batch]

    if errors is None:
        for context, message in sink.items():
            log.warning("libdef_validation_error", context=context, message=message)
    log.debug("definitions_scanned", defs_dir=defs_dir, lib_defs=len(lib_defs), errors=len(sink))
    return lib_defs
