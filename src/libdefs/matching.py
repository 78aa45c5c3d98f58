"""Filtering and ordering of scanned LibDefs against a query."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from libdefs import semver
from libdefs.errors import ErrorCode, LibDefsError
from libdefs.models.libdef import ExactFilter, ExactNameFilter, FuzzyFilter
from libdefs.models.version import RangedCheckerVersion
from libdefs.versions import (
    checker_version_interval,
    string_to_version,
    version_floor,
    version_interval,
)

if TYPE_CHECKING:
    from libdefs.models.libdef import LibDef, LibDefFilter
    from libdefs.models.version import CheckerVersion


def package_name_match(a: str, b: str) -> bool:
    return a.lower() == b.lower()


def _declared_range(declared_str: str) -> str:
    # "foo_v2.2.x" means "^2.2.x" unless the author pinned it with "="
    if declared_str.startswith(("=", "^")):
        return declared_str
    return "^" + declared_str


def libdef_matches_package_version(pkg_version_str: str, declared_str: str) -> bool:
    """Does a query version (or range) fall within a LibDef's declared version?

    Raises ``LibDefsError(NON_CONTIGUOUS_RANGE)`` when both sides are ranges
    and the declared range is not a single bounded interval.
    """
    declared = string_to_version(_declared_range(declared_str))
    declared_lower, declared_upper = version_interval(declared)

    if semver.is_concrete(pkg_version_str):
        declared_range = semver.interval_to_range(declared_lower, declared_upper)
        return semver.satisfies(pkg_version_str, declared_range)

    if semver.is_concrete(declared_str):
        return semver.satisfies(declared_str, pkg_version_str)

    if declared_upper is None:
        raise LibDefsError(
            ErrorCode.NON_CONTIGUOUS_RANGE,
            f"Invalid libdef version {declared_str!r}: it appears to be a non-contiguous range.",
        )

    # the query matches when its lowest admitted version falls in the declared range
    query_lower = semver.range_lower_bound(pkg_version_str)
    declared_range = semver.interval_to_range(declared_lower, declared_upper)
    return semver.satisfies(str(query_lower), declared_range)


def _checker_range(checker: CheckerVersion) -> str:
    return semver.interval_to_range(*checker_version_interval(checker))


def _checker_version_match(checker_version_str: str, checker: CheckerVersion) -> bool:
    # a wildcard or range names no single checker release, so nothing matches it
    if not semver.is_concrete(checker_version_str):
        return False
    # an upper-bounded range is checked as "lower bound only" plus "<= upper",
    # which treats closed and half-open ranges alike
    if isinstance(checker, RangedCheckerVersion) and checker.upper is not None:
        if checker.lower is not None and not semver.satisfies(
            checker_version_str, _checker_range(RangedCheckerVersion(lower=checker.lower))
        ):
            return False
        return semver.satisfies(
            checker_version_str, _checker_range(RangedCheckerVersion(upper=checker.upper))
        )
    return semver.satisfies(checker_version_str, _checker_range(checker))


def _unknown_filter(lib_def_filter: object) -> LibDefsError:
    return LibDefsError(
        ErrorCode.UNKNOWN_FILTER,
        f"'{getattr(lib_def_filter, 'type', lib_def_filter)}' is an unexpected filter type!",
    )


def _name_match(lib_def: LibDef, lib_def_filter: LibDefFilter) -> bool:
    if isinstance(lib_def_filter, ExactFilter):
        return package_name_match(lib_def.pkg_name, lib_def_filter.pkg_name) and (
            libdef_matches_package_version(lib_def_filter.pkg_version_str, lib_def.pkg_version_str)
        )
    if isinstance(lib_def_filter, ExactNameFilter):
        return package_name_match(lib_def.pkg_name, lib_def_filter.term)
    if isinstance(lib_def_filter, FuzzyFilter):
        return lib_def_filter.term.lower() in lib_def.pkg_name.lower()
    raise _unknown_filter(lib_def_filter)


def _sort_key(lib_def: LibDef) -> tuple[int, int, int]:
    # wildcards compare as 0 ("1.2.x" sorts like "1.2.0"); "=" and "^" prefixes are ignored
    return version_floor(string_to_version(lib_def.pkg_version_str))


def filter_lib_defs(defs: Sequence[LibDef], lib_def_filter: LibDefFilter) -> list[LibDef]:
    """Return the LibDefs matching ``lib_def_filter``, newest package version first."""
    if not isinstance(lib_def_filter, FuzzyFilter | ExactFilter | ExactNameFilter):
        raise _unknown_filter(lib_def_filter)
    matches = []
    for lib_def in defs:
        if not _name_match(lib_def, lib_def_filter):
            continue
        checker_version_str = lib_def_filter.checker_version_str
        if checker_version_str and not _checker_version_match(
            checker_version_str, lib_def.checker_version
        ):
            continue
        matches.append(lib_def)
    return sorted(matches, key=_sort_key, reverse=True)
