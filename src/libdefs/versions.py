"""Package-version and checker-version helpers.

Pure functions only: rendering and parsing of version strings and of
checker-version directory names, conversion of checker versions into the
unified ``PackageVersion`` range form, and interval arithmetic used for the
disjointness check and for range-vs-range matching.

Intervals are half-open ``[lower, upper)`` on ``(major, minor, patch)``
tuples. ``upper is None`` means unbounded; the lower bound is always
concrete since versions cannot go below ``0.0.0``.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from itertools import combinations
from typing import TYPE_CHECKING

from libdefs.errors import ErrorCode, LibDefsError
from libdefs.models.version import (
    AllCheckerVersions,
    PackageVersion,
    RangedCheckerVersion,
    SpecificCheckerVersion,
    VersionTriple,
)
from libdefs.semver import Triple

if TYPE_CHECKING:
    from libdefs.models.version import CheckerVersion, VersionPart
    from libdefs.validation import ValidationErrors

Interval = tuple[Triple, Triple | None]

_NUM = r"0|[1-9][0-9]*"
_PART = rf"{_NUM}|x"
_VERSION_TOKEN_RE = re.compile(
    rf"^(?P<op>>=|<=|\^|~|=)?v?(?P<major>{_PART})\.(?P<minor>{_PART})\.(?P<patch>{_PART})$"
)
_DIR_TRIPLE_RE = re.compile(rf"^v(?P<major>{_NUM})\.(?P<minor>{_PART})\.(?P<patch>{_PART})$")


def _part(raw: str) -> VersionPart:
    return "x" if raw == "x" else int(raw)


def empty_version() -> PackageVersion:
    return PackageVersion(major=0, minor=0, patch=0)


# ---------------------------------------------------------------------------
# PackageVersion <-> string
# ---------------------------------------------------------------------------


def version_to_string(ver: PackageVersion) -> str:
    """Render ``major.minor.patch`` with a literal ``x`` for wildcard parts.

    Range operators are prepended and an upper bound is appended after a
    space, so ``string_to_version`` can read the result back.
    """
    rendered = f"{ver.range or ''}{ver.major}.{ver.minor}.{ver.patch}"
    if ver.upper_bound is not None:
        rendered += " " + version_to_string(ver.upper_bound)
    return rendered


def _parse_version_token(token: str, source: str) -> PackageVersion:
    match = _VERSION_TOKEN_RE.match(token)
    if match is None:
        raise LibDefsError(ErrorCode.INVALID_VERSION, f"Malformed version: {source!r}")
    major, minor, patch = (_part(match[name]) for name in ("major", "minor", "patch"))
    # wildcards may only appear as a suffix: 1.x.x is fine, 1.x.3 is not
    if (major == "x" and minor != "x") or (minor == "x" and patch != "x"):
        raise LibDefsError(
            ErrorCode.INVALID_VERSION,
            f"Malformed version: {source!r}. Wildcards must trail concrete parts.",
        )
    return PackageVersion(major=major, minor=minor, patch=patch, range=match["op"])


def string_to_version(version_str: str) -> PackageVersion:
    tokens = version_str.split()
    if len(tokens) == 1:
        return _parse_version_token(tokens[0], version_str)
    if len(tokens) == 2:
        lower = _parse_version_token(tokens[0], version_str)
        upper = _parse_version_token(tokens[1], version_str)
        if lower.range == ">=" and upper.range == "<=":
            return PackageVersion(
                major=lower.major,
                minor=lower.minor,
                patch=lower.patch,
                range=">=",
                upper_bound=upper,
            )
    raise LibDefsError(
        ErrorCode.INVALID_VERSION,
        f"Unsupported version range: {version_str!r}. "
        "Expected a single version or '>=<lower> <=<upper>'.",
    )


# ---------------------------------------------------------------------------
# Intervals
# ---------------------------------------------------------------------------


def _floor(major: VersionPart, minor: VersionPart, patch: VersionPart) -> Triple:
    return (
        0 if major == "x" else major,
        0 if minor == "x" else minor,
        0 if patch == "x" else patch,
    )


def _ceiling(major: VersionPart, minor: VersionPart, patch: VersionPart) -> Triple | None:
    """Exclusive upper bound of the x-range ``major.minor.patch``."""
    if major == "x":
        return None
    if minor == "x":
        return (major + 1, 0, 0)
    if patch == "x":
        return (major, minor + 1, 0)
    return (major, minor, patch + 1)


def _caret(major: VersionPart, minor: VersionPart, patch: VersionPart) -> Interval:
    if major == "x":
        return (0, 0, 0), None
    if minor == "x":
        return (major, 0, 0), (major + 1, 0, 0)
    if major > 0:
        return _floor(major, minor, patch), (major + 1, 0, 0)
    if minor > 0:
        return _floor(major, minor, patch), (0, minor + 1, 0)
    if patch == "x":
        return (0, 0, 0), (0, 1, 0)
    return (0, 0, patch), (0, 0, patch + 1)


def _tilde(major: VersionPart, minor: VersionPart, patch: VersionPart) -> Interval:
    if major == "x" or minor == "x":
        return _floor(major, minor, patch), _ceiling(major, minor, patch)
    return _floor(major, minor, patch), (major, minor + 1, 0)


def version_interval(ver: PackageVersion) -> Interval:
    """Return the half-open interval of concrete versions a ``PackageVersion`` covers."""
    parts = (ver.major, ver.minor, ver.patch)
    if ver.range is None or ver.range == "=":
        return _floor(*parts), _ceiling(*parts)
    if ver.range == "^":
        return _caret(*parts)
    if ver.range == "~":
        return _tilde(*parts)
    if ver.range == ">=":
        upper = version_interval(ver.upper_bound)[1] if ver.upper_bound is not None else None
        return _floor(*parts), upper
    # "<="
    return (0, 0, 0), _ceiling(*parts)


def version_floor(ver: PackageVersion) -> Triple:
    """Lowest concrete version matching the bare triple, ignoring any range operator."""
    return _floor(ver.major, ver.minor, ver.patch)


def intervals_overlap(a: Interval, b: Interval) -> bool:
    a_lower, a_upper = a
    b_lower, b_upper = b
    return (a_upper is None or b_lower < a_upper) and (b_upper is None or a_lower < b_upper)


# ---------------------------------------------------------------------------
# CheckerVersion
# ---------------------------------------------------------------------------


def _triple_to_version(ver: VersionTriple, range_op: str | None = None) -> PackageVersion:
    return PackageVersion(major=ver.major, minor=ver.minor, patch=ver.patch, range=range_op)


def checker_version_to_version(checker: CheckerVersion) -> PackageVersion:
    """Convert a checker version into the unified ``PackageVersion`` range form."""
    if isinstance(checker, AllCheckerVersions):
        return PackageVersion(major="x", minor="x", patch="x")
    if isinstance(checker, SpecificCheckerVersion):
        return _triple_to_version(checker.ver)
    if isinstance(checker, RangedCheckerVersion):
        lower, upper = checker.lower, checker.upper
        if lower is not None and upper is not None:
            return PackageVersion(
                major=lower.major,
                minor=lower.minor,
                patch=lower.patch,
                range=">=",
                upper_bound=_triple_to_version(upper, "<="),
            )
        if lower is not None:
            return _triple_to_version(lower, ">=")
        if upper is not None:
            return _triple_to_version(upper, "<=")
        raise LibDefsError(
            ErrorCode.INVALID_CHECKER_VERSION,
            "Ranged checker version has neither a lower nor an upper bound.",
        )
    raise LibDefsError(
        ErrorCode.INVALID_CHECKER_VERSION,
        f"Unexpected checker version kind: {getattr(checker, 'kind', checker)!r}",
    )


def to_semver_string(checker: CheckerVersion) -> str:
    return version_to_string(checker_version_to_version(checker))


def checker_version_interval(checker: CheckerVersion) -> Interval:
    return version_interval(checker_version_to_version(checker))


def disjoint_versions_all(versions: Sequence[CheckerVersion]) -> bool:
    """True iff no concrete checker version is covered by two of ``versions``."""
    intervals = [checker_version_interval(ver) for ver in versions]
    return not any(intervals_overlap(a, b) for a, b in combinations(intervals, 2))


# ---------------------------------------------------------------------------
# Checker-version directory names
# ---------------------------------------------------------------------------


def _triple_to_string(ver: VersionTriple) -> str:
    return f"v{ver.major}.{ver.minor}.{ver.patch}"


def to_dir_string(checker: CheckerVersion) -> str:
    """Render a checker version as its directory name.

    ``all``, ``v0.25.x``, ``v0.25.x-v0.30.x``, ``v0.25.x-`` or ``-v0.30.x``.
    """
    if isinstance(checker, AllCheckerVersions):
        return "all"
    if isinstance(checker, SpecificCheckerVersion):
        return _triple_to_string(checker.ver)
    if isinstance(checker, RangedCheckerVersion):
        lower = _triple_to_string(checker.lower) if checker.lower is not None else ""
        upper = _triple_to_string(checker.upper) if checker.upper is not None else ""
        return f"{lower}-{upper}"
    raise LibDefsError(
        ErrorCode.INVALID_CHECKER_VERSION,
        f"Unexpected checker version kind: {getattr(checker, 'kind', checker)!r}",
    )


def _parse_dir_triple(raw: str) -> VersionTriple | None:
    match = _DIR_TRIPLE_RE.match(raw)
    if match is None:
        return None
    minor, patch = _part(match["minor"]), _part(match["patch"])
    if minor == "x" and patch != "x":
        return None
    return VersionTriple(major=int(match["major"]), minor=minor, patch=patch)


def parse_dir_string(
    dir_name: str,
    errors: ValidationErrors | None = None,
    context: str | None = None,
) -> CheckerVersion | None:
    """Parse a checker-version directory name such as ``v0.25.x-``.

    Problems are appended to ``errors`` and ``None`` is returned. Without a
    sink the problem is raised as ``LibDefsError(INVALID_CHECKER_VERSION)``.
    """

    def fail(message: str) -> None:
        if errors is None:
            raise LibDefsError(ErrorCode.INVALID_CHECKER_VERSION, f"{dir_name!r}: {message}")
        errors.add(context or dir_name, message)

    if dir_name == "all":
        return AllCheckerVersions()

    if "-" in dir_name:
        lower_raw, _, upper_raw = dir_name.partition("-")
        if not lower_raw and not upper_raw:
            fail(f"'{dir_name}' is a range with neither a lower nor an upper bound.")
            return None
        lower = _parse_dir_triple(lower_raw) if lower_raw else None
        upper = _parse_dir_triple(upper_raw) if upper_raw else None
        if (lower_raw and lower is None) or (upper_raw and upper is None):
            fail(
                f"Malformed checker version range '{dir_name}'! "
                "Expected 'v<MAJOR>.<MINOR>.<PATCH>' on each side of the '-'."
            )
            return None
        ranged = RangedCheckerVersion(lower=lower, upper=upper)
        lower_bound, upper_bound = checker_version_interval(ranged)
        if upper_bound is not None and lower_bound >= upper_bound:
            fail(f"Checker version range '{dir_name}' is empty: the lower bound exceeds the upper.")
            return None
        return ranged

    ver = _parse_dir_triple(dir_name)
    if ver is None:
        fail(
            f"Malformed checker version directory name '{dir_name}'! "
            "Expected 'all', 'v<MAJOR>.<MINOR>.<PATCH>' or a '-' separated range."
        )
        return None
    return SpecificCheckerVersion(ver=ver)
