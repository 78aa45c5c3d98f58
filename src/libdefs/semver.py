"""Thin typed wrapper around semantic_version for npm-style range checks.

Everything that needs a final "does this version satisfy that range" answer
goes through here, so the rest of the package never touches
``semantic_version`` directly.
"""

from __future__ import annotations

from semantic_version import NpmSpec, Version, validate
from semantic_version.base import AllOf, AnyOf, Range

from libdefs.errors import ErrorCode, LibDefsError

# (major, minor, patch) with every part concrete
Triple = tuple[int, int, int]

_ZERO = Version("0.0.0")


def clean_version(version_str: str) -> str:
    """Strip whitespace and a leading ``=`` / ``v`` (``"=v1.2.3"`` -> ``"1.2.3"``)."""
    cleaned = version_str.strip()
    cleaned = cleaned.removeprefix("=").strip()
    return cleaned.removeprefix("v")


def is_concrete(version_str: str) -> bool:
    """True if the string names exactly one version rather than a range."""
    return bool(validate(clean_version(version_str)))


def parse_version(version_str: str) -> Version:
    try:
        return Version(clean_version(version_str))
    except ValueError as exc:
        raise LibDefsError(
            ErrorCode.INVALID_VERSION, f"Invalid semver version: {version_str!r}"
        ) from exc


def parse_range(range_str: str) -> NpmSpec:
    try:
        return NpmSpec(range_str.strip())
    except ValueError as exc:
        raise LibDefsError(
            ErrorCode.INVALID_VERSION, f"Invalid semver range: {range_str!r}"
        ) from exc


def satisfies(version_str: str, range_str: str) -> bool:
    """Check whether a concrete version satisfies an npm-style range."""
    return parse_range(range_str).match(parse_version(version_str))


def format_triple(triple: Triple) -> str:
    return f"{triple[0]}.{triple[1]}.{triple[2]}"


def interval_to_range(lower: Triple | None, upper: Triple | None) -> str:
    """Render a half-open ``[lower, upper)`` interval as an npm range string."""
    parts = [f">={format_triple(lower or (0, 0, 0))}"]
    if upper is not None:
        parts.append(f"<{format_triple(upper)}")
    return " ".join(parts)


def _clause_lower_bound(clause: object) -> Version:
    if isinstance(clause, AnyOf):
        return min(_clause_lower_bound(sub) for sub in clause.clauses)
    if isinstance(clause, AllOf):
        return max((_clause_lower_bound(sub) for sub in clause.clauses), default=_ZERO)
    if isinstance(clause, Range):
        if clause.operator in (Range.OP_GTE, Range.OP_EQ):
            return clause.target
        if clause.operator == Range.OP_GT:
            return clause.target.next_patch()
    return _ZERO


def range_lower_bound(range_str: str) -> Version:
    """Lowest version an npm range admits; ``0.0.0`` when it has no lower bound.

    With ``||`` alternatives the lowest bound of any alternative wins.
    """
    return _clause_lower_bound(parse_range(range_str).clause)
