"""Unit tests for version strings, checker-version directories and disjointness."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from libdefs.errors import ErrorCode, LibDefsError
from libdefs.models.version import (
    AllCheckerVersions,
    PackageVersion,
    RangedCheckerVersion,
    SpecificCheckerVersion,
    VersionTriple,
)
from libdefs.validation import ValidationErrors
from libdefs.versions import (
    checker_version_to_version,
    disjoint_versions_all,
    parse_dir_string,
    string_to_version,
    to_dir_string,
    to_semver_string,
    version_interval,
    version_to_string,
)


def _v(major, minor, patch) -> VersionTriple:
    return VersionTriple(major=major, minor=minor, patch=patch)


# ---------------------------------------------------------------------------
# PackageVersion strings
# ---------------------------------------------------------------------------


class TestVersionStrings:
    def test_renders_wildcards_literally(self) -> None:
        assert version_to_string(PackageVersion(major=1, minor="x", patch="x")) == "1.x.x"

    def test_renders_range_with_upper_bound(self) -> None:
        ver = PackageVersion(
            major=1,
            minor=2,
            patch=0,
            range=">=",
            upper_bound=PackageVersion(major=1, minor=4, patch="x", range="<="),
        )
        assert version_to_string(ver) == ">=1.2.0 <=1.4.x"
        assert string_to_version(">=1.2.0 <=1.4.x") == ver

    @pytest.mark.parametrize("text", ["1.2.3", "0.x.x", "x.x.x", "^1.2.x", "~0.4.1", "=2.0.0"])
    def test_round_trip(self, text: str) -> None:
        assert version_to_string(string_to_version(text)) == text

    def test_leading_v_is_accepted(self) -> None:
        assert string_to_version("v1.2.3") == PackageVersion(major=1, minor=2, patch=3)

    @pytest.mark.parametrize(
        "text", ["1.x.3", "x.1.1", "1.2", "banana", "<=1.0.0 >=2.0.0", "1.0.0 2.0.0 3.0.0"]
    )
    def test_malformed_strings_raise(self, text: str) -> None:
        with pytest.raises(LibDefsError) as exc_info:
            string_to_version(text)
        assert exc_info.value.code == ErrorCode.INVALID_VERSION

    def test_upper_bound_requires_lower_range(self) -> None:
        with pytest.raises(ValidationError):
            PackageVersion(
                major=1,
                minor=0,
                patch=0,
                upper_bound=PackageVersion(major=2, minor=0, patch=0, range="<="),
            )


class TestVersionInterval:
    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("1.2.3", ((1, 2, 3), (1, 2, 4))),
            ("1.2.x", ((1, 2, 0), (1, 3, 0))),
            ("x.x.x", ((0, 0, 0), None)),
            ("^1.2.3", ((1, 2, 3), (2, 0, 0))),
            ("^0.2.x", ((0, 2, 0), (0, 3, 0))),
            ("^0.0.3", ((0, 0, 3), (0, 0, 4))),
            ("~1.2.3", ((1, 2, 3), (1, 3, 0))),
            (">=1.2.0 <=1.4.x", ((1, 2, 0), (1, 5, 0))),
            ("<=0.30.x", ((0, 0, 0), (0, 31, 0))),
            (">=0.25.0", ((0, 25, 0), None)),
        ],
    )
    def test_intervals(self, text: str, expected: tuple) -> None:
        assert version_interval(string_to_version(text)) == expected


# ---------------------------------------------------------------------------
# Checker versions
# ---------------------------------------------------------------------------


class TestCheckerVersionToVersion:
    def test_all_is_full_wildcard(self) -> None:
        assert checker_version_to_version(AllCheckerVersions()) == PackageVersion(
            major="x", minor="x", patch="x"
        )

    def test_specific_keeps_triple(self) -> None:
        checker = SpecificCheckerVersion(ver=_v(0, 25, "x"))
        assert checker_version_to_version(checker) == PackageVersion(
            major=0, minor=25, patch="x"
        )

    def test_closed_range(self) -> None:
        checker = RangedCheckerVersion(lower=_v(0, 25, "x"), upper=_v(0, 30, "x"))
        ver = checker_version_to_version(checker)
        assert ver.range == ">="
        assert ver.upper_bound == PackageVersion(major=0, minor=30, patch="x", range="<=")
        assert to_semver_string(checker) == ">=0.25.x <=0.30.x"

    def test_lower_only(self) -> None:
        checker = RangedCheckerVersion(lower=_v(0, 25, "x"))
        assert to_semver_string(checker) == ">=0.25.x"

    def test_upper_only(self) -> None:
        checker = RangedCheckerVersion(upper=_v(0, 30, "x"))
        assert to_semver_string(checker) == "<=0.30.x"

    def test_unbounded_range_is_rejected_by_model(self) -> None:
        with pytest.raises(ValidationError):
            RangedCheckerVersion()

    def test_unbounded_range_raises_when_constructed_unchecked(self) -> None:
        checker = RangedCheckerVersion.model_construct(lower=None, upper=None)
        with pytest.raises(LibDefsError) as exc_info:
            checker_version_to_version(checker)
        assert exc_info.value.code == ErrorCode.INVALID_CHECKER_VERSION


class TestDisjointVersions:
    def test_empty_and_single_are_disjoint(self) -> None:
        assert disjoint_versions_all([])
        assert disjoint_versions_all([AllCheckerVersions()])

    def test_all_overlaps_everything(self) -> None:
        assert not disjoint_versions_all(
            [AllCheckerVersions(), SpecificCheckerVersion(ver=_v(0, 25, "x"))]
        )

    def test_adjacent_specific_versions(self) -> None:
        assert disjoint_versions_all(
            [
                SpecificCheckerVersion(ver=_v(0, 25, "x")),
                SpecificCheckerVersion(ver=_v(0, 26, "x")),
            ]
        )

    def test_open_ranges_pointing_at_each_other_overlap(self) -> None:
        assert not disjoint_versions_all(
            [RangedCheckerVersion(lower=_v(1, 0, 0)), RangedCheckerVersion(upper=_v(2, 0, 0))]
        )

    def test_below_one_and_from_one(self) -> None:
        assert disjoint_versions_all(
            [RangedCheckerVersion(upper=_v(0, "x", "x")), RangedCheckerVersion(lower=_v(1, 0, 0))]
        )

    def test_shared_boundary_version_overlaps(self) -> None:
        assert not disjoint_versions_all(
            [RangedCheckerVersion(upper=_v(1, 0, 0)), RangedCheckerVersion(lower=_v(1, 0, 0))]
        )

    def test_consecutive_ranges(self) -> None:
        assert disjoint_versions_all(
            [
                RangedCheckerVersion(lower=_v(0, 25, "x"), upper=_v(0, 29, "x")),
                RangedCheckerVersion(lower=_v(0, 30, "x")),
            ]
        )

    def test_specific_inside_range(self) -> None:
        assert not disjoint_versions_all(
            [
                RangedCheckerVersion(lower=_v(0, 25, "x"), upper=_v(0, 30, "x")),
                SpecificCheckerVersion(ver=_v(0, 30, 1)),
            ]
        )

    def test_any_overlapping_pair_fails_the_set(self) -> None:
        assert not disjoint_versions_all(
            [
                SpecificCheckerVersion(ver=_v(0, 20, "x")),
                SpecificCheckerVersion(ver=_v(0, 21, "x")),
                RangedCheckerVersion(lower=_v(0, 21, 5)),
            ]
        )


# ---------------------------------------------------------------------------
# Checker-version directory names
# ---------------------------------------------------------------------------


_CHECKER_VERSIONS = [
    AllCheckerVersions(),
    SpecificCheckerVersion(ver=_v(0, 25, "x")),
    SpecificCheckerVersion(ver=_v(0, 25, 1)),
    SpecificCheckerVersion(ver=_v(1, "x", "x")),
    RangedCheckerVersion(lower=_v(0, 25, "x"), upper=_v(0, 30, "x")),
    RangedCheckerVersion(lower=_v(0, 25, 1)),
    RangedCheckerVersion(upper=_v(0, 30, "x")),
]


class TestDirStrings:
    @pytest.mark.parametrize(
        "name",
        ["all", "v0.25.x", "v0.25.1", "v1.x.x", "v0.25.x-v0.30.x", "v0.25.x-", "-v0.30.x"],
    )
    def test_round_trip(self, name: str) -> None:
        assert to_dir_string(parse_dir_string(name)) == name

    @pytest.mark.parametrize("checker_version", _CHECKER_VERSIONS, ids=to_dir_string)
    def test_model_round_trip(self, checker_version) -> None:
        assert parse_dir_string(to_dir_string(checker_version)) == checker_version

    def test_parses_kinds(self) -> None:
        assert parse_dir_string("all") == AllCheckerVersions()
        assert parse_dir_string("v0.25.x") == SpecificCheckerVersion(ver=_v(0, 25, "x"))
        assert parse_dir_string("-v0.30.x") == RangedCheckerVersion(upper=_v(0, 30, "x"))

    @pytest.mark.parametrize(
        "name",
        ["-", "flow_v0.25.x", "v0.30.x-v0.25.x", "v01.2.3", "v0.x.3", "vx.1.1", "0.25.x", "v0.25"],
    )
    def test_malformed_names_raise_without_sink(self, name: str) -> None:
        with pytest.raises(LibDefsError) as exc_info:
            parse_dir_string(name)
        assert exc_info.value.code == ErrorCode.INVALID_CHECKER_VERSION

    def test_malformed_name_reported_to_sink(self) -> None:
        errors = ValidationErrors()
        result = parse_dir_string("v0.30.x-v0.25.x", errors, context="/defs/foo_v1.0.0/bad")
        assert result is None
        assert len(errors) == 1
        assert "/defs/foo_v1.0.0/bad" in errors
