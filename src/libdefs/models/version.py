from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Wildcard = Literal["x"]
VersionPart = int | Wildcard
RangeOp = Literal[">=", "<=", "^", "~", "="]


class PackageVersion(BaseModel):
    """A package version, wildcard version, or bounded range.

    A bounded range is a ``>=`` node whose ``upper_bound`` is a ``<=`` node:
    ``>=1.2.0 <=1.4.x`` is ``PackageVersion(1, 2, 0, ">=", upper_bound=(1, 4, x, "<="))``.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    major: VersionPart
    minor: VersionPart
    patch: VersionPart
    range: RangeOp | None = None
    upper_bound: PackageVersion | None = None

    @model_validator(mode="after")
    def _check_upper_bound(self) -> PackageVersion:
        if self.upper_bound is not None:
            if self.range != ">=":
                raise ValueError("upper_bound may only be set on a '>=' lower-bound node")
            if self.upper_bound.range != "<=" or self.upper_bound.upper_bound is not None:
                raise ValueError("upper_bound must be a single '<=' node")
        return self


class VersionTriple(BaseModel):
    """A concrete or wildcarded checker version, e.g. ``v0.25.x``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    major: int
    minor: VersionPart
    patch: VersionPart


class AllCheckerVersions(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["all"] = "all"


class SpecificCheckerVersion(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["specific"] = "specific"
    ver: VersionTriple


class RangedCheckerVersion(BaseModel):
    """Open or closed interval of checker versions; both bounds inclusive."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["ranged"] = "ranged"
    lower: VersionTriple | None = None
    upper: VersionTriple | None = None

    @model_validator(mode="after")
    def _check_bounds(self) -> RangedCheckerVersion:
        if self.lower is None and self.upper is None:
            raise ValueError("a ranged checker version needs at least one bound")
        return self


CheckerVersion = Annotated[
    AllCheckerVersions | SpecificCheckerVersion | RangedCheckerVersion,
    Field(discriminator="kind"),
]
