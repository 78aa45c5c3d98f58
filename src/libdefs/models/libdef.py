from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from libdefs.models.version import CheckerVersion


class LibDef(BaseModel):
    """One located definition file for a package version and checker version."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    pkg_name: str  # "@scope/name" for scoped packages
    pkg_version_str: str  # e.g. "1.2.x"
    checker_version: CheckerVersion
    checker_version_str: str  # checker directory name, e.g. "v0.25.x-"
    path: str
    test_file_paths: tuple[str, ...] = ()


class FuzzyFilter(BaseModel):
    """Case-insensitive substring match on the package name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["fuzzy"] = "fuzzy"
    term: str
    checker_version_str: str | None = None


class ExactFilter(BaseModel):
    """Exact package name plus package-version range containment."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["exact"] = "exact"
    pkg_name: str
    pkg_version_str: str
    checker_version_str: str | None = None


class ExactNameFilter(BaseModel):
    """Exact package name, any package version."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    type: Literal["exact-name"] = "exact-name"
    term: str
    checker_version_str: str | None = None


LibDefFilter = Annotated[
    FuzzyFilter | ExactFilter | ExactNameFilter,
    Field(discriminator="type"),
]
