from __future__ import annotations

from libdefs.models.libdef import (
    ExactFilter,
    ExactNameFilter,
    FuzzyFilter,
    LibDef,
    LibDefFilter,
)
from libdefs.models.mirror import MirrorState, MirrorStatus
from libdefs.models.version import (
    AllCheckerVersions,
    CheckerVersion,
    PackageVersion,
    RangedCheckerVersion,
    SpecificCheckerVersion,
    VersionTriple,
)

__all__ = [
    # version
    "PackageVersion",
    "VersionTriple",
    "AllCheckerVersions",
    "SpecificCheckerVersion",
    "RangedCheckerVersion",
    "CheckerVersion",
    # libdef
    "LibDef",
    "FuzzyFilter",
    "ExactFilter",
    "ExactNameFilter",
    "LibDefFilter",
    # mirror
    "MirrorState",
    "MirrorStatus",
]
