# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
Models to represent the content of a crate index.

An index holds one file per crate, with one record per published version of
that crate. A record describes a single version: its checksum, the
dependencies it declares, its feature table and whether it has been yanked.

Instances validate (and normalise) their fields on construction, therefore
a model which exists is a model which can be written to the index.

"""

from __future__ import annotations

import dataclasses
import enum
import typing

from . import errors, validation
from ._frozen_mapping import FeatureTable
from .versions import Version, VersionReq

if typing.TYPE_CHECKING:
    from ._typing_compat import Self


class DependencyKind(enum.Enum):
    NORMAL = "normal"
    DEV = "dev"
    BUILD = "build"


@dataclasses.dataclass(frozen=True)
class Dependency:
    name: str
    req: VersionReq
    features: typing.Tuple[str, ...] = ()
    optional: bool = False
    default_features: bool = True

    # The platform the dependency applies to, e.g. 'cfg(windows)'.
    target: typing.Optional[str] = None
    kind: DependencyKind = DependencyKind.NORMAL

    # The index of the registry the dependency comes from. None for the
    # registry of the index holding the record.
    registry: typing.Optional[str] = None

    # When the dependency is renamed, the name of the actual crate.
    package: typing.Optional[str] = None

    def __post_init__(self) -> None:
        try:
            validation.check_name(self.name)
            if self.package is not None:
                validation.check_name(self.package)
        except errors.InvalidName as e:
            raise errors.InvalidDependency(str(self.name), e.reason) from e

        if not isinstance(self.req, VersionReq):
            try:
                object.__setattr__(self, "req", VersionReq.parse(self.req))
            except errors.InvalidVersion as e:
                raise errors.InvalidDependency(self.name, e.reason) from e

        if isinstance(self.features, str) or not all(
            isinstance(feature, str) for feature in self.features
        ):
            raise errors.InvalidDependency(self.name, "'features' must be a list of strings")
        object.__setattr__(self, "features", tuple(self.features))

        for flag in ("optional", "default_features"):
            if not isinstance(getattr(self, flag), bool):
                raise errors.InvalidDependency(self.name, f"'{flag}' must be a boolean")

        if not isinstance(self.kind, DependencyKind):
            try:
                object.__setattr__(self, "kind", DependencyKind(self.kind))
            except ValueError as e:
                raise errors.InvalidDependency(
                    self.name,
                    f"unknown dependency kind {self.kind!r}",
                ) from e

        for field in ("target", "registry"):
            validation.check_optional_string(self.name, field, getattr(self, field))


@dataclasses.dataclass(frozen=True)
class Record:
    """A single published version of a crate, as stored in the index."""

    # The name as published. Uniqueness and file placement use the
    # lowercased form (see normalized_name).
    name: str
    version: Version

    # The SHA-256 of the package archive, lowercase hex.
    checksum: str
    dependencies: typing.Tuple[Dependency, ...] = ()

    # Feature name to the features (or 'dep:name' entries) it enables.
    # Insertion order is kept.
    features: FeatureTable = FeatureTable()
    yanked: bool = False

    # The value of the 'links' manifest key, i.e. the native library linked.
    links: typing.Optional[str] = None

    def __post_init__(self) -> None:
        validation.check_name(self.name)
        if not isinstance(self.version, Version):
            object.__setattr__(self, "version", Version.parse(self.version))
        object.__setattr__(self, "checksum", validation.check_checksum(self.checksum))

        dependencies = tuple(self.dependencies)
        for dependency in dependencies:
            if not isinstance(dependency, Dependency):
                raise errors.InvalidDependency(
                    repr(dependency),
                    "dependencies must be Dependency instances",
                )
        object.__setattr__(self, "dependencies", dependencies)
        object.__setattr__(self, "features", validation.check_features(self.features))

        if not isinstance(self.yanked, bool):
            raise errors.ValidationError(
                f"The yanked flag of {self.name} {self.version} must be a boolean",
            )
        if self.links is not None and not isinstance(self.links, str):
            raise errors.ValidationError(
                f"The links value of {self.name} {self.version} must be a string",
            )

    @property
    def normalized_name(self) -> str:
        return self.name.lower()

    @property
    def canonical_name(self) -> str:
        return validation.canonical_name(self.name)

    def yank(self) -> Self:
        return dataclasses.replace(self, yanked=True)

    def unyank(self) -> Self:
        return dataclasses.replace(self, yanked=False)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Record):
            return NotImplemented
        return self.version < other.version
