# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import re
import typing

import packaging.utils

from . import errors
from ._frozen_mapping import FeatureTable

MAX_NAME_LENGTH = 64

NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")
CHECKSUM_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")

# Names which cannot be used as file names on some platforms.
RESERVED_NAMES = frozenset(
    ["nul", "con", "prn", "aux"]
    + [f"com{i}" for i in range(1, 10)]
    + [f"lpt{i}" for i in range(1, 10)],
)


def check_name(name: str) -> str:
    if not isinstance(name, str):
        raise errors.InvalidName(repr(name), "crate name must be a string")
    if not name:
        raise errors.InvalidName(name, "crate name cannot be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise errors.InvalidName(
            name,
            f"crate name cannot be longer than {MAX_NAME_LENGTH} characters",
        )
    if name.lower() in RESERVED_NAMES:
        raise errors.InvalidName(name, "crate name is reserved")
    if not name.isascii() or NAME_PATTERN.match(name) is None:
        raise errors.InvalidName(
            name,
            "crate name must be ASCII, be alphanumeric + '-' and '_', and begin "
            "with a letter ([a-zA-Z][a-zA-Z0-9-_]*).",
        )
    return name


def canonical_name(name: str) -> str:
    """
    The form used to detect names which only differ by case or by the use
    of '-' versus '_'.
    """
    return packaging.utils.canonicalize_name(name)


def check_checksum(checksum: str) -> str:
    if not isinstance(checksum, str) or CHECKSUM_PATTERN.match(checksum) is None:
        raise errors.InvalidChecksum(str(checksum))
    return checksum.lower()


def check_features(
    features: typing.Mapping[str, typing.Iterable[str]],
) -> FeatureTable:
    if not isinstance(features, typing.Mapping):
        raise errors.InvalidDependency("<features>", "features must be a mapping")
    result: typing.Dict[str, typing.Tuple[str, ...]] = {}
    for feature, enables in features.items():
        if not isinstance(feature, str) or not feature:
            raise errors.InvalidDependency(
                "<features>",
                f"feature names must be non-empty strings (got {feature!r})",
            )
        if isinstance(enables, str) or not all(isinstance(x, str) for x in enables):
            raise errors.InvalidDependency(
                "<features>",
                f"feature '{feature}' must enable a list of feature names",
            )
        result[feature] = tuple(enables)
    return FeatureTable(result)


def check_optional_string(
    dependency_name: str,
    field: str,
    value: typing.Optional[str],
) -> typing.Optional[str]:
    if value is not None and not isinstance(value, str):
        raise errors.InvalidDependency(dependency_name, f"'{field}' must be a string")
    return value
