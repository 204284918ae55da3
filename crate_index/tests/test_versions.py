# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import pathlib

import pytest

from .. import __version__, _version, errors
from ..versions import Op, Version, VersionReq


def test_parse_version() -> None:
    version = Version.parse("1.2.3-alpha.1+build.5")
    assert version == Version(1, 2, 3, ("alpha", "1"), ("build", "5"))
    assert version.is_prerelease
    assert str(version) == "1.2.3-alpha.1+build.5"


@pytest.mark.parametrize(
    "version",
    ["", "1", "1.2", "01.2.3", "1.02.3", "1.2.3-01", "1.2.3-", "1.2.3+", "v1.2.3", " 1.2.3"],
)
def test_parse_version__invalid(version: str) -> None:
    with pytest.raises(errors.InvalidVersion):
        Version.parse(version)


def test_parse_version__not_a_string() -> None:
    with pytest.raises(errors.InvalidVersion):
        Version.parse(123)  # type: ignore[arg-type]


def test_version_ordering() -> None:
    ordered = [
        "1.0.0-alpha",
        "1.0.0-alpha.1",
        "1.0.0-alpha.beta",
        "1.0.0-beta",
        "1.0.0-beta.2",
        "1.0.0-beta.11",
        "1.0.0-rc.1",
        "1.0.0",
        "1.0.1",
        "1.1.0",
        "2.0.0",
    ]
    versions = [Version.parse(v) for v in ordered]
    assert sorted(reversed(versions)) == versions


def test_version_build_metadata_precedence() -> None:
    a = Version.parse("1.0.0+a")
    b = Version.parse("1.0.0+b")
    assert a != b
    assert a.precedence == b.precedence
    assert not a < b
    assert a <= b and a >= b


def test_parse_requirement() -> None:
    req = VersionReq.parse(">= 1.2, < 2")
    assert str(req) == ">= 1.2, < 2"
    assert [c.op for c in req.comparators] == [Op.GREATER_EQ, Op.LESS]


@pytest.mark.parametrize(
    "requirement",
    ["", "  ", ">=", "1.2.3.4", ">=1.*", "~*", "1.*.3", "abc", "1.2,"],
)
def test_parse_requirement__invalid(requirement: str) -> None:
    with pytest.raises(errors.InvalidVersion):
        VersionReq.parse(requirement)


@pytest.mark.parametrize(
    ("requirement", "version", "expected"),
    [
        ("*", "0.0.1", True),
        ("*", "1.0.0-alpha", False),
        ("1.2.3", "1.2.3", True),
        ("1.2.3", "1.9.0", True),
        ("1.2.3", "2.0.0", False),
        ("^1.2", "1.2.0", True),
        ("^1.2", "1.1.9", False),
        ("^0.2.3", "0.2.9", True),
        ("^0.2.3", "0.3.0", False),
        ("^0.0.3", "0.0.3", True),
        ("^0.0.3", "0.0.4", False),
        ("^0.0", "0.0.7", True),
        ("^0", "0.9.0", True),
        ("~1.2.3", "1.2.9", True),
        ("~1.2.3", "1.3.0", False),
        ("~1.2", "1.2.0", True),
        ("~1", "1.9.9", True),
        ("=1.2.3", "1.2.3", True),
        ("=1.2.3", "1.2.4", False),
        ("=1.2", "1.2.7", True),
        ("1.*", "1.5.0", True),
        ("1.*", "2.0.0", False),
        ("1.2.*", "1.2.8", True),
        ("1.2.*", "1.3.0", False),
        (">1.2", "1.2.9", False),
        (">1.2", "1.3.0", True),
        (">=1.2.0, <1.5.0", "1.4.9", True),
        (">=1.2.0, <1.5.0", "1.5.0", False),
        ("<=1.2", "1.2.9", True),
        ("<1.2.3", "1.2.3-rc.1", False),
        ("^1.2.3-beta.2", "1.2.3-beta.3", True),
        ("^1.2.3-beta.2", "1.2.3-alpha", False),
        ("^1.2.3-beta.2", "1.2.4-beta.1", False),
        ("^1.2.3-beta.2", "1.2.4", True),
    ],
)
def test_requirement_matches(requirement: str, version: str, expected: bool) -> None:
    assert VersionReq.parse(requirement).matches(Version.parse(version)) is expected


def test_package_version() -> None:
    # setup.py reads the version from _version.py without importing the package.
    namespace: dict[str, str] = {}
    exec(pathlib.Path(_version.__file__).read_text(), namespace)
    assert namespace["version"] == __version__
    assert not Version.parse(__version__).is_prerelease
