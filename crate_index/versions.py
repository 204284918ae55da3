# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
Semantic versions (https://semver.org) and the version requirement grammar
used by dependency declarations in the index.

Requirements follow the cargo flavour of semver ranges: a comma separated
list of comparators, all of which must match. A comparator without an
operator is a caret requirement (``1.2`` is ``^1.2``).

"""

from __future__ import annotations

import dataclasses
import enum
import re
import typing

from . import errors

if typing.TYPE_CHECKING:
    from ._typing_compat import Self

_NUMBER = r"0|[1-9][0-9]*"
_IDENTIFIER = r"[0-9A-Za-z-]+"
_DOTTED = rf"{_IDENTIFIER}(?:\.{_IDENTIFIER})*"

VERSION_PATTERN = re.compile(
    rf"^(?P<major>{_NUMBER})\.(?P<minor>{_NUMBER})\.(?P<patch>{_NUMBER})"
    rf"(?:-(?P<pre>{_DOTTED}))?"
    rf"(?:\+(?P<build>{_DOTTED}))?$",
)

_PART = rf"{_NUMBER}|\*|x|X"
PARTIAL_VERSION_PATTERN = re.compile(
    rf"^(?P<major>{_PART})"
    rf"(?:\.(?P<minor>{_PART})"
    rf"(?:\.(?P<patch>{_PART})"
    rf"(?:-(?P<pre>{_DOTTED}))?"
    rf"(?:\+(?P<build>{_DOTTED}))?"
    r")?)?$",
)

_WILDCARDS = ("*", "x", "X")


def _check_prerelease(pre: str, original: str) -> typing.Tuple[str, ...]:
    identifiers = tuple(pre.split(".")) if pre else ()
    for identifier in identifiers:
        if identifier.isdigit() and len(identifier) > 1 and identifier[0] == "0":
            raise errors.InvalidVersion(
                original,
                f"numeric pre-release identifier '{identifier}' has a leading zero",
            )
    return identifiers


def _prerelease_key(
    pre: typing.Tuple[str, ...],
) -> typing.Tuple[int, typing.Tuple[typing.Tuple[int, typing.Union[int, str]], ...]]:
    # A version without pre-release identifiers has a higher precedence
    # than any pre-release of the same major.minor.patch.
    if not pre:
        return (1, ())
    return (
        0,
        tuple(
            (0, int(identifier)) if identifier.isdigit() else (1, identifier)
            for identifier in pre
        ),
    )


@dataclasses.dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int
    pre: typing.Tuple[str, ...] = ()
    build: typing.Tuple[str, ...] = ()

    @classmethod
    def parse(cls, version: str) -> Self:
        if not isinstance(version, str):
            raise errors.InvalidVersion(repr(version), "a version must be a string")
        match = VERSION_PATTERN.match(version)
        if match is None:
            raise errors.InvalidVersion(
                version,
                "expected 'major.minor.patch[-pre][+build]'",
            )
        return cls(
            major=int(match["major"]),
            minor=int(match["minor"]),
            patch=int(match["patch"]),
            pre=_check_prerelease(match["pre"] or "", version),
            build=tuple(match["build"].split(".")) if match["build"] else (),
        )

    @property
    def precedence(self) -> typing.Tuple[typing.Any, ...]:
        """
        The key used for ordering. Build metadata does not take part in
        precedence, so two versions differing only by build metadata share
        the same key.
        """
        return (self.major, self.minor, self.patch, _prerelease_key(self.pre))

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence < other.precedence

    def __le__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence <= other.precedence

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence > other.precedence

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence >= other.precedence

    def __str__(self) -> str:
        result = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            result += "-" + ".".join(self.pre)
        if self.build:
            result += "+" + ".".join(self.build)
        return result


class Op(enum.Enum):
    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"


# Longest operators first, so that ">=" is not read as ">".
_OPERATORS = sorted(Op, key=lambda op: len(op.value), reverse=True)


@dataclasses.dataclass(frozen=True)
class Comparator:
    op: Op
    major: int
    minor: typing.Optional[int] = None
    patch: typing.Optional[int] = None
    pre: typing.Tuple[str, ...] = ()

    @classmethod
    def parse(cls, text: str, requirement: str) -> Comparator:
        text = text.strip()
        op = Op.CARET
        explicit_op = False
        for candidate in _OPERATORS:
            if text.startswith(candidate.value):
                op = candidate
                explicit_op = True
                text = text[len(candidate.value):].strip()
                break

        match = PARTIAL_VERSION_PATTERN.match(text)
        if match is None:
            raise errors.InvalidVersion(requirement, f"cannot parse comparator '{text}'")

        parts: typing.List[typing.Optional[int]] = []
        wildcard_seen = False
        for name in ("major", "minor", "patch"):
            value = match[name]
            if value is None or value in _WILDCARDS:
                wildcard_seen = wildcard_seen or value is not None
                parts.append(None)
            elif wildcard_seen or (parts and parts[-1] is None):
                raise errors.InvalidVersion(
                    requirement,
                    f"unexpected version component after a wildcard in '{text}'",
                )
            else:
                parts.append(int(value))

        if wildcard_seen:
            if explicit_op and op is not Op.EXACT:
                raise errors.InvalidVersion(
                    requirement,
                    f"wildcards cannot be combined with operator '{op.value}'",
                )
            op = Op.EXACT

        major, minor, patch = parts
        if major is None:
            # A bare "*" is handled by VersionReq. Anything else
            # starting with a wildcard is meaningless.
            raise errors.InvalidVersion(requirement, f"unexpected wildcard in '{text}'")
        return cls(
            op=op,
            major=major,
            minor=minor,
            patch=patch,
            pre=_check_prerelease(match["pre"] or "", requirement),
        )

    def matches(self, version: Version) -> bool:
        if self.op is Op.EXACT:
            return self._matches_exact(version)
        if self.op is Op.GREATER:
            return self._matches_greater(version)
        if self.op is Op.GREATER_EQ:
            return self._matches_exact(version) or self._matches_greater(version)
        if self.op is Op.LESS:
            return self._matches_less(version)
        if self.op is Op.LESS_EQ:
            return self._matches_exact(version) or self._matches_less(version)
        if self.op is Op.TILDE:
            return self._matches_tilde(version)
        return self._matches_caret(version)

    def _pre_at_least(self, version: Version) -> bool:
        return _prerelease_key(version.pre) >= _prerelease_key(self.pre)

    def _matches_exact(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is None:
            return True
        if version.minor != self.minor:
            return False
        if self.patch is None:
            return True
        return version.patch == self.patch and version.pre == self.pre

    def _matches_greater(self, version: Version) -> bool:
        if version.major != self.major:
            return version.major > self.major
        if self.minor is None:
            return False
        if version.minor != self.minor:
            return version.minor > self.minor
        if self.patch is None:
            return False
        if version.patch != self.patch:
            return version.patch > self.patch
        return _prerelease_key(version.pre) > _prerelease_key(self.pre)

    def _matches_less(self, version: Version) -> bool:
        if version.major != self.major:
            return version.major < self.major
        if self.minor is None:
            return False
        if version.minor != self.minor:
            return version.minor < self.minor
        if self.patch is None:
            return False
        if version.patch != self.patch:
            return version.patch < self.patch
        return _prerelease_key(version.pre) < _prerelease_key(self.pre)

    def _matches_tilde(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is None:
            return True
        if version.minor != self.minor:
            return False
        if self.patch is None:
            return True
        return version.patch > self.patch or (
            version.patch == self.patch and self._pre_at_least(version)
        )

    def _matches_caret(self, version: Version) -> bool:
        if version.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return version.minor >= self.minor
            return version.minor == self.minor
        if self.major > 0:
            if version.minor != self.minor:
                return version.minor > self.minor
        elif self.minor > 0:
            if version.minor != self.minor:
                return False
        elif version.minor != self.minor or version.patch != self.patch:
            # ^0.0.x only ever matches 0.0.x itself.
            return False
        return version.patch > self.patch or (
            version.patch == self.patch and self._pre_at_least(version)
        )

    def allows_prerelease_of(self, version: Version) -> bool:
        return bool(self.pre) and (self.major, self.minor, self.patch) == (
            version.major,
            version.minor,
            version.patch,
        )


@dataclasses.dataclass(frozen=True)
class VersionReq:
    """
    A parsed version requirement. The textual form is kept verbatim so that
    serializing a requirement reproduces exactly what was published.
    """

    text: str
    comparators: typing.Tuple[Comparator, ...] = dataclasses.field(compare=False)

    @classmethod
    def parse(cls, requirement: str) -> Self:
        if not isinstance(requirement, str):
            raise errors.InvalidVersion(repr(requirement), "a requirement must be a string")
        stripped = requirement.strip()
        if not stripped:
            raise errors.InvalidVersion(requirement, "empty version requirement")
        if stripped in _WILDCARDS:
            return cls(requirement, ())
        comparators = tuple(
            Comparator.parse(part, requirement) for part in stripped.split(",")
        )
        return cls(requirement, comparators)

    def matches(self, version: Version) -> bool:
        if not all(comparator.matches(version) for comparator in self.comparators):
            return False
        if not version.is_prerelease:
            return True
        # Pre-releases are only selected when a comparator opts in to the
        # pre-releases of that exact major.minor.patch.
        return any(
            comparator.allows_prerelease_of(version) for comparator in self.comparators
        )

    def __str__(self) -> str:
        return self.text
