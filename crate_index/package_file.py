# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
Reading and writing of package files.

A package file holds every published version of one crate, one JSON record
per line in the order the versions were published. Modifications always
rewrite the whole file via an atomic replace, hence a reader sees either
the previous or the new content.

Nothing in here takes a lock: callers are expected to serialize writers.

"""

from __future__ import annotations

import dataclasses
import os
import pathlib
import typing

from . import config, errors, model, parser, serializer, utils
from .versions import Version


@dataclasses.dataclass(frozen=True)
class Insert:
    record: model.Record


@dataclasses.dataclass(frozen=True)
class Patch:
    name: str
    version: Version
    mutator: typing.Callable[[model.Record], model.Record]


Mode = typing.Union[Insert, Patch]


def _load(
    path: pathlib.Path,
) -> typing.Tuple[typing.List[str], typing.List[typing.Tuple[int, model.Record]]]:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return [], []
    # str.splitlines would also split on U+2028, which json.dumps leaves unescaped.
    lines = content.split("\n")
    if lines[-1] == "":
        lines.pop()
    # Only the newline terminating the last record is expected: any empty line
    # is reported as corruption by the parser.
    records = [
        (index, parser.parse_record_line(line, path, index + 1))
        for index, line in enumerate(lines)
    ]
    return lines, records


def read_all(path: pathlib.Path) -> typing.Tuple[model.Record, ...]:
    _, records = _load(path)
    return tuple(record for _, record in records)


def render(records: typing.Iterable[model.Record]) -> str:
    return "".join(serializer.serialize_record(record) + "\n" for record in records)


def append_or_update(path: pathlib.Path, mode: Mode) -> model.Record:
    """
    Insert a new record into, or patch an existing record of, the package
    file at the given path. Returns the record as written.

    Lines which are not concerned by the change are kept byte-for-byte.

    """
    lines, records = _load(path)
    if isinstance(mode, Insert):
        record = mode.record
        for _, existing in records:
            if existing.version.precedence == record.version.precedence:
                raise errors.DuplicateVersion(existing.name, record.version)
        for _, existing in records:
            if existing.name != record.name:
                raise errors.InvalidName(
                    record.name,
                    f"the index already holds this crate as '{existing.name}'",
                )
        lines.append(serializer.serialize_record(record))
    else:
        for index, existing in records:
            if existing.version.precedence == mode.version.precedence:
                record = mode.mutator(existing)
                lines[index] = serializer.serialize_record(record)
                break
        else:
            raise errors.VersionNotFound(mode.name, mode.version)

    utils.atomic_write(path, "".join(line + "\n" for line in lines).encode("utf-8"))
    return record


def package_names(root: pathlib.Path) -> typing.Set[str]:
    """
    The names of the package files found in the tree at ``root``. Hidden
    entries (such as the ``.git`` directory) and the index configuration
    are not package files.
    """
    names = set()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if not name.startswith(".")]
        for filename in filenames:
            if filename.startswith(".") or filename == config.CONFIG_FILENAME:
                continue
            names.add(filename)
    return names
