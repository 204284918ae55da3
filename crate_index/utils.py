# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import asyncio
import json
import os
import pathlib
import typing

from . import errors

T = typing.TypeVar("T")


def load_config_json(json_file: pathlib.Path) -> typing.Dict[typing.Any, typing.Any]:
    try:
        json_config = json.loads(json_file.read_text())
    except json.JSONDecodeError as e:
        raise errors.InvalidConfigurationError("Invalid json file") from e
    except FileNotFoundError as e:
        raise errors.InvalidConfigurationError("Configuration file not found") from e
    if not isinstance(json_config, dict):
        raise errors.InvalidConfigurationError(
            f"Invalid configuration file. {str(json_file)} must contain a dictionary.",
        )
    return json_config


def atomic_write(target: pathlib.Path, content: bytes) -> None:
    """
    Replace the content of ``target`` such that readers either see the old
    or the new content, never a partially written file.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp = target.with_name(f".{target.name}.{os.getpid()}.tmp")
    try:
        with tmp.open("wb") as fh:
            fh.write(content)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise


def remove_empty_parents(path: pathlib.Path, stop: pathlib.Path) -> None:
    """Remove the empty directories between ``path`` and ``stop`` (exclusive)."""
    parent = path.parent
    while parent != stop and parent.is_relative_to(stop):
        try:
            parent.rmdir()
        except OSError:
            # Not empty.
            return
        parent = parent.parent


async def run_to_completion(awaitable: typing.Awaitable[T]) -> T:
    """
    Await the given awaitable. If the caller is cancelled in the meantime,
    the underlying work is still allowed to finish before the cancellation
    is propagated.

    """
    task = asyncio.ensure_future(awaitable)
    try:
        return await asyncio.shield(task)
    except asyncio.CancelledError:
        await asyncio.wait([task])
        if not task.cancelled():
            # Retrieve the outcome so that it is not reported as unhandled.
            task.exception()
        raise
