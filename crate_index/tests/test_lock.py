# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import asyncio
import pathlib

import pytest

from .. import errors
from ..lock import WorkingTreeLock


@pytest.fixture
def root(tmp_path: pathlib.Path) -> pathlib.Path:
    (tmp_path / ".git").mkdir()
    return tmp_path


def test_negative_timeout(root: pathlib.Path) -> None:
    with pytest.raises(ValueError):
        WorkingTreeLock(root, -1)


@pytest.mark.asyncio
async def test_hold__serializes(root: pathlib.Path) -> None:
    lock = WorkingTreeLock(root)
    events = []

    async def writer(name: str) -> None:
        async with lock.hold():
            events.append(f"{name} start")
            await asyncio.sleep(0.01)
            events.append(f"{name} end")

    await asyncio.gather(writer("a"), writer("b"), writer("c"))
    assert events == ["a start", "a end", "b start", "b end", "c start", "c end"]


@pytest.mark.asyncio
async def test_fail_fast__same_handle(root: pathlib.Path) -> None:
    lock = WorkingTreeLock(root, 0)
    async with lock.hold():
        with pytest.raises(errors.LockContention):
            async with lock.hold():
                pass
    # Released, so usable again.
    async with lock.hold():
        pass


@pytest.mark.asyncio
async def test_fail_fast__other_handle(root: pathlib.Path) -> None:
    # A second lock on the same root behaves as another process would.
    holder = WorkingTreeLock(root)
    contender = WorkingTreeLock(root, 0)
    async with holder.hold():
        with pytest.raises(errors.LockContention):
            async with contender.hold():
                pass
    async with contender.hold():
        pass


@pytest.mark.asyncio
async def test_timeout__other_handle(root: pathlib.Path) -> None:
    holder = WorkingTreeLock(root)
    contender = WorkingTreeLock(root, 0.2)
    async with holder.hold():
        with pytest.raises(errors.LockTimeout) as exc_info:
            async with contender.hold():
                pass
    assert exc_info.value.timeout == 0.2


@pytest.mark.asyncio
async def test_timeout__same_handle(root: pathlib.Path) -> None:
    lock = WorkingTreeLock(root, 0.1)
    acquired = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with lock.hold():
            acquired.set()
            await release.wait()

    task = asyncio.ensure_future(holder())
    await acquired.wait()
    with pytest.raises(errors.LockTimeout):
        async with lock.hold():
            pass
    release.set()
    await task


@pytest.mark.asyncio
async def test_waits_for_other_handle(root: pathlib.Path) -> None:
    holder = WorkingTreeLock(root)
    waiter = WorkingTreeLock(root)
    events = []

    async def wait_for_lock() -> None:
        async with waiter.hold():
            events.append("waiter")

    async with holder.hold():
        task = asyncio.ensure_future(wait_for_lock())
        await asyncio.sleep(0.1)
        events.append("holder")
    await task
    assert events == ["holder", "waiter"]


@pytest.mark.asyncio
async def test_cancelled_while_waiting(root: pathlib.Path) -> None:
    holder = WorkingTreeLock(root)
    waiter = WorkingTreeLock(root)

    async def wait_for_lock() -> None:
        async with waiter.hold():
            pass

    async with holder.hold():
        task = asyncio.ensure_future(wait_for_lock())
        await asyncio.sleep(0.1)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    # The abandoned acquisition gives the lock back once it succeeds.
    contender = WorkingTreeLock(root, 1)
    async with contender.hold():
        pass
