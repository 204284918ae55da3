# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import asyncio
import contextlib
import logging
import pathlib
import typing

import filelock

from . import errors

module_logger = logging.getLogger(__name__)

LOCK_FILENAME = "crate-index.lock"


class WorkingTreeLock:
    """
    Exclusive access to a working tree.

    Within a process, writers using the same lock instance queue on an
    :class:`asyncio.Lock`. Across processes, an advisory file lock (stored
    inside the ``.git`` directory, hence never committed) is held as well.

    The timeout controls what happens when the lock is busy:

     * ``None``: wait for as long as it takes
     * ``0``: fail immediately with :class:`errors.LockContention`
     * a positive number: wait at most that many seconds, then fail with
       :class:`errors.LockTimeout`

    """

    def __init__(
        self,
        root: pathlib.Path,
        timeout: typing.Optional[float] = None,
        *,
        logger: logging.Logger = module_logger,
    ) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError("The lock timeout cannot be negative")
        self._root = root
        self._timeout = timeout
        self._logger = logger
        self._local = asyncio.Lock()
        self._file_lock = filelock.FileLock(
            str(root / ".git" / LOCK_FILENAME),
            thread_local=False,
        )

    @property
    def timeout(self) -> typing.Optional[float]:
        return self._timeout

    @contextlib.asynccontextmanager
    async def hold(self) -> typing.AsyncIterator[None]:
        loop = asyncio.get_running_loop()
        deadline = None if self._timeout is None else loop.time() + self._timeout
        await self._acquire_local()
        try:
            remaining = None if deadline is None else max(0.0, deadline - loop.time())
            await self._acquire_file(remaining)
            self._logger.debug(f"Acquired the working tree lock of {self._root}")
            try:
                yield
            finally:
                self._file_lock.release()
                self._logger.debug(f"Released the working tree lock of {self._root}")
        finally:
            self._local.release()

    async def _acquire_local(self) -> None:
        if self._timeout is None:
            await self._local.acquire()
        elif self._timeout == 0:
            if self._local.locked():
                raise errors.LockContention(self._root)
            await self._local.acquire()
        else:
            try:
                await asyncio.wait_for(self._local.acquire(), self._timeout)
            except asyncio.TimeoutError as e:
                raise errors.LockTimeout(self._root, self._timeout) from e

    async def _acquire_file(self, timeout: typing.Optional[float]) -> None:
        acquiring = asyncio.ensure_future(
            asyncio.to_thread(
                self._file_lock.acquire,
                timeout=-1 if timeout is None else timeout,
                poll_interval=0.05,
            ),
        )
        try:
            await asyncio.shield(acquiring)
        except asyncio.CancelledError:
            # The thread cannot be interrupted: give the lock back as soon as
            # it is obtained.
            acquiring.add_done_callback(self._release_abandoned)
            raise
        except filelock.Timeout as e:
            if self._timeout == 0:
                raise errors.LockContention(self._root) from e
            assert self._timeout is not None
            raise errors.LockTimeout(self._root, self._timeout) from e

    def _release_abandoned(self, acquiring: asyncio.Future[typing.Any]) -> None:
        if not acquiring.cancelled() and acquiring.exception() is None:
            self._file_lock.release()
