# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
Atomic, recoverable mutations of the index working tree.

Each mutation goes through the following states::

    IDLE -> LOCKED -> STAGED -> COMMITTED [-> SYNCED]

Any failure (or cancellation) before COMMITTED rolls the working tree, the
git index and HEAD back to where they were, so that the repository never
holds a partial change. Once COMMITTED, the change is durable locally: a
failure to push it is reported (:class:`errors.SyncFailed`) but the commit
is kept, and it is the push that should be retried.

"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import pathlib
import typing

from . import errors, utils
from .git import VersionedStorage
from .lock import WorkingTreeLock

module_logger = logging.getLogger(__name__)

T = typing.TypeVar("T")


class TransactionState(enum.Enum):
    IDLE = "idle"
    LOCKED = "locked"
    STAGED = "staged"
    COMMITTED = "committed"
    SYNCED = "synced"
    FAILED = "failed"


@dataclasses.dataclass
class Transaction(typing.Generic[T]):
    message: str
    paths: typing.Tuple[pathlib.PurePosixPath, ...]
    state: TransactionState = TransactionState.IDLE
    history: typing.List[TransactionState] = dataclasses.field(
        default_factory=lambda: [TransactionState.IDLE],
    )
    revision: typing.Optional[str] = None
    result: typing.Optional[T] = None

    def transition(self, state: TransactionState) -> None:
        self.state = state
        self.history.append(state)


@dataclasses.dataclass(frozen=True)
class _Snapshot:
    path: pathlib.Path
    # None when the file did not exist.
    content: typing.Optional[bytes]


class Transactor:
    def __init__(
        self,
        root: pathlib.Path,
        repository: VersionedStorage,
        lock: WorkingTreeLock,
        *,
        remote: typing.Optional[str] = None,
        logger: logging.Logger = module_logger,
    ) -> None:
        self._root = root
        self._repository = repository
        self._lock = lock
        self._remote = remote
        self._logger = logger
        self._sync_lock = asyncio.Lock()
        self._last_transaction: typing.Optional[Transaction[typing.Any]] = None

    @property
    def last_transaction(self) -> typing.Optional[Transaction[typing.Any]]:
        """The most recently started transaction, whatever its outcome."""
        return self._last_transaction

    @property
    def remote(self) -> typing.Optional[str]:
        return self._remote

    async def run(
        self,
        message: str,
        paths: typing.Sequence[pathlib.PurePosixPath],
        write: typing.Callable[[], T],
        *,
        allow_empty: bool = False,
        sync: bool = False,
    ) -> Transaction[T]:
        """
        Run ``write`` (a blocking function modifying the given paths of the
        working tree) and commit the result with the given message.

        The exceptions raised by ``write`` propagate unchanged, after the
        rollback. ``OSError`` is reported as :class:`errors.StageFailed`.

        """
        transaction: Transaction[T] = Transaction(message, tuple(paths))
        self._last_transaction = transaction
        try:
            async with self._lock.hold():
                transaction.transition(TransactionState.LOCKED)
                await self._stage_and_commit(transaction, write, allow_empty)
        except BaseException:
            transaction.transition(TransactionState.FAILED)
            raise

        if sync and self._remote is not None:
            try:
                await self.sync(transaction.revision)
            except errors.SyncFailed:
                transaction.transition(TransactionState.FAILED)
                raise
            transaction.transition(TransactionState.SYNCED)
        return transaction

    async def _stage_and_commit(
        self,
        transaction: Transaction[T],
        write: typing.Callable[[], T],
        allow_empty: bool,
    ) -> None:
        snapshots = await asyncio.to_thread(self._take_snapshots, transaction.paths)
        head_before = await self._repository.head()
        try:
            try:
                transaction.result = await utils.run_to_completion(
                    asyncio.to_thread(write),
                )
            except OSError as e:
                raise errors.StageFailed(
                    f"Failed to write the change for '{transaction.message}': {e}",
                ) from e
            try:
                await self._repository.add_path(*transaction.paths)
            except errors.GitCommandError as e:
                raise errors.StageFailed(
                    f"Failed to stage the change for '{transaction.message}'",
                ) from e
            transaction.transition(TransactionState.STAGED)
            self._logger.debug(f"Staged {', '.join(map(str, transaction.paths))}")

            try:
                transaction.revision = await self._repository.commit(
                    transaction.message,
                    allow_empty=allow_empty,
                )
            except errors.GitCommandError as e:
                raise errors.CommitFailed(
                    f"Failed to commit '{transaction.message}'",
                ) from e
        except BaseException as e:
            self._logger.error(f"Rolling back '{transaction.message}': {e!r}")
            try:
                await utils.run_to_completion(
                    self._rollback(transaction.paths, snapshots, head_before),
                )
            except Exception:
                self._logger.exception(
                    f"Rollback of '{transaction.message}' failed, the working tree "
                    f"at {self._root} needs to be inspected",
                )
            raise

        transaction.transition(TransactionState.COMMITTED)
        self._logger.info(f"Committed '{transaction.message}' as {transaction.revision}")

    def _take_snapshots(
        self,
        paths: typing.Sequence[pathlib.PurePosixPath],
    ) -> typing.List[_Snapshot]:
        snapshots = []
        for path in paths:
            target = self._root / path
            try:
                snapshots.append(_Snapshot(target, target.read_bytes()))
            except FileNotFoundError:
                snapshots.append(_Snapshot(target, None))
        return snapshots

    def _restore_snapshots(self, snapshots: typing.Sequence[_Snapshot]) -> None:
        for snapshot in snapshots:
            if snapshot.content is None:
                snapshot.path.unlink(missing_ok=True)
                utils.remove_empty_parents(snapshot.path, self._root)
            elif not snapshot.path.exists() or snapshot.path.read_bytes() != snapshot.content:
                utils.atomic_write(snapshot.path, snapshot.content)

    async def _rollback(
        self,
        paths: typing.Sequence[pathlib.PurePosixPath],
        snapshots: typing.Sequence[_Snapshot],
        head_before: typing.Optional[str],
    ) -> None:
        if await self._repository.head() != head_before:
            await self._repository.reset_soft(head_before)
        await self._repository.unstage(*paths)
        await asyncio.to_thread(self._restore_snapshots, snapshots)

    async def sync(self, revision: typing.Optional[str] = None) -> None:
        """Push the current branch to the remote."""
        if self._remote is None:
            raise errors.SyncFailed("No remote is configured for the index", revision)
        async with self._sync_lock:
            try:
                await self._repository.push(self._remote)
            except errors.GitCommandError as e:
                self._logger.error(f"Failed to push to '{self._remote}': {e}")
                raise errors.SyncFailed(
                    f"Failed to push to '{self._remote}'. The change is committed "
                    "locally, retry the sync.",
                    revision,
                ) from e
        self._logger.info(f"Pushed to '{self._remote}'")

    async def pull(self) -> None:
        """Fast-forward the working tree to the remote branch."""
        if self._remote is None:
            raise errors.SyncFailed("No remote is configured for the index")
        async with self._lock.hold():
            try:
                await self._repository.pull(self._remote)
            except errors.GitCommandError as e:
                raise errors.SyncFailed(
                    f"Failed to fast-forward from '{self._remote}'",
                ) from e
        self._logger.info(f"Pulled from '{self._remote}'")
