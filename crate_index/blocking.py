# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
A blocking interface to an :class:`index.Index`, for callers which are not
running an event loop.

Each call drives the asynchronous implementation to completion on the
calling thread. Calls made from several threads are serialized.

"""

from __future__ import annotations

import asyncio
import pathlib
import threading
import types
import typing

from . import model
from .index import Index, StrPath, VersionLike

if typing.TYPE_CHECKING:
    from ._typing_compat import Self

T = typing.TypeVar("T")


class BlockingIndex:
    def __init__(self, index: Index, runner: asyncio.Runner) -> None:
        self._index = index
        self._runner = runner
        self._thread_lock = threading.Lock()

    @classmethod
    def initialise(cls, root: StrPath, download: str, **kwargs: typing.Any) -> Self:
        """See :meth:`Index.initialise` for the accepted arguments."""
        runner = asyncio.Runner()
        try:
            index = runner.run(Index.initialise(root, download, **kwargs))
        except BaseException:
            runner.close()
            raise
        return cls(index, runner)

    @classmethod
    def open(cls, root: StrPath, **kwargs: typing.Any) -> Self:
        """See :meth:`Index.open` for the accepted arguments."""
        runner = asyncio.Runner()
        try:
            index = runner.run(Index.open(root, **kwargs))
        except BaseException:
            runner.close()
            raise
        return cls(index, runner)

    def _run(self, coro: typing.Coroutine[typing.Any, typing.Any, T]) -> T:
        with self._thread_lock:
            return self._runner.run(coro)

    def close(self) -> None:
        with self._thread_lock:
            self._runner.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: typing.Optional[typing.Type[BaseException]],
        exc_value: typing.Optional[BaseException],
        traceback: typing.Optional[types.TracebackType],
    ) -> None:
        self.close()

    @property
    def index(self) -> Index:
        """The underlying asynchronous index."""
        return self._index

    @property
    def root(self) -> pathlib.Path:
        return self._index.root

    @property
    def download(self) -> str:
        return self._index.download

    @property
    def api(self) -> typing.Optional[str]:
        return self._index.api

    @property
    def allowed_registries(self) -> typing.Tuple[str, ...]:
        return self._index.allowed_registries

    def head(self) -> typing.Optional[str]:
        return self._run(self._index.head())

    def insert(
        self,
        record: typing.Union[model.Record, typing.Mapping[str, typing.Any]],
        *,
        sync: bool = False,
    ) -> str:
        return self._run(self._index.insert(record, sync=sync))

    def yank(self, name: str, version: VersionLike, *, sync: bool = False) -> str:
        return self._run(self._index.yank(name, version, sync=sync))

    def unyank(self, name: str, version: VersionLike, *, sync: bool = False) -> str:
        return self._run(self._index.unyank(name, version, sync=sync))

    @typing.overload
    def query(self, name: str) -> typing.Tuple[model.Record, ...]: ...

    @typing.overload
    def query(self, name: str, version: VersionLike) -> typing.Optional[model.Record]: ...

    def query(
        self,
        name: str,
        version: typing.Optional[VersionLike] = None,
    ) -> typing.Union[typing.Tuple[model.Record, ...], model.Record, None]:
        if version is None:
            return self._run(self._index.query(name))
        return self._run(self._index.query(name, version))

    def contains(self, name: str) -> bool:
        return self._index.contains(name)

    def package_names(self) -> typing.Set[str]:
        return self._run(self._index.package_names())

    def download_url(self, record: model.Record) -> str:
        return self._index.download_url(record)

    def sync(self) -> None:
        self._run(self._index.sync())

    def pull(self) -> None:
        self._run(self._index.pull())
