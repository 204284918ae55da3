# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import asyncio
import functools
import logging
import os
import pathlib
import typing

from . import (
    config,
    errors,
    model,
    package_file,
    parser,
    serializer,
    sharding,
    utils,
    validation,
)
from .git import Repository
from .lock import WorkingTreeLock
from .transaction import Transactor
from .versions import Version

if typing.TYPE_CHECKING:
    from ._typing_compat import Self

module_logger = logging.getLogger(__name__)

StrPath = typing.Union[str, "os.PathLike[str]"]
VersionLike = typing.Union[str, Version]


class Index:
    """
    A crate index: a git repository holding the index configuration and one
    package file per crate.

    Use :meth:`initialise` to create a new index, or :meth:`open` to use an
    existing one. Mutations (:meth:`insert`, :meth:`yank`, :meth:`unyank`)
    each result in exactly one commit, or in no change at all when they
    fail. Queries read the working tree directly and never wait for a
    mutation to complete.

    """

    def __init__(
        self,
        root: pathlib.Path,
        index_config: config.IndexConfig,
        repository: Repository,
        *,
        remote: typing.Optional[str] = None,
        lock_timeout: typing.Optional[float] = None,
        logger: logging.Logger = module_logger,
    ) -> None:
        self._root = root
        self._config = index_config
        self._repository = repository
        self._logger = logger
        self._transactor = Transactor(
            root,
            repository,
            WorkingTreeLock(root, lock_timeout, logger=logger),
            remote=remote,
            logger=logger,
        )
        # Canonical name -> lowercase name of the crates in the index.
        self._packages: typing.Dict[str, str] = {}

    @classmethod
    async def initialise(
        cls,
        root: StrPath,
        download: str,
        *,
        api: typing.Optional[str] = None,
        allowed_registries: typing.Iterable[str] = (),
        origin: typing.Optional[str] = None,
        identity: typing.Optional[typing.Tuple[str, str]] = None,
        lock_timeout: typing.Optional[float] = None,
        logger: logging.Logger = module_logger,
    ) -> Self:
        """
        Create a new index at ``root``, with an initial commit holding the
        index configuration.

        Parameters
        ----------
        root:
            The directory of the working tree. It is created if needed.
        download:
            The template of the URL from which the crates can be downloaded.
            See :meth:`config.IndexConfig.download_url`.
        api:
            The base URL of the registry API, if any.
        allowed_registries:
            The indexes which dependencies of the crates may come from, in
            addition to this index.
        origin:
            The URL of a remote repository, registered as ``origin``, which
            mutations may be synchronised with.
        identity:
            The (name, email) used as the author of the commits. When
            unset, the git configuration of the environment is used.
        lock_timeout:
            See :class:`lock.WorkingTreeLock`.

        """
        root = pathlib.Path(root)
        if Repository.exists(root):
            raise errors.IndexAlreadyExists(root)
        index_config = config.IndexConfig(
            download=download,
            api=api,
            allowed_registries=tuple(allowed_registries),
        )

        repository = await Repository.init(root, logger=logger)
        if identity is not None:
            await repository.set_identity(*identity)
        if origin is not None:
            await repository.add_remote("origin", origin)

        index = cls(
            root,
            index_config,
            repository,
            remote=None if origin is None else "origin",
            lock_timeout=lock_timeout,
            logger=logger,
        )
        content = serializer.serialize_config(index_config).encode("utf-8")
        await index._transactor.run(
            "Initial commit",
            [pathlib.PurePosixPath(config.CONFIG_FILENAME)],
            functools.partial(utils.atomic_write, root / config.CONFIG_FILENAME, content),
        )
        logger.info(f"Initialised a new index at {root}")
        return index

    @classmethod
    async def open(
        cls,
        root: StrPath,
        *,
        remote: typing.Optional[str] = "origin",
        lock_timeout: typing.Optional[float] = None,
        logger: logging.Logger = module_logger,
    ) -> Self:
        """
        Open an existing index. Mutations are pushed to ``remote`` when
        requested, provided the repository has a remote of that name.
        """
        root = pathlib.Path(root)
        repository = Repository.open(root, logger=logger)
        try:
            index_config = parser.load_config(root)
        except errors.InvalidConfigurationError as e:
            raise errors.CorruptIndex(
                f"The configuration of the index at {root} is invalid: {e}",
            ) from e

        if remote is not None and not await repository.has_remote(remote):
            logger.debug(f"The index at {root} has no remote named '{remote}'")
            remote = None

        index = cls(
            root,
            index_config,
            repository,
            remote=remote,
            lock_timeout=lock_timeout,
            logger=logger,
        )
        await index._load_package_names()
        return index

    async def _load_package_names(self) -> None:
        names = await asyncio.to_thread(package_file.package_names, self._root)
        self._packages = {validation.canonical_name(name): name for name in names}

    @property
    def root(self) -> pathlib.Path:
        return self._root

    @property
    def config(self) -> config.IndexConfig:
        return self._config

    @property
    def download(self) -> str:
        return self._config.download

    @property
    def api(self) -> typing.Optional[str]:
        return self._config.api

    @property
    def allowed_registries(self) -> typing.Tuple[str, ...]:
        return self._config.allowed_registries

    @property
    def remote(self) -> typing.Optional[str]:
        return self._transactor.remote

    async def head(self) -> typing.Optional[str]:
        """The revision of the latest commit of the index."""
        return await self._repository.head()

    async def insert(
        self,
        record: typing.Union[model.Record, typing.Mapping[str, typing.Any]],
        *,
        sync: bool = False,
    ) -> str:
        """
        Add a new version of a crate to the index, and return the revision
        of the commit recording it.

        The record may also be given as its raw JSON fields, in which case
        it is validated first.

        """
        if not isinstance(record, model.Record):
            record = parser.validate_record(record)
        for dependency in record.dependencies:
            if not self._config.allows_registry(dependency.registry):
                raise errors.InvalidDependency(
                    dependency.name,
                    f"the registry '{dependency.registry}' is not allowed by this index",
                )

        path = sharding.shard_path(record.name)
        transaction = await self._transactor.run(
            f"updating crate `{record.name}#{record.version}`",
            [path],
            functools.partial(self._insert, path, record),
            sync=sync,
        )
        assert transaction.revision is not None
        return transaction.revision

    def _insert(self, path: pathlib.PurePosixPath, record: model.Record) -> model.Record:
        # Runs while holding the working tree lock.
        existing = self._packages.get(record.canonical_name)
        if (
            existing is not None
            and existing != record.normalized_name
            and (self._root / sharding.shard_path(existing)).exists()
        ):
            raise errors.InvalidName(
                record.name,
                f"the name is too similar to the existing crate '{existing}'",
            )
        written = package_file.append_or_update(self._root / path, package_file.Insert(record))
        self._packages[record.canonical_name] = record.normalized_name
        return written

    async def yank(self, name: str, version: VersionLike, *, sync: bool = False) -> str:
        """
        Mark a version of a crate as yanked, and return the revision of the
        commit recording it. Yanking an already yanked version is not an
        error: it is recorded as an (empty) commit.
        """
        return await self._set_yanked(name, version, True, sync)

    async def unyank(self, name: str, version: VersionLike, *, sync: bool = False) -> str:
        """The reverse of :meth:`yank`."""
        return await self._set_yanked(name, version, False, sync)

    async def _set_yanked(
        self,
        name: str,
        version: VersionLike,
        yanked: bool,
        sync: bool,
    ) -> str:
        validation.check_name(name)
        if not isinstance(version, Version):
            version = Version.parse(version)

        if yanked:
            message = f"yanking crate `{name}#{version}`"
            mutator = model.Record.yank
        else:
            message = f"unyanking crate `{name}#{version}`"
            mutator = model.Record.unyank

        path = sharding.shard_path(name)
        transaction = await self._transactor.run(
            message,
            [path],
            functools.partial(
                package_file.append_or_update,
                self._root / path,
                package_file.Patch(name, version, mutator),
            ),
            allow_empty=True,
            sync=sync,
        )
        assert transaction.revision is not None
        return transaction.revision

    @typing.overload
    async def query(self, name: str) -> typing.Tuple[model.Record, ...]: ...

    @typing.overload
    async def query(
        self,
        name: str,
        version: VersionLike,
    ) -> typing.Optional[model.Record]: ...

    async def query(
        self,
        name: str,
        version: typing.Optional[VersionLike] = None,
    ) -> typing.Union[typing.Tuple[model.Record, ...], model.Record, None]:
        """
        All the published versions of a crate, in the order they were
        published, or the given version only (None if it isn't published).
        The name is not case-sensitive.
        """
        validation.check_name(name)
        records = await asyncio.to_thread(
            package_file.read_all,
            self._root / sharding.shard_path(name),
        )
        if version is None:
            return records
        if not isinstance(version, Version):
            version = Version.parse(version)
        for record in records:
            if record.version.precedence == version.precedence:
                return record
        return None

    def contains(self, name: str) -> bool:
        validation.check_name(name)
        return (self._root / sharding.shard_path(name)).is_file()

    async def package_names(self) -> typing.Set[str]:
        """The (lowercase) names of all the crates in the index."""
        return await asyncio.to_thread(package_file.package_names, self._root)

    def download_url(self, record: model.Record) -> str:
        return self._config.download_url(record)

    async def sync(self) -> None:
        """Push the local commits to the remote of the index."""
        await self._transactor.sync(await self.head())

    async def pull(self) -> None:
        """
        Fast-forward the index to the state of its remote. Raises
        :class:`errors.SyncFailed` if the histories have diverged.
        """
        await self._transactor.pull()
        await self._load_package_names()
