# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import asyncio
import logging
import os
import pathlib
import shutil
import typing

from . import errors, utils
from ._typing_compat import override

if typing.TYPE_CHECKING:
    from ._typing_compat import Self

module_logger = logging.getLogger(__name__)


class VersionedStorage(typing.Protocol):
    """
    The operations the transaction layer needs from the repository holding
    the index. Paths are relative to the root of the working tree.
    """

    async def add_path(self, *paths: pathlib.PurePath) -> None: ...

    async def commit(self, message: str, *, allow_empty: bool = False) -> str: ...

    async def head(self) -> typing.Optional[str]: ...

    async def reset_soft(self, revision: typing.Optional[str]) -> None: ...

    async def unstage(self, *paths: pathlib.PurePath) -> None: ...

    async def push(self, remote: str) -> None: ...

    async def pull(self, remote: str) -> None: ...


def git_available() -> bool:
    return shutil.which("git") is not None


class Repository(VersionedStorage):
    """A git working tree, driven through the ``git`` executable."""

    def __init__(
        self,
        root: pathlib.Path,
        *,
        logger: logging.Logger = module_logger,
    ) -> None:
        self._root = root
        self._logger = logger

    @property
    def root(self) -> pathlib.Path:
        return self._root

    @staticmethod
    def exists(root: pathlib.Path) -> bool:
        return (root / ".git").exists()

    @classmethod
    async def init(
        cls,
        root: pathlib.Path,
        *,
        logger: logging.Logger = module_logger,
    ) -> Self:
        root.mkdir(parents=True, exist_ok=True)
        repo = cls(root, logger=logger)
        await repo._run("init", "-q")
        return repo

    @classmethod
    def open(
        cls,
        root: pathlib.Path,
        *,
        logger: logging.Logger = module_logger,
    ) -> Self:
        if not cls.exists(root):
            raise errors.IndexNotFound(root)
        return cls(root, logger=logger)

    async def _run(self, *args: str, check: bool = True) -> typing.Tuple[int, str]:
        env = dict(os.environ)
        # Never wait for credentials on a terminal.
        env["GIT_TERMINAL_PROMPT"] = "0"
        self._logger.debug(f"Running 'git {' '.join(args)}' in {self._root}")
        process = await asyncio.create_subprocess_exec(
            "git",
            *args,
            cwd=self._root,
            env=env,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
        # A started git command always runs to completion, even when cancelled.
        stdout, stderr = await utils.run_to_completion(process.communicate())
        assert process.returncode is not None
        if check and process.returncode != 0:
            raise errors.GitCommandError(
                args,
                process.returncode,
                stderr.decode(errors="replace"),
            )
        return process.returncode, stdout.decode(errors="replace")

    @override
    async def add_path(self, *paths: pathlib.PurePath) -> None:
        await self._run("add", "--", *(str(path) for path in paths))

    @override
    async def commit(self, message: str, *, allow_empty: bool = False) -> str:
        args = ["-c", "commit.gpgsign=false", "commit", "-q", "-m", message]
        if allow_empty:
            args.append("--allow-empty")
        await self._run(*args)
        revision = await self.head()
        assert revision is not None
        return revision

    @override
    async def head(self) -> typing.Optional[str]:
        returncode, stdout = await self._run(
            "rev-parse", "--verify", "-q", "HEAD", check=False,
        )
        if returncode != 0:
            # No commit yet.
            return None
        return stdout.strip()

    @override
    async def reset_soft(self, revision: typing.Optional[str]) -> None:
        if revision is None:
            await self._run("update-ref", "-d", "HEAD")
        else:
            await self._run("reset", "-q", "--soft", revision)

    @override
    async def unstage(self, *paths: pathlib.PurePath) -> None:
        str_paths = [str(path) for path in paths]
        if await self.head() is None:
            await self._run("rm", "--cached", "-r", "-q", "--ignore-unmatch", "--", *str_paths)
        else:
            await self._run("reset", "-q", "--", *str_paths)

    async def add_remote(self, name: str, url: str) -> None:
        await self._run("remote", "add", name, url)

    async def has_remote(self, name: str) -> bool:
        _, stdout = await self._run("remote")
        return name in stdout.split()

    async def set_identity(self, name: str, email: str) -> None:
        await self._run("config", "user.name", name)
        await self._run("config", "user.email", email)

    async def current_branch(self) -> str:
        _, stdout = await self._run("symbolic-ref", "--short", "HEAD")
        return stdout.strip()

    @override
    async def push(self, remote: str) -> None:
        branch = await self.current_branch()
        await self._run("push", "-q", remote, f"HEAD:refs/heads/{branch}")

    @override
    async def pull(self, remote: str) -> None:
        branch = await self.current_branch()
        await self._run("pull", "-q", "--ff-only", remote, branch)

    async def log(self) -> typing.List[str]:
        """The subjects of the commits reachable from HEAD, newest first."""
        if await self.head() is None:
            return []
        _, stdout = await self._run("log", "--format=%s")
        return stdout.splitlines()
