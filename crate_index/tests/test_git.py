# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import pathlib
import subprocess

import pytest
import pytest_asyncio

from .. import errors
from ..git import Repository
from . import IDENTITY, requires_git

pytestmark = requires_git


def clone(remote: pathlib.Path, destination: pathlib.Path) -> pathlib.Path:
    subprocess.run(["git", "clone", "-q", str(remote), str(destination)], check=True)
    for key, value in zip(["user.name", "user.email"], IDENTITY):
        subprocess.run(["git", "-C", str(destination), "config", key, value], check=True)
    return destination


def commit_file(root: pathlib.Path, name: str, content: str) -> None:
    (root / name).write_text(content)
    subprocess.run(["git", "-C", str(root), "add", name], check=True)
    subprocess.run(["git", "-C", str(root), "commit", "-q", "-m", f"add {name}"], check=True)


@pytest_asyncio.fixture
async def repository(tmp_path: pathlib.Path) -> Repository:
    repo = await Repository.init(tmp_path / "repo")
    await repo.set_identity(*IDENTITY)
    return repo


@pytest.mark.asyncio
async def test_init(repository: Repository) -> None:
    assert Repository.exists(repository.root)
    assert await repository.head() is None
    assert await repository.log() == []


def test_open__missing(tmp_path: pathlib.Path) -> None:
    with pytest.raises(errors.IndexNotFound):
        Repository.open(tmp_path)


@pytest.mark.asyncio
async def test_commit(repository: Repository) -> None:
    (repository.root / "file").write_text("content")
    await repository.add_path(pathlib.PurePosixPath("file"))
    revision = await repository.commit("first commit")

    assert await repository.head() == revision
    assert await repository.log() == ["first commit"]


@pytest.mark.asyncio
async def test_commit__nothing_to_commit(repository: Repository) -> None:
    (repository.root / "file").write_text("content")
    await repository.add_path(pathlib.PurePosixPath("file"))
    first = await repository.commit("first commit")

    with pytest.raises(errors.GitCommandError) as exc_info:
        await repository.commit("nothing")
    assert exc_info.value.command[-1] == "nothing"

    second = await repository.commit("empty", allow_empty=True)
    assert second != first
    assert await repository.log() == ["empty", "first commit"]


@pytest.mark.asyncio
async def test_reset_soft_and_unstage(repository: Repository) -> None:
    path = pathlib.PurePosixPath("file")
    (repository.root / path).write_text("content")
    await repository.add_path(path)
    await repository.commit("first commit")

    await repository.reset_soft(None)
    assert await repository.head() is None
    await repository.unstage(path)

    _, status = await repository._run("status", "--porcelain")
    assert status == "?? file\n"


@pytest.mark.asyncio
async def test_unstage__with_head(repository: Repository) -> None:
    (repository.root / "first").write_text("content")
    await repository.add_path(pathlib.PurePosixPath("first"))
    await repository.commit("first commit")

    (repository.root / "second").write_text("content")
    await repository.add_path(pathlib.PurePosixPath("second"))
    await repository.unstage(pathlib.PurePosixPath("second"))

    _, status = await repository._run("status", "--porcelain")
    assert status == "?? second\n"


@pytest.mark.asyncio
async def test_remote(repository: Repository, bare_remote: pathlib.Path) -> None:
    assert not await repository.has_remote("origin")
    await repository.add_remote("origin", str(bare_remote))
    assert await repository.has_remote("origin")


@pytest.mark.asyncio
async def test_push_and_pull(
    repository: Repository,
    bare_remote: pathlib.Path,
    tmp_path: pathlib.Path,
) -> None:
    await repository.add_remote("origin", str(bare_remote))
    commit_file(repository.root, "first", "content")
    await repository.push("origin")
    # Pushing what the remote already has is fine.
    await repository.push("origin")

    other = clone(bare_remote, tmp_path / "other")
    commit_file(other, "second", "content")
    subprocess.run(["git", "-C", str(other), "push", "-q"], check=True)

    await repository.pull("origin")
    assert await repository.log() == ["add second", "add first"]
    assert (repository.root / "second").exists()


@pytest.mark.asyncio
async def test_pull__diverged(
    repository: Repository,
    bare_remote: pathlib.Path,
    tmp_path: pathlib.Path,
) -> None:
    await repository.add_remote("origin", str(bare_remote))
    commit_file(repository.root, "first", "content")
    await repository.push("origin")

    other = clone(bare_remote, tmp_path / "other")
    commit_file(other, "second", "content")
    subprocess.run(["git", "-C", str(other), "push", "-q"], check=True)
    commit_file(repository.root, "third", "content")

    with pytest.raises(errors.GitCommandError):
        await repository.pull("origin")
    with pytest.raises(errors.GitCommandError):
        await repository.push("origin")
