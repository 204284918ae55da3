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

from ..index import Index
from . import DOWNLOAD, IDENTITY


@pytest.fixture
def bare_remote(tmp_path: pathlib.Path) -> pathlib.Path:
    remote = tmp_path / "remote.git"
    subprocess.run(
        ["git", "init", "-q", "--bare", str(remote)],
        check=True,
    )
    return remote


@pytest_asyncio.fixture
async def index(tmp_path: pathlib.Path) -> Index:
    return await Index.initialise(tmp_path / "index", DOWNLOAD, identity=IDENTITY)
