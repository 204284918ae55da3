# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import typing

import pytest

from .. import model
from ..git import git_available

CHECKSUM = "d867001db0e2b6e0496f9fac96930e2d42233ecd3ca0413e0753d4c7695d289c"

IDENTITY = ("Index Tests", "index-tests@example.com")

DOWNLOAD = "https://example.com/api/v1/crates/{crate}/{version}/download"

requires_git = pytest.mark.skipif(
    not git_available(),
    reason="The git executable is not available",
)


def make_record(name: str = "foo", version: str = "0.1.0", **kwargs: typing.Any) -> model.Record:
    kwargs.setdefault("checksum", CHECKSUM)
    return model.Record(name=name, version=version, **kwargs)
