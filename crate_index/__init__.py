# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
A git-backed crate index: the registry of the published versions of crates,
their checksums, dependencies and features, where every change is recorded
as a single commit.
"""

from ._version import version as __version__  # noqa
from .blocking import BlockingIndex  # noqa
from .index import Index  # noqa
from .model import Dependency, DependencyKind, Record  # noqa
from .versions import Version, VersionReq  # noqa

__all__ = [
    "__version__",
    "BlockingIndex",
    "Dependency",
    "DependencyKind",
    "Index",
    "Record",
    "Version",
    "VersionReq",
]
