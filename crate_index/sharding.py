# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

"""
Placement of the package files within the index tree.

Package files are spread over directories derived from the first characters
of the (lowercased) name, so that no single directory grows unboundedly:

 * names of length 1 live in ``1/``
 * names of length 2 live in ``2/``
 * names of length 3 live in ``3/<first character>/``
 * longer names live in ``<first two characters>/<next two characters>/``

"""

from __future__ import annotations

import pathlib


def prefix(name: str) -> str:
    """
    The directory part of the location of the given name's package file.
    The case of the name is kept (see ``shard_path`` for the on-disk form).
    """
    if len(name) == 1:
        return "1"
    if len(name) == 2:
        return "2"
    if len(name) == 3:
        return f"3/{name[0]}"
    return f"{name[0:2]}/{name[2:4]}"


def shard_path(name: str) -> pathlib.PurePosixPath:
    name = name.lower()
    return pathlib.PurePosixPath(prefix(name), name)
