# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import typing

if typing.TYPE_CHECKING:
    from ._typing_compat import Self


class FeatureTable(typing.Mapping[str, typing.Tuple[str, ...]]):
    """
    A frozen mapping of feature name to the features it enables.

    Note: FeatureTable is hashable (possible since it is frozen), hence so are
    the records holding one.

    The insertion order of the features is kept, but (as for dict) it
    does not take part in equality.

    """

    def __init__(
        self,
        items: typing.Union[
            typing.Iterable[typing.Tuple[str, typing.Iterable[str]]],
            typing.Mapping[str, typing.Iterable[str]],
            None,
        ] = None,
    ):
        data = dict(items or ())
        self._data: typing.Dict[str, typing.Tuple[str, ...]] = {
            feature: tuple(enables) for feature, enables in data.items()
        }

    def __getitem__(self, key: str) -> typing.Tuple[str, ...]:
        return self._data[key]

    def __iter__(self) -> typing.Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({repr(tuple(self._data.items()))})"

    def __or__(self, other: typing.Mapping[str, typing.Iterable[str]]) -> Self:
        return type(self)({**self._data, **other})

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))
