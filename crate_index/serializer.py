# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

from functools import singledispatch
import json
import typing

from . import model, versions

if typing.TYPE_CHECKING:
    from . import config


@singledispatch
def to_json_serializable(obj: typing.Any) -> typing.Any:
    """
    A function which can turn an object into a JSON serializable structure.

    Nested types can remain in a non-serializable state, so long as it can
    also be converted via to_json_serializable too.
    """
    raise TypeError("No JSON serializer override registered")


# Register the obvious JSON types.
for input_type in [bool, int, str, float, type(None), dict, tuple, list]:

    @to_json_serializable.register(input_type)
    def _(obj: typing.Any) -> typing.Any:
        return obj


@to_json_serializable.register
def _(obj: versions.Version) -> typing.Any:
    return str(obj)


@to_json_serializable.register
def _(obj: versions.VersionReq) -> typing.Any:
    return str(obj)


@to_json_serializable.register
def _(obj: model.DependencyKind) -> typing.Any:
    return obj.value


def dependency_to_dict(dependency: model.Dependency) -> typing.Dict[str, typing.Any]:
    dependency_dict: typing.Dict[str, typing.Any] = {
        "name": dependency.name,
        "req": dependency.req,
    }
    if dependency.features:
        dependency_dict["features"] = list(dependency.features)
    dependency_dict["optional"] = dependency.optional
    dependency_dict["default_features"] = dependency.default_features
    if dependency.target is not None:
        dependency_dict["target"] = dependency.target
    dependency_dict["kind"] = dependency.kind
    if dependency.registry is not None:
        dependency_dict["registry"] = dependency.registry
    if dependency.package is not None:
        dependency_dict["package"] = dependency.package
    return dependency_dict


def record_to_dict(record: model.Record) -> typing.Dict[str, typing.Any]:
    # Empty collections, a false yanked flag and unset values are left out.
    record_dict: typing.Dict[str, typing.Any] = {
        "name": record.name,
        "vers": record.version,
    }
    if record.dependencies:
        record_dict["deps"] = [dependency_to_dict(dep) for dep in record.dependencies]
    record_dict["cksum"] = record.checksum
    if record.features:
        record_dict["features"] = {
            feature: list(enables) for feature, enables in record.features.items()
        }
    if record.yanked:
        record_dict["yanked"] = True
    if record.links is not None:
        record_dict["links"] = record.links
    return record_dict


def serialize_record(record: model.Record) -> str:
    """
    Serialize a record to the single line stored in a package file (without
    the trailing newline). The output is stable: the same record always
    gives the same bytes.
    """
    return json.dumps(
        record_to_dict(record),
        default=to_json_serializable,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def serialize_config(index_config: config.IndexConfig) -> str:
    config_dict: typing.Dict[str, typing.Any] = {"dl": index_config.download}
    if index_config.api is not None:
        config_dict["api"] = index_config.api
    if index_config.allowed_registries:
        config_dict["allowed-registries"] = list(index_config.allowed_registries)
    return json.dumps(config_dict, indent=2) + "\n"
