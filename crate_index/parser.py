# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import json
import pathlib
import typing

from . import config, errors, model, utils


def parse_dependency(raw: typing.Any) -> model.Dependency:
    if not isinstance(raw, typing.Mapping):
        raise errors.InvalidDependency(repr(raw), "a dependency must be a JSON object")
    name = raw.get("name")
    req = raw.get("req")
    if name is None or req is None:
        raise errors.InvalidDependency(
            str(name),
            "a dependency requires both 'name' and 'req'",
        )
    return model.Dependency(
        name=name,
        req=req,
        features=raw.get("features") or (),
        optional=raw.get("optional", False),
        default_features=raw.get("default_features", True),
        target=raw.get("target"),
        # Older indexes may leave the kind out.
        kind=raw.get("kind") or model.DependencyKind.NORMAL,
        registry=raw.get("registry"),
        package=raw.get("package"),
    )


def validate_record(raw: typing.Any) -> model.Record:
    """
    Build a record from its raw (JSON) fields, raising a ValidationError
    subclass for anything which isn't acceptable in the index.
    """
    if not isinstance(raw, typing.Mapping):
        raise errors.ValidationError("A record must be a JSON object")
    for required in ("name", "vers", "cksum"):
        if required not in raw:
            raise errors.ValidationError(f"A record requires the '{required}' field")

    deps = raw.get("deps")
    if deps is None:
        deps = []
    if not isinstance(deps, (list, tuple)):
        raise errors.InvalidDependency("<deps>", "'deps' must be a list")
    yanked = raw.get("yanked")
    return model.Record(
        name=raw["name"],
        version=raw["vers"],
        checksum=raw["cksum"],
        dependencies=tuple(parse_dependency(dep) for dep in deps),
        features=raw.get("features") or {},
        yanked=False if yanked is None else yanked,
        links=raw.get("links"),
    )


def parse_record_line(
    line: str,
    path: typing.Optional[pathlib.Path] = None,
    lineno: typing.Optional[int] = None,
) -> model.Record:
    location = "" if path is None else f" in {path}"
    if lineno is not None:
        location += f" at line {lineno}"
    if not line.strip():
        raise errors.CorruptIndex(f"Empty record{location}")
    try:
        return validate_record(json.loads(line))
    except (json.JSONDecodeError, errors.ValidationError) as e:
        raise errors.CorruptIndex(f"Invalid record{location}: {e}") from e


def parse_config(raw: typing.Mapping[str, typing.Any]) -> config.IndexConfig:
    if "dl" not in raw:
        raise errors.InvalidConfigurationError(
            "The configuration requires a download template ('dl')",
        )
    allowed_registries = raw.get("allowed-registries") or ()
    if not isinstance(allowed_registries, (list, tuple)):
        raise errors.InvalidConfigurationError(
            "'allowed-registries' must be a list of URLs",
        )
    return config.IndexConfig(
        download=raw["dl"],
        api=raw.get("api"),
        allowed_registries=tuple(allowed_registries),
    )


def load_config(root: pathlib.Path) -> config.IndexConfig:
    return parse_config(utils.load_config_json(root / config.CONFIG_FILENAME))
