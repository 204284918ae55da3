# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import dataclasses
import typing

from . import errors, sharding

if typing.TYPE_CHECKING:
    from . import model
    from ._typing_compat import Self

CONFIG_FILENAME = "config.json"

CRATES_IO_INDEX = "https://github.com/rust-lang/crates.io-index"

# Any of these in the download template means the template is used as-is.
# Otherwise '/{crate}/{version}/download' is appended to it.
DOWNLOAD_MARKERS = (
    "{crate}",
    "{version}",
    "{prefix}",
    "{lowerprefix}",
    "{sha256-checksum}",
)


@dataclasses.dataclass(frozen=True)
class IndexConfig:
    """The configuration stored in ``config.json`` at the root of an index."""

    # The template of the URL from which package archives are downloaded.
    download: str
    api: typing.Optional[str] = None

    # The indexes of the other registries which dependencies may come from.
    allowed_registries: typing.Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not isinstance(self.download, str) or not self.download:
            raise errors.InvalidConfigurationError(
                "The download template ('dl') must be a non-empty string",
            )
        if self.api is not None and not isinstance(self.api, str):
            raise errors.InvalidConfigurationError("The API base ('api') must be a string")
        if isinstance(self.allowed_registries, str) or not all(
            isinstance(registry, str) for registry in self.allowed_registries
        ):
            raise errors.InvalidConfigurationError(
                "The allowed registries must be a list of URLs",
            )
        object.__setattr__(self, "allowed_registries", tuple(self.allowed_registries))

    def allow_crates_io(self) -> Self:
        return self.allow_registry(CRATES_IO_INDEX)

    def allow_registry(self, registry: str) -> Self:
        if registry in self.allowed_registries:
            return self
        return dataclasses.replace(
            self,
            allowed_registries=self.allowed_registries + (registry,),
        )

    def allows_registry(self, registry: typing.Optional[str]) -> bool:
        # A dependency without a registry comes from this index.
        return registry is None or registry in self.allowed_registries

    def download_url(self, record: model.Record) -> str:
        if not any(marker in self.download for marker in DOWNLOAD_MARKERS):
            return f"{self.download.rstrip('/')}/{record.name}/{record.version}/download"
        name_prefix = sharding.prefix(record.name)
        return (
            self.download.replace("{crate}", record.name)
            .replace("{version}", str(record.version))
            .replace("{prefix}", name_prefix)
            .replace("{lowerprefix}", name_prefix.lower())
            .replace("{sha256-checksum}", record.checksum)
        )
