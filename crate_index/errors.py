# Copyright (C) 2023, CERN
# This software is distributed under the terms of the MIT
# licence, copied verbatim in the file "LICENSE".
# In applying this license, CERN does not waive the privileges and immunities
# granted to it by virtue of its status as Intergovernmental Organization
# or submit itself to any jurisdiction.

from __future__ import annotations

import typing


class CrateIndexError(Exception):
    pass


class ValidationError(CrateIndexError, ValueError):
    pass


class InvalidName(ValidationError):
    msg_format = "Crate name '{name}' is invalid: {reason}"

    def __init__(self, name: str, reason: str, *args: object) -> None:
        self.name = name
        self.reason = reason
        msg = self.msg_format.format(name=name, reason=reason)
        super().__init__(msg, *args)


class InvalidVersion(ValidationError):
    msg_format = "Version '{version}' is not a valid semantic version: {reason}"

    def __init__(self, version: str, reason: str, *args: object) -> None:
        self.version = version
        self.reason = reason
        msg = self.msg_format.format(version=version, reason=reason)
        super().__init__(msg, *args)


class InvalidChecksum(ValidationError):
    msg_format = "Checksum '{checksum}' is invalid: expected 64 hexadecimal characters"

    def __init__(self, checksum: str, *args: object) -> None:
        self.checksum = checksum
        msg = self.msg_format.format(checksum=checksum)
        super().__init__(msg, *args)


class InvalidDependency(ValidationError):
    msg_format = "Dependency '{name}' is invalid: {reason}"

    def __init__(self, name: str, reason: str, *args: object) -> None:
        self.name = name
        self.reason = reason
        msg = self.msg_format.format(name=name, reason=reason)
        super().__init__(msg, *args)


class DuplicateVersion(CrateIndexError, ValueError):
    msg_format = "Version {version} of crate '{crate_name}' already exists in the index"

    def __init__(self, crate_name: str, version: object, *args: object) -> None:
        self.crate_name = crate_name
        self.version = str(version)
        msg = self.msg_format.format(crate_name=crate_name, version=version)
        super().__init__(msg, *args)


class VersionNotFound(CrateIndexError, LookupError):
    msg_format = "Version not found (no data in index for {crate_name} - {version})"

    def __init__(self, crate_name: str, version: object, *args: object) -> None:
        self.crate_name = crate_name
        self.version = str(version)
        msg = self.msg_format.format(crate_name=crate_name, version=version)
        super().__init__(msg, *args)


class LockError(CrateIndexError):
    pass


class LockContention(LockError):
    msg_format = "The working tree at '{root}' is locked by another writer"

    def __init__(self, root: object, *args: object) -> None:
        msg = self.msg_format.format(root=root)
        super().__init__(msg, *args)


class LockTimeout(LockError):
    msg_format = "Timed out after {timeout}s waiting for the working tree lock at '{root}'"

    def __init__(self, root: object, timeout: float, *args: object) -> None:
        self.timeout = timeout
        msg = self.msg_format.format(root=root, timeout=timeout)
        super().__init__(msg, *args)


class GitCommandError(CrateIndexError):
    msg_format = "Command 'git {command}' failed with exit code {returncode}: {stderr}"

    def __init__(
        self,
        command: typing.Sequence[str],
        returncode: int,
        stderr: str,
        *args: object,
    ) -> None:
        self.command = tuple(command)
        self.returncode = returncode
        self.stderr = stderr
        msg = self.msg_format.format(
            command=" ".join(command),
            returncode=returncode,
            stderr=stderr.strip(),
        )
        super().__init__(msg, *args)


class RepositoryError(CrateIndexError):
    pass


class StageFailed(RepositoryError):
    pass


class CommitFailed(RepositoryError):
    pass


class SyncFailed(RepositoryError):
    """
    The change is committed locally but could not be pushed to the remote.
    Retrying the push (not the mutation) is safe.
    """
    def __init__(self, msg: str, revision: typing.Optional[str] = None, *args: object) -> None:
        self.revision = revision
        super().__init__(msg, *args)


class CorruptIndex(CrateIndexError):
    pass


class IndexAlreadyExists(CrateIndexError):
    msg_format = "An index repository already exists at '{root}'"

    def __init__(self, root: object, *args: object) -> None:
        msg = self.msg_format.format(root=root)
        super().__init__(msg, *args)


class IndexNotFound(CrateIndexError, LookupError):
    msg_format = "No index repository was found at '{root}'"

    def __init__(self, root: object, *args: object) -> None:
        msg = self.msg_format.format(root=root)
        super().__init__(msg, *args)


class InvalidConfigurationError(CrateIndexError, ValueError):
    pass
