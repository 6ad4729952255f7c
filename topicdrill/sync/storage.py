"""
Storage contract for the progress file.

A storage backend reads and writes whole files by path. Every file has a
version token; a write carrying a stale token must fail with ConflictError
instead of overwriting.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


class StorageError(Exception):
    """Base class for storage failures."""
    pass


class NotFoundError(StorageError):
    """The requested file does not exist."""
    pass


class ConflictError(StorageError):
    """The expected version token is stale."""
    pass


class UnauthorizedError(StorageError):
    """Credentials are missing or rejected."""
    pass


class TransportError(StorageError):
    """Any other failure talking to the backend."""
    pass


@dataclass(frozen=True)
class RemoteFile:
    """File content plus its current version token."""

    content: str
    version_token: str


@runtime_checkable
class Storage(Protocol):
    """Whole-file storage with version tokens."""

    async def fetch_file(self, path: str) -> RemoteFile:
        """Read a file. Raises NotFoundError when absent."""
        ...

    async def write_file(
        self,
        path: str,
        content: str,
        expected_version_token: str | None = None,
    ) -> str:
        """Write a file and return its new version token."""
        ...

    async def close(self) -> None:
        """Release any held resources."""
        ...