"""
Progress file storage and sync.

Components:
- Storage: Whole-file storage contract with version tokens
- GitHubStorage: GitHub contents API backend
- LocalFileStorage: On-disk backend
- load_progress / save_progress: Progress file load, migration and save
"""

from .github_storage import GitHubStorage
from .local_storage import LocalFileStorage
from .progress_sync import LoadResult, SaveResult, load_progress, save_progress
from .storage import (
    ConflictError,
    NotFoundError,
    RemoteFile,
    Storage,
    StorageError,
    TransportError,
    UnauthorizedError,
)

__all__ = [
    # Contract
    "Storage",
    "RemoteFile",
    "StorageError",
    "NotFoundError",
    "ConflictError",
    "UnauthorizedError",
    "TransportError",
    # Backends
    "GitHubStorage",
    "LocalFileStorage",
    # Sync
    "LoadResult",
    "SaveResult",
    "load_progress",
    "save_progress",
]
