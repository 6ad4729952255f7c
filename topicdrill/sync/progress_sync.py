"""
Progress Sync: loading and saving the progress file through a storage backend.

Load outcomes:
- FRESH: no file yet, start with empty progress
- LOADED: version 2 file
- MIGRATED: legacy bare-array file, wrapped into version 2
- UNKNOWN_VERSION: any other version, loaded as-is with a warning

Save re-fetches the current version token right before writing and sends
it with the write. Storage errors are raised to the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger

from ..scheduling.progress_store import LoadOutcome, ProgressStore, parse_progress
from .storage import NotFoundError, Storage


@dataclass
class LoadResult:
    """Outcome of a progress load."""

    progress: ProgressStore
    version_token: str | None
    outcome: LoadOutcome

    @property
    def message(self) -> str:
        if self.outcome == LoadOutcome.FRESH:
            return "No progress file found. Starting fresh."
        if self.outcome == LoadOutcome.MIGRATED:
            return "Loaded & migrated old progress."
        if self.outcome == LoadOutcome.UNKNOWN_VERSION:
            return "Loaded progress (unknown version)."
        return f"Loaded progress. History: {len(self.progress.history)}"


@dataclass
class SaveResult:
    """Outcome of a progress save."""

    version_token: str
    remote_changed: bool = False  # Someone else wrote since our load


async def load_progress(storage: Storage, path: str) -> LoadResult:
    """
    Load progress from storage.

    Args:
        storage: Storage backend
        path: Path of the progress file

    Returns:
        LoadResult with the parsed store and its version token

    Raises:
        StorageError: On any failure other than a missing file
        ProgressFormatError: If the file content is not a progress document
    """
    try:
        remote = await storage.fetch_file(path)
    except NotFoundError:
        logger.info(f"No progress file at {path}; starting fresh")
        return LoadResult(
            progress=ProgressStore.fresh(),
            version_token=None,
            outcome=LoadOutcome.FRESH,
        )

    progress, outcome = parse_progress(remote.content)
    result = LoadResult(progress=progress, version_token=remote.version_token, outcome=outcome)
    logger.info(result.message)
    return result


async def save_progress(
    storage: Storage,
    path: str,
    progress: ProgressStore,
    known_version_token: str | None = None,
) -> SaveResult:
    """
    Write the whole progress store to storage.

    Args:
        storage: Storage backend
        path: Path of the progress file
        progress: Store to write
        known_version_token: Token seen at load time (None if the file did not exist)

    Returns:
        SaveResult with the new version token

    Raises:
        StorageError: On any failure (ConflictError if the file changed mid-save)
    """
    try:
        current = await storage.fetch_file(path)
        current_token: str | None = current.version_token
    except NotFoundError:
        current_token = None

    remote_changed = current_token != known_version_token
    if remote_changed:
        logger.warning(
            f"Remote {path} changed since it was loaded "
            f"({known_version_token} -> {current_token}); overwriting with local progress"
        )

    new_token = await storage.write_file(path, progress.to_json(), current_token)
    logger.info(f"Saved progress to {path} ({len(progress.history)} history entries)")
    return SaveResult(version_token=new_token, remote_changed=remote_changed)
