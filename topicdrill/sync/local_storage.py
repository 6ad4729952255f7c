"""
Local file storage backend.

Keeps the progress file on disk for offline use, by default under
~/.topicdrill/. The version token is the SHA-1 of the file bytes.
"""

from __future__ import annotations

import hashlib
import os
from pathlib import Path

from loguru import logger

from .storage import ConflictError, NotFoundError, RemoteFile, TransportError

# Default storage directory
STORAGE_DIR = Path.home() / ".topicdrill"


def content_token(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


class LocalFileStorage:
    """
    Stores files under a root directory.

    A write carrying an expected token is refused when the file on disk
    has changed since that token was read.
    """

    def __init__(self, root_dir: Path | None = None):
        self.root_dir = root_dir or STORAGE_DIR

    async def close(self) -> None:
        pass

    def _resolve(self, path: str) -> Path:
        return self.root_dir / path.lstrip("/")

    async def fetch_file(self, path: str) -> RemoteFile:
        filepath = self._resolve(path)
        try:
            data = filepath.read_bytes()
        except FileNotFoundError as e:
            raise NotFoundError(f"{filepath} does not exist") from e
        except OSError as e:
            raise TransportError(f"Could not read {filepath}: {e}") from e

        try:
            content = data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise TransportError(f"Could not decode {filepath}: {e}") from e

        return RemoteFile(content=content, version_token=content_token(data))

    async def write_file(
        self,
        path: str,
        content: str,
        expected_version_token: str | None = None,
    ) -> str:
        filepath = self._resolve(path)
        data = content.encode("utf-8")

        try:
            current = filepath.read_bytes()
        except FileNotFoundError:
            current = None
        except OSError as e:
            raise TransportError(f"Could not read {filepath}: {e}") from e

        if current is not None:
            current_token = content_token(current)
            if expected_version_token != current_token:
                raise ConflictError(
                    f"{filepath} changed on disk (expected {expected_version_token}, "
                    f"found {current_token})"
                )
        elif expected_version_token is not None:
            raise ConflictError(f"{filepath} was removed since it was read")

        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = filepath.with_suffix(filepath.suffix + ".tmp")
            tmp_path.write_bytes(data)
            os.replace(tmp_path, filepath)
        except OSError as e:
            raise TransportError(f"Could not write {filepath}: {e}") from e

        token = content_token(data)
        logger.info(f"Saved {filepath} ({token[:7]})")
        return token
