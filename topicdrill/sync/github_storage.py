"""
GitHub contents API storage backend.

Stores the progress file in a GitHub repository:
- GET  /repos/{repo}/contents/{path}  -> base64 content + blob sha
- PUT  /repos/{repo}/contents/{path}  -> commit with the expected sha

The blob sha is the version token. GitHub rejects a PUT whose sha is not
the current one, which surfaces here as ConflictError.
"""

from __future__ import annotations

import base64
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from config import get_settings

from ..scheduling.progress_store import format_timestamp
from .storage import (
    ConflictError,
    NotFoundError,
    RemoteFile,
    StorageError,
    TransportError,
    UnauthorizedError,
)

GITHUB_ACCEPT = "application/vnd.github.v3+json"
COMMIT_MESSAGE = "Update progress (FSRS) - {timestamp}"


class GitHubStorage:
    """HTTP client for a progress file kept in a GitHub repository."""

    def __init__(
        self,
        repo: str | None = None,
        token: str | None = None,
        api_base: str | None = None,
        timeout_seconds: float | None = None,
    ):
        """
        Initialize the GitHub storage client.

        Args:
            repo: Repository as "owner/name" (default from config)
            token: Personal access token (default from config)
            api_base: Base URL of the repos API (default from config)
            timeout_seconds: Request timeout (default from config)
        """
        settings = get_settings()
        self.repo = repo if repo is not None else settings.github_repo
        self.token = token if token is not None else settings.github_token
        self.api_base = (api_base or settings.github_api_base).rstrip("/")
        self.timeout_seconds = timeout_seconds or settings.github_timeout_seconds
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout_seconds),
            follow_redirects=True,
        )

        logger.debug(
            "Initialized GitHub storage: repo={}, api_base={}, timeout={}s",
            self.repo or "<unset>",
            self.api_base,
            self.timeout_seconds,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def __aenter__(self) -> GitHubStorage:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # ========================================
    # Helpers
    # ========================================

    def _contents_url(self, path: str) -> str:
        return f"{self.api_base}/{self.repo}/contents/{path.lstrip('/')}"

    def _headers(self) -> dict[str, str]:
        if not self.repo or not self.token:
            raise UnauthorizedError("GitHub repo and token are required")
        return {
            "Authorization": f"Bearer {self.token}",
            "Accept": GITHUB_ACCEPT,
        }

    @staticmethod
    def _check_response(response: httpx.Response) -> Any:
        """
        Map an HTTP response to data or a storage error.

        Raises:
            UnauthorizedError: 401/403
            NotFoundError: 404
            ConflictError: 409/422 (stale or missing sha)
            TransportError: Any other non-2xx status or unreadable body
        """
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                detail = e.response.json().get("message", e.response.reason_phrase)
            except (ValueError, AttributeError):
                detail = e.response.reason_phrase
            message = f"GitHub API {status}: {detail}"

            if status in (401, 403):
                raise UnauthorizedError(message) from e
            if status == 404:
                raise NotFoundError(message) from e
            if status in (409, 422):
                raise ConflictError(message) from e
            raise TransportError(message) from e

        try:
            return response.json()
        except ValueError as e:
            raise TransportError(f"GitHub API returned invalid JSON: {e}") from e

    # ========================================
    # Storage API
    # ========================================

    async def fetch_file(self, path: str) -> RemoteFile:
        """
        Read a file from the repository.

        Args:
            path: Path inside the repository

        Returns:
            RemoteFile with decoded text and blob sha

        Raises:
            StorageError: On any failure (NotFoundError when absent)
        """
        headers = self._headers()
        try:
            response = await self.client.get(self._contents_url(path), headers=headers)
        except httpx.RequestError as e:
            logger.error(f"GitHub fetch of {path} failed: {e}")
            raise TransportError(f"GitHub request failed: {e}") from e

        data = self._check_response(response)

        if not isinstance(data, dict) or "sha" not in data:
            raise TransportError(f"{path} is not a file")
        if data.get("encoding") != "base64":
            raise TransportError(
                f"{path} content not returned inline (encoding={data.get('encoding')!r})"
            )

        try:
            content = base64.b64decode(data.get("content", "")).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise TransportError(f"Could not decode {path}: {e}") from e

        logger.debug(f"Fetched {path} from {self.repo} (sha={data['sha'][:7]})")
        return RemoteFile(content=content, version_token=data["sha"])

    async def write_file(
        self,
        path: str,
        content: str,
        expected_version_token: str | None = None,
    ) -> str:
        """
        Commit a new version of a file.

        Args:
            path: Path inside the repository
            content: Full file text
            expected_version_token: Current blob sha (None to create the file)

        Returns:
            The new blob sha

        Raises:
            StorageError: On any failure (ConflictError for a stale sha)
        """
        headers = self._headers()
        body: dict[str, Any] = {
            "message": COMMIT_MESSAGE.format(
                timestamp=format_timestamp(datetime.now(timezone.utc))
            ),
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        if expected_version_token:
            body["sha"] = expected_version_token

        try:
            response = await self.client.put(
                self._contents_url(path), headers=headers, json=body
            )
        except httpx.RequestError as e:
            logger.error(f"GitHub write of {path} failed: {e}")
            raise TransportError(f"GitHub request failed: {e}") from e

        try:
            data = self._check_response(response)
        except StorageError as e:
            logger.error(f"GitHub write of {path} rejected: {e}")
            raise

        try:
            new_sha = data["content"]["sha"]
        except (KeyError, TypeError) as e:
            raise TransportError("GitHub response is missing the new sha") from e

        logger.info(f"Committed {path} to {self.repo} (sha={new_sha[:7]})")
        return new_sha
