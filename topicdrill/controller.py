"""
Drill Controller: command layer between a UI and the scheduling core.

Owns the application context (question bank, progress, active session,
random source) and exposes one method per user command. UI adapters call
these methods; the scheduling functions stay pure and receive the context
explicitly.
"""

from __future__ import annotations

import random
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from loguru import logger

from config import Settings, get_settings

from .scheduling.memory_model import DEFAULT_PARAMETERS, FSRSParameters
from .scheduling.progress_store import ProgressStore, TopicMemoryState
from .scheduling.review_recorder import apply_rating
from .scheduling.session_selector import SelectionStatus, SessionItem, SessionSelection, select_session
from .scheduling.topic_catalog import Topic, TopicCatalog, load_question_bank
from .sync.github_storage import GitHubStorage
from .sync.local_storage import LocalFileStorage
from .sync.progress_sync import LoadResult, SaveResult, load_progress, save_progress
from .sync.storage import Storage


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def build_storage(settings: Settings | None = None) -> Storage:
    """Create the storage backend selected in settings."""
    settings = settings or get_settings()
    if settings.storage_backend == "local":
        return LocalFileStorage(settings.local_storage_dir)
    return GitHubStorage(
        repo=settings.github_repo,
        token=settings.github_token,
        api_base=settings.github_api_base,
        timeout_seconds=settings.github_timeout_seconds,
    )


@dataclass
class DrillContext:
    """All mutable application state."""

    catalog: TopicCatalog | None = None
    progress: ProgressStore = field(default_factory=ProgressStore.fresh)
    version_token: str | None = None
    session: list[SessionItem] = field(default_factory=list)
    rng: random.Random = field(default_factory=random.Random)


class DrillController:
    """
    Executes user commands against a DrillContext.

    Commands are not reentrant: callers apply one command at a time and
    await load/save to completion before issuing the next.
    """

    def __init__(
        self,
        storage: Storage,
        progress_path: str = "progress.json",
        params: FSRSParameters = DEFAULT_PARAMETERS,
        seed: int | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """
        Initialize the controller.

        Args:
            storage: Backend holding the progress file
            progress_path: Path of the progress file in the backend
            params: FSRS parameters
            seed: Seed for the random source (None for unseeded)
            clock: Source of the current time
        """
        self.storage = storage
        self.progress_path = progress_path
        self.params = params
        self.clock = clock
        self.context = DrillContext(rng=random.Random(seed))

    @classmethod
    def from_settings(cls, settings: Settings | None = None, seed: int | None = None) -> DrillController:
        settings = settings or get_settings()
        return cls(
            storage=build_storage(settings),
            progress_path=settings.progress_file_path,
            params=settings.fsrs_parameters(),
            seed=seed if seed is not None else settings.random_seed,
        )

    @property
    def progress(self) -> ProgressStore:
        return self.context.progress

    @property
    def catalog(self) -> TopicCatalog | None:
        return self.context.catalog

    @property
    def session(self) -> list[SessionItem]:
        return self.context.session

    # =========================================================================
    # Question Bank
    # =========================================================================

    def set_question_bank(self, question_bank: Mapping[str, Any] | None) -> int:
        """Install a parsed question bank. Returns the number of topics."""
        if question_bank is None:
            self.context.catalog = None
            return 0
        self.context.catalog = TopicCatalog.from_question_bank(question_bank)
        return len(self.context.catalog)

    def load_question_bank(self, path: Path) -> int:
        """
        Load the question bank from a JSON file.

        Returns:
            Number of topics (0 if the bank is unavailable)
        """
        return self.set_question_bank(load_question_bank(path))

    # =========================================================================
    # Progress
    # =========================================================================

    async def load_progress(self) -> LoadResult:
        """Replace local progress with the stored progress file."""
        result = await load_progress(self.storage, self.progress_path)
        self.context.progress = result.progress
        self.context.version_token = result.version_token
        return result

    async def save_progress(self) -> SaveResult:
        """Write local progress to storage."""
        result = await save_progress(
            self.storage,
            self.progress_path,
            self.context.progress,
            self.context.version_token,
        )
        self.context.version_token = result.version_token
        return result

    def reset_progress(self, confirm: bool = False) -> bool:
        """
        Discard all progress locally.

        Nothing is written until the next save.

        Args:
            confirm: Must be True, otherwise nothing happens

        Returns:
            True if progress was reset
        """
        if not confirm:
            logger.info("Progress reset not confirmed; nothing changed")
            return False

        self.context.progress = ProgressStore.fresh()
        self.context.session = []
        logger.warning("Progress reset locally. Save to commit the change.")
        return True

    # =========================================================================
    # Session
    # =========================================================================

    def start_session(self, count: int) -> SessionSelection:
        """
        Select a new session.

        The active session is replaced only when the selection has items.
        """
        selection = select_session(
            self.context.catalog,
            self.context.progress,
            count,
            self.clock(),
            self.context.rng,
        )
        if selection.status == SelectionStatus.READY:
            self.context.session = selection.items
        return selection

    def get_item(self, session_id: str) -> SessionItem:
        for item in self.context.session:
            if item.session_id == session_id:
                return item
        raise KeyError(f"No session item {session_id!r}")

    def related_topics(self, session_id: str) -> list[Topic]:
        """Topics that can be tagged on an item: those in its module, by name."""
        if self.context.catalog is None:
            return []
        item = self.get_item(session_id)
        return self.context.catalog.topics_in_module(item.question.module)

    def add_topic(self, session_id: str, topic_id: str) -> bool:
        """Tag an item with an extra topic."""
        if self.context.catalog is not None and topic_id not in self.context.catalog:
            raise ValueError(f"Unknown topic {topic_id!r}")
        return self.get_item(session_id).add_topic(topic_id)

    def remove_topic(self, session_id: str, topic_id: str) -> bool:
        """Remove a topic tag from an item."""
        return self.get_item(session_id).remove_topic(topic_id)

    def rate_item(self, session_id: str, rating: int) -> dict[str, TopicMemoryState]:
        """
        Apply a rating to a session item.

        Raises:
            KeyError: Unknown session item
            ValueError: Item already rated, or rating outside 1-4
        """
        item = self.get_item(session_id)
        if item.is_done:
            raise ValueError(f"Session item {session_id!r} is already rated")
        return apply_rating(self.context.progress, item, rating, self.clock(), self.params)

    @property
    def session_complete(self) -> bool:
        return bool(self.context.session) and all(i.is_done for i in self.context.session)

    def finish_session(self) -> int:
        """End the active session. Returns how many items were rated."""
        done = sum(1 for i in self.context.session if i.is_done)
        logger.info(f"Session finished: {done}/{len(self.context.session)} rated")
        self.context.session = []
        return done
