"""
Session Selector: picks due topics and one unseen question per topic.

Selection rules:
1. Due topics (never reviewed, or due date reached) come first, shuffled
2. Not-due topics top up the session when too few are due
3. Each picked topic contributes one random question not yet in history;
   topics with nothing left contribute nothing
"""

from __future__ import annotations

import random
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from loguru import logger

from .progress_store import ProgressStore
from .topic_catalog import Question, Topic, TopicCatalog

# =============================================================================
# Data Classes
# =============================================================================


class SelectionStatus(str, Enum):
    """Why a selection has (or lacks) items."""

    READY = "ready"
    NO_DATA = "no_data"  # Question bank missing or empty
    NOTHING_LEFT = "nothing_left"  # Every candidate question already done


@dataclass
class SessionItem:
    """One question in the active session."""

    session_id: str
    question: Question
    main_topic_id: str
    selected_topics: list[str] = field(default_factory=list)
    is_done: bool = False

    def __post_init__(self) -> None:
        if not self.selected_topics:
            self.selected_topics = [self.main_topic_id]

    def add_topic(self, topic_id: str) -> bool:
        """Tag the item with another topic. Returns False if already tagged."""
        if topic_id in self.selected_topics:
            return False
        self.selected_topics.append(topic_id)
        return True

    def remove_topic(self, topic_id: str) -> bool:
        """Untag a topic. Returns False if it was not tagged."""
        if topic_id not in self.selected_topics:
            return False
        self.selected_topics.remove(topic_id)
        return True

    @property
    def has_custom_topics(self) -> bool:
        """True when the tags differ from the single main topic."""
        return self.selected_topics != [self.main_topic_id]


@dataclass
class SessionSelection:
    """Result of a session selection."""

    items: list[SessionItem] = field(default_factory=list)
    status: SelectionStatus = SelectionStatus.READY
    due_count: int = 0
    topics_picked: int = 0

    @property
    def total_items(self) -> int:
        return len(self.items)

    def __bool__(self) -> bool:
        return bool(self.items)


# =============================================================================
# Selection
# =============================================================================


def _new_session_id(rng: random.Random, taken: set[str]) -> str:
    while True:
        session_id = str(uuid.UUID(int=rng.getrandbits(128), version=4))[:8]
        if session_id not in taken:
            taken.add(session_id)
            return session_id


def partition_topics(
    catalog: TopicCatalog,
    progress: ProgressStore,
    now: datetime,
) -> tuple[list[Topic], list[Topic]]:
    """
    Split topics into (due, not_due).

    A topic without memory state is always due.
    """
    due: list[Topic] = []
    not_due: list[Topic] = []

    for topic in catalog:
        state = progress.topics.get(topic.id)
        if state is None or state.is_due(now):
            due.append(topic)
        else:
            not_due.append(topic)

    return due, not_due


def pick_topics(
    catalog: TopicCatalog,
    progress: ProgressStore,
    requested_count: int,
    now: datetime,
    rng: random.Random,
) -> tuple[list[Topic], int]:
    """
    Choose up to requested_count topics, due ones first.

    Returns:
        (picked topics, number of due topics available)
    """
    due, not_due = partition_topics(catalog, progress, now)

    rng.shuffle(due)
    picked = due[:requested_count]

    needed = requested_count - len(picked)
    if needed > 0:
        rng.shuffle(not_due)
        picked.extend(not_due[:needed])

    return picked, len(due)


def select_session(
    catalog: TopicCatalog | None,
    progress: ProgressStore,
    requested_count: int,
    now: datetime,
    rng: random.Random | None = None,
) -> SessionSelection:
    """
    Build the items for a practice session.

    Args:
        catalog: Topics from the question bank (None if the bank is unavailable)
        progress: Current progress
        requested_count: Desired number of items
        now: Reference time for due checks
        rng: Random source (a fresh unseeded one if None)

    Returns:
        SessionSelection with at most requested_count items
    """
    rng = rng or random.Random()

    if catalog is None or catalog.is_empty:
        logger.warning("No question data available; cannot select a session")
        return SessionSelection(status=SelectionStatus.NO_DATA)

    if requested_count <= 0:
        return SessionSelection(status=SelectionStatus.NOTHING_LEFT)

    picked, due_count = pick_topics(catalog, progress, requested_count, now, rng)
    history = progress.history_set()

    items: list[SessionItem] = []
    taken_ids: set[str] = set()

    for topic in picked:
        candidates = [
            q for q in catalog.questions_for(topic) if not (q.accepted_ids & history)
        ]
        if not candidates:
            logger.debug(f"No unseen questions left for {topic.id}")
            continue

        question = rng.choice(candidates)
        items.append(
            SessionItem(
                session_id=_new_session_id(rng, taken_ids),
                question=question,
                main_topic_id=topic.id,
                selected_topics=[topic.id],
            )
        )

    status = SelectionStatus.READY if items else SelectionStatus.NOTHING_LEFT

    logger.info(
        f"Session selected: {len(items)} items from {len(picked)} topics "
        f"({due_count} due, {requested_count} requested)"
    )

    return SessionSelection(
        items=items,
        status=status,
        due_count=due_count,
        topics_picked=len(picked),
    )
