"""
Progress Store: the learner's persisted progress.

Holds, as one JSON document (schema version 2):
- history: ids of every completed question (append-only)
- topics: FSRS memory state per topic
- custom_associations: questions reviewed under more than their main topic

Also understands the legacy format, a bare array of completed question ids.
"""

from __future__ import annotations

import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from loguru import logger

from .memory_model import MAX_DIFFICULTY, MIN_DIFFICULTY, State

PROGRESS_VERSION = 2

KNOWN_FIELDS = ("version", "history", "topics", "custom_associations")

_ABSENT = object()


class ProgressFormatError(Exception):
    """Raised when a progress document cannot be interpreted."""
    pass


class LoadOutcome(str, Enum):
    """How a progress document was obtained."""

    FRESH = "fresh"
    LOADED = "loaded"
    MIGRATED = "migrated"
    UNKNOWN_VERSION = "unknown_version"


# =============================================================================
# Timestamps
# =============================================================================


def format_timestamp(value: datetime) -> str:
    """UTC ISO 8601 with milliseconds and a Z suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# =============================================================================
# Data Classes
# =============================================================================


@dataclass
class TopicMemoryState:
    """FSRS memory state for a single topic."""

    state: State
    stability: float  # S, in days
    difficulty: float  # D, range 1-10
    due: datetime
    last_review: datetime

    def __post_init__(self) -> None:
        self.state = State(self.state)
        self.difficulty = max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, self.difficulty))

    def is_due(self, now: datetime) -> bool:
        return self.due <= now

    def elapsed_days(self, now: datetime) -> float:
        """Days since the last review."""
        return (now - self.last_review).total_seconds() / 86400.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "state": int(self.state),
            "stability": self.stability,
            "difficulty": self.difficulty,
            "due": format_timestamp(self.due),
            "last_review": format_timestamp(self.last_review),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TopicMemoryState:
        return cls(
            state=State(int(data["state"])),
            stability=float(data["stability"]),
            difficulty=float(data["difficulty"]),
            due=parse_timestamp(data["due"]),
            last_review=parse_timestamp(data["last_review"]),
        )


@dataclass
class ProgressStore:
    """
    The learner's complete progress.

    Replaced wholesale on load and written wholesale on save. Top-level
    keys this version does not know about are kept in `extra`, and topic
    or association entries that could not be parsed are kept raw, so a
    save writes them back untouched.

    A store loaded non-strictly also remembers each known field as it was
    read (`raw_fields`). Fields left unmodified are written back verbatim.
    """

    version: Any = PROGRESS_VERSION
    history: list[str] = field(default_factory=list)
    topics: dict[str, TopicMemoryState] = field(default_factory=dict)
    custom_associations: dict[str, list[str]] = field(default_factory=dict)
    extra: dict[str, Any] = field(default_factory=dict)
    unparsed_topics: dict[str, Any] = field(default_factory=dict)
    unparsed_associations: dict[str, Any] = field(default_factory=dict)
    # field name -> (raw value or _ABSENT, parsed value at load time)
    raw_fields: dict[str, tuple[Any, Any]] = field(
        default_factory=dict, repr=False, compare=False
    )

    @classmethod
    def fresh(cls) -> ProgressStore:
        return cls()

    def history_set(self) -> set[str]:
        return set(self.history)

    def due_topic_ids(self, now: datetime) -> list[str]:
        return [topic_id for topic_id, s in self.topics.items() if s.is_due(now)]

    def to_dict(self) -> dict[str, Any]:
        topics: dict[str, Any] = dict(self.unparsed_topics)
        topics.update({topic_id: s.to_dict() for topic_id, s in self.topics.items()})

        associations: dict[str, Any] = dict(self.unparsed_associations)
        associations.update(
            {q: list(topic_ids) for q, topic_ids in self.custom_associations.items()}
        )

        data = dict(self.extra)
        data.update(
            {
                "version": self.version,
                "history": list(self.history),
                "topics": topics,
                "custom_associations": associations,
            }
        )

        for key, (raw, loaded) in self.raw_fields.items():
            if getattr(self, key) != loaded:
                continue
            if raw is _ABSENT:
                data.pop(key, None)
            else:
                data[key] = raw

        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: dict[str, Any], strict: bool = True) -> ProgressStore:
        """
        Build a store from a version 2 (or unknown version) document.

        Args:
            data: Parsed JSON object
            strict: Raise on entries that do not fit the version 2 shape
                instead of keeping them raw

        Raises:
            ProgressFormatError: If strict and the document shape is invalid
        """

        def invalid(message: str) -> None:
            if strict:
                raise ProgressFormatError(message)
            logger.warning(f"Keeping unreadable progress data as-is: {message}")

        raw_history = data.get("history", _ABSENT)
        history: list[str] = []
        if raw_history is not _ABSENT:
            if not isinstance(raw_history, list):
                invalid("'history' must be a list")
            else:
                history = [h for h in raw_history if isinstance(h, str)]
                if len(history) != len(raw_history):
                    invalid("'history' entries must be strings")

        raw_topics = data.get("topics", _ABSENT)
        topics: dict[str, TopicMemoryState] = {}
        unparsed_topics: dict[str, Any] = {}
        if raw_topics is not _ABSENT:
            if not isinstance(raw_topics, dict):
                invalid("'topics' must be an object")
            else:
                for topic_id, raw in raw_topics.items():
                    try:
                        topics[topic_id] = TopicMemoryState.from_dict(raw)
                    except (KeyError, TypeError, ValueError, AttributeError) as e:
                        invalid(f"Invalid topic state for {topic_id}: {e}")
                        unparsed_topics[topic_id] = raw

        raw_associations = data.get("custom_associations", _ABSENT)
        associations: dict[str, list[str]] = {}
        unparsed_associations: dict[str, Any] = {}
        if raw_associations is not _ABSENT:
            if not isinstance(raw_associations, dict):
                invalid("'custom_associations' must be an object")
            else:
                for question_id, topic_ids in raw_associations.items():
                    if isinstance(topic_ids, list) and all(isinstance(t, str) for t in topic_ids):
                        associations[question_id] = list(topic_ids)
                    else:
                        invalid(f"Topics for {question_id} must be a list of strings")
                        unparsed_associations[question_id] = topic_ids

        store = cls(
            version=data.get("version", PROGRESS_VERSION if strict else None),
            history=history,
            topics=topics,
            custom_associations=associations,
            extra={k: v for k, v in data.items() if k not in KNOWN_FIELDS},
            unparsed_topics=unparsed_topics,
            unparsed_associations=unparsed_associations,
        )

        if not strict:
            for key in KNOWN_FIELDS:
                store.raw_fields[key] = (
                    copy.deepcopy(data[key]) if key in data else _ABSENT,
                    copy.deepcopy(getattr(store, key)),
                )

        return store


# =============================================================================
# Parsing & Migration
# =============================================================================


def migrate_legacy(history: list[str]) -> ProgressStore:
    """
    Wrap a legacy bare-array history in a version 2 store.

    Every original entry is kept unchanged, in order.
    """
    logger.info(f"Migrating legacy progress format ({len(history)} history entries)")
    return ProgressStore(version=PROGRESS_VERSION, history=list(history))


def parse_progress(content: str) -> tuple[ProgressStore, LoadOutcome]:
    """
    Interpret the text of a progress file.

    Args:
        content: Raw JSON text

    Returns:
        (store, outcome) where outcome is LOADED, MIGRATED or UNKNOWN_VERSION

    Raises:
        ProgressFormatError: If the text is not a recognizable progress document
    """
    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ProgressFormatError(f"Progress file is not valid JSON: {e}") from e

    if isinstance(data, list):
        return migrate_legacy(data), LoadOutcome.MIGRATED

    if not isinstance(data, dict):
        raise ProgressFormatError(f"Unexpected progress document type: {type(data).__name__}")

    if data.get("version") != PROGRESS_VERSION:
        logger.warning(
            f"Progress file has unknown version {data.get('version')!r}; loading it as-is"
        )
        return ProgressStore.from_dict(data, strict=False), LoadOutcome.UNKNOWN_VERSION

    return ProgressStore.from_dict(data), LoadOutcome.LOADED
