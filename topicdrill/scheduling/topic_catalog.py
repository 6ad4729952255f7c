"""
Topic Catalog: Question Bank Loader.

Flattens the nested question bank (module -> topic -> [questions]) into
schedulable topics and derives question identities.

Features:
- Topics enumerated in the bank's natural key order
- Full and legacy question ids for history membership checks
- Past-paper links for questions that mention a year
"""

from __future__ import annotations

import json
import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from urllib.parse import quote, urlencode

from loguru import logger

TOPIC_SEPARATOR = "::"
LEGACY_SEPARATOR = "_"

DEFAULT_VIEWER_URL = "https://camcribs.com/viewer"

_YEAR_RE = re.compile(r"\b((19|20)\d{2})\b")


# =============================================================================
# Data Classes
# =============================================================================


def make_topic_id(module: str, name: str) -> str:
    """Build the topic identifier `module::name`."""
    return f"{module}{TOPIC_SEPARATOR}{name}"


def topic_name_from_id(topic_id: str) -> str:
    """Topic name part of a topic id (everything after the first separator)."""
    _, _, name = topic_id.partition(TOPIC_SEPARATOR)
    return name or topic_id


@dataclass(frozen=True)
class Topic:
    """A schedulable topic derived from the question bank."""

    id: str
    module: str
    name: str


@dataclass(frozen=True)
class Question:
    """A single practice question belonging to one topic."""

    module: str
    topic: str
    raw: str

    @property
    def id(self) -> str:
        return f"{self.module}{TOPIC_SEPARATOR}{self.topic}{TOPIC_SEPARATOR}{self.raw}"

    @property
    def legacy_id(self) -> str:
        return f"{self.module}{LEGACY_SEPARATOR}{self.topic}{LEGACY_SEPARATOR}{self.raw}"

    @property
    def accepted_ids(self) -> frozenset[str]:
        """Every history entry that counts as this question being done."""
        return frozenset((self.id, self.legacy_id))

    @property
    def topic_id(self) -> str:
        return make_topic_id(self.module, self.topic)

    @property
    def year(self) -> str | None:
        """Exam year mentioned in the question text, if any."""
        match = _YEAR_RE.search(self.raw)
        return match.group(1) if match else None


def problem_link(question: Question, viewer_url: str = DEFAULT_VIEWER_URL) -> str | None:
    """
    Past-paper viewer URL for a question.

    Args:
        question: The question to link
        viewer_url: Base URL of the paper viewer

    Returns:
        URL string, or None when the question text has no year
    """
    year = question.year
    if year is None:
        return None

    query = urlencode(
        {"year": "IB", "type": "tripos", "module": question.module, "id": f"QP_{year}"},
        quote_via=quote,
    )
    return f"{viewer_url}?{query}"


# =============================================================================
# Topic Catalog
# =============================================================================


class TopicCatalog:
    """
    The flat set of schedulable topics in a question bank.

    Module values that are not mappings and topic values that are not
    lists are ignored.
    """

    def __init__(self, question_bank: Mapping[str, Any] | None = None):
        """
        Initialize the catalog.

        Args:
            question_bank: Parsed question bank (module -> topic -> [questions])
        """
        self._bank: dict[str, dict[str, list[str]]] = {}
        self._topics: dict[str, Topic] = {}

        if question_bank:
            self._index(question_bank)

    @classmethod
    def from_question_bank(cls, question_bank: Mapping[str, Any] | None) -> TopicCatalog:
        return cls(question_bank)

    def _index(self, question_bank: Mapping[str, Any]) -> None:
        skipped = 0

        for module, module_data in question_bank.items():
            if not isinstance(module_data, Mapping):
                skipped += 1
                continue

            for name, questions in module_data.items():
                if not isinstance(questions, list):
                    skipped += 1
                    continue

                topic = Topic(id=make_topic_id(module, name), module=module, name=name)
                self._topics[topic.id] = topic
                self._bank.setdefault(module, {})[name] = [str(q) for q in questions]

        logger.debug(
            f"TopicCatalog indexed {len(self._topics)} topics "
            f"from {len(self._bank)} modules ({skipped} entries skipped)"
        )

    @property
    def topics(self) -> list[Topic]:
        """All topics in question bank order."""
        return list(self._topics.values())

    @property
    def modules(self) -> list[str]:
        return list(self._bank.keys())

    @property
    def is_empty(self) -> bool:
        return not self._topics

    def __len__(self) -> int:
        return len(self._topics)

    def __iter__(self) -> Iterator[Topic]:
        return iter(self._topics.values())

    def __contains__(self, topic_id: object) -> bool:
        return topic_id in self._topics

    def get(self, topic_id: str) -> Topic | None:
        return self._topics.get(topic_id)

    def questions_for(self, topic: Topic) -> list[Question]:
        """
        All questions of a topic.

        Args:
            topic: Topic from this catalog

        Returns:
            Questions in bank order (empty if the topic is unknown)
        """
        raw_questions = self._bank.get(topic.module, {}).get(topic.name, [])
        return [Question(module=topic.module, topic=topic.name, raw=raw) for raw in raw_questions]

    def topics_in_module(self, module: str) -> list[Topic]:
        """Topics of one module, sorted by name."""
        topics = [t for t in self._topics.values() if t.module == module]
        topics.sort(key=lambda t: t.name.casefold())
        return topics

    def get_stats(self) -> dict[str, Any]:
        """Topic and question counts per module."""
        return {
            "modules": {
                module: {
                    "topics": len(topics),
                    "questions": sum(len(q) for q in topics.values()),
                }
                for module, topics in self._bank.items()
            },
            "total_topics": len(self._topics),
        }


def load_question_bank(path: Path) -> dict[str, Any] | None:
    """
    Read a question bank JSON file.

    Args:
        path: Path to the question bank (e.g. IB.json)

    Returns:
        Parsed bank, or None if the file is missing or unreadable
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load question bank {path}: {e}")
        return None

    if not isinstance(data, dict):
        logger.error(f"Question bank {path} is not a JSON object")
        return None

    logger.info(f"Loaded question bank {path} ({len(data)} modules)")
    return data
