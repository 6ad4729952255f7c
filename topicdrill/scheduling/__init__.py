"""
Scheduling core: FSRS memory model, topic catalog, progress data,
session selection and review recording.

Components:
- memory_model: Stability/difficulty/interval math
- TopicCatalog: Topics and questions from the question bank
- ProgressStore: Persisted history and per-topic memory state
- select_session: Due-topic selection
- apply_rating: Review recording
"""

from .memory_model import (
    DEFAULT_PARAMETERS,
    FSRSParameters,
    MemoryEstimate,
    Rating,
    State,
    as_rating,
    initial_estimate,
    next_interval,
    retrievability,
    review_estimate,
)
from .progress_store import (
    LoadOutcome,
    ProgressFormatError,
    ProgressStore,
    TopicMemoryState,
    migrate_legacy,
    parse_progress,
)
from .review_recorder import apply_rating, update_topic_state
from .session_selector import SelectionStatus, SessionItem, SessionSelection, select_session
from .topic_catalog import Question, Topic, TopicCatalog, load_question_bank, problem_link

__all__ = [
    # Memory model
    "DEFAULT_PARAMETERS",
    "FSRSParameters",
    "MemoryEstimate",
    "Rating",
    "State",
    "as_rating",
    "initial_estimate",
    "review_estimate",
    "next_interval",
    "retrievability",
    # Catalog
    "Topic",
    "Question",
    "TopicCatalog",
    "load_question_bank",
    "problem_link",
    # Progress
    "ProgressStore",
    "TopicMemoryState",
    "LoadOutcome",
    "ProgressFormatError",
    "migrate_legacy",
    "parse_progress",
    # Session
    "SessionItem",
    "SessionSelection",
    "SelectionStatus",
    "select_session",
    # Reviews
    "apply_rating",
    "update_topic_state",
]
