"""
Review Recorder: applies a rating to a session item.

For every topic tagged on the item, the topic's memory state is created
(first review) or advanced (later reviews) and its next due date set.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from loguru import logger

from .memory_model import (
    DEFAULT_PARAMETERS,
    FSRSParameters,
    as_rating,
    initial_estimate,
    next_interval,
    review_estimate,
)
from .progress_store import ProgressStore, TopicMemoryState
from .session_selector import SessionItem


def update_topic_state(
    current: TopicMemoryState | None,
    rating: int,
    now: datetime,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> TopicMemoryState:
    """
    Compute the memory state of one topic after a review.

    Args:
        current: Existing state, or None for a first review
        rating: User rating (1-4)
        now: Review time
        params: FSRS parameters

    Returns:
        New TopicMemoryState with last_review=now and due set from the interval
    """
    if current is not None and current.stability <= 0:
        logger.warning(
            f"Discarding state with non-positive stability ({current.stability}); "
            "treating as first review"
        )
        current = None

    if current is None:
        estimate = initial_estimate(rating, params)
    else:
        elapsed = max(0.0, current.elapsed_days(now))
        estimate = review_estimate(
            current.stability, current.difficulty, rating, elapsed, params
        )

    interval = next_interval(estimate.stability, params)

    return TopicMemoryState(
        state=estimate.state,
        stability=estimate.stability,
        difficulty=estimate.difficulty,
        due=now + timedelta(days=interval),
        last_review=now,
    )


def apply_rating(
    progress: ProgressStore,
    item: SessionItem,
    rating: int,
    now: datetime,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> dict[str, TopicMemoryState]:
    """
    Record a rated review of a session item.

    Args:
        progress: Store to update in place
        item: The reviewed session item (marked done)
        rating: User rating (1-4)
        now: Review time
        params: FSRS parameters

    Returns:
        Updated memory state per tagged topic id
    """
    rating = as_rating(rating)

    item.is_done = True
    question_id = item.question.id

    # History tolerates duplicates
    progress.history.append(question_id)

    if item.has_custom_topics:
        progress.custom_associations[question_id] = list(item.selected_topics)

    updated: dict[str, TopicMemoryState] = {}
    for topic_id in item.selected_topics:
        new_state = update_topic_state(progress.topics.get(topic_id), rating, now, params)
        progress.topics[topic_id] = new_state
        updated[topic_id] = new_state

        logger.debug(
            f"Recorded review for {topic_id}: rating={int(rating)}, "
            f"S={new_state.stability:.2f}, D={new_state.difficulty:.2f}, "
            f"due={new_state.due:%Y-%m-%d}"
        )

    return updated
