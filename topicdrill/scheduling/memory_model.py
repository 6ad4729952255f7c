"""
FSRS Memory Model (simplified v4.5).

Computes the memory state of a topic from its previous state and a rating:
- Stability (S): days until recall probability decays to the target retention
- Difficulty (D): intrinsic difficulty of the topic, bounded to [1, 10]
- Interval: days until the topic is due again

Only the current (S, D) pair is needed to compute the next interval, so no
review log is kept. Every first review lands in the Review state, including
a failed one; there are no Learning steps.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import IntEnum

# =============================================================================
# Enums
# =============================================================================


class State(IntEnum):
    """Card state as stored in the progress file."""

    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3


class Rating(IntEnum):
    """User rating for a reviewed question."""

    AGAIN = 1
    HARD = 2
    GOOD = 3
    EASY = 4


# =============================================================================
# Parameters
# =============================================================================

DEFAULT_WEIGHTS: tuple[float, ...] = (
    0.4, 0.6, 2.4, 5.8,  # initial stability per rating
    4.93, 0.94,  # initial difficulty
    0.86, 0.01,  # difficulty step, mean reversion
    1.49, 0.14, 0.94,  # recall stability growth
    2.18, 0.05, 0.34, 1.26,  # post-lapse stability
    0.29, 2.61,  # hard penalty, easy bonus
)

MIN_DIFFICULTY = 1.0
MAX_DIFFICULTY = 10.0


@dataclass(frozen=True)
class FSRSParameters:
    """Immutable FSRS configuration."""

    w: tuple[float, ...] = field(default=DEFAULT_WEIGHTS)
    request_retention: float = 0.9
    maximum_interval: int = 36500

    def __post_init__(self) -> None:
        if len(self.w) != 17:
            raise ValueError(f"FSRS needs 17 weights, got {len(self.w)}")
        if not 0 < self.request_retention < 1:
            raise ValueError(
                f"request_retention must be in (0, 1), got {self.request_retention}"
            )
        if self.maximum_interval < 1:
            raise ValueError("maximum_interval must be at least 1 day")
        # Normalize to a tuple of floats
        object.__setattr__(self, "w", tuple(float(x) for x in self.w))


DEFAULT_PARAMETERS = FSRSParameters()


@dataclass(frozen=True)
class MemoryEstimate:
    """Result of an FSRS update."""

    stability: float
    difficulty: float
    state: State


# =============================================================================
# Memory Model
# =============================================================================


def _clamp_difficulty(difficulty: float) -> float:
    return max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, difficulty))


def as_rating(rating: int) -> Rating:
    try:
        return Rating(rating)
    except ValueError:
        raise ValueError(f"Rating must be 1-4, got {rating!r}") from None


def initial_estimate(
    rating: int,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> MemoryEstimate:
    """
    Memory state for the first review of a topic.

    Args:
        rating: User rating (1-4)
        params: FSRS parameters

    Returns:
        MemoryEstimate in the Review state
    """
    rating = as_rating(rating)
    w = params.w

    stability = w[rating - 1]
    difficulty = w[4] - (rating - 3) * w[5]

    return MemoryEstimate(
        stability=stability,
        difficulty=_clamp_difficulty(difficulty),
        state=State.REVIEW,
    )


def mean_reversion(
    initial_difficulty: float,
    current_difficulty: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> float:
    """Pull difficulty back toward the initial (Good) difficulty."""
    w = params.w
    return w[7] * initial_difficulty + (1 - w[7]) * current_difficulty


def review_estimate(
    prev_stability: float,
    prev_difficulty: float,
    rating: int,
    elapsed_days: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> MemoryEstimate:
    """
    Memory state after a review of a topic that already has a state.

    Args:
        prev_stability: Current stability in days (must be > 0)
        prev_difficulty: Current difficulty (1-10)
        rating: User rating (1-4)
        elapsed_days: Days since the last review
        params: FSRS parameters

    Returns:
        MemoryEstimate in Review, or Relearning after an Again rating
    """
    rating = as_rating(rating)
    w = params.w

    next_d = prev_difficulty - w[6] * (rating - 3)
    next_d = mean_reversion(w[4], next_d, params)
    next_d = _clamp_difficulty(next_d)

    if rating == Rating.AGAIN:
        next_s = (
            w[11]
            * math.pow(next_d, -w[12])
            * (math.pow(prev_stability + 1, w[13]) - 1)
            * math.exp(w[14] * (1 - params.request_retention))
        )
        return MemoryEstimate(stability=next_s, difficulty=next_d, state=State.RELEARNING)

    r = retrievability(prev_stability, elapsed_days)
    hard_penalty = w[15] if rating == Rating.HARD else 1.0
    easy_bonus = w[16] if rating == Rating.EASY else 1.0

    growth = (
        math.exp(w[8])
        * (11 - next_d)
        * math.pow(prev_stability, -w[9])
        * (math.exp(w[10] * (1 - r)) - 1)
    )
    next_s = prev_stability * (1 + growth * hard_penalty * easy_bonus)

    return MemoryEstimate(stability=next_s, difficulty=next_d, state=State.REVIEW)


def retrievability(stability: float, elapsed_days: float) -> float:
    """
    Probability of recall after elapsed_days.

    Formula: R = (1 + t / (9 * S))^-1
    """
    if elapsed_days <= 0:
        return 1.0
    return math.pow(1 + elapsed_days / (9 * stability), -1)


def next_interval(
    stability: float,
    params: FSRSParameters = DEFAULT_PARAMETERS,
) -> int:
    """
    Days until the next review.

    Returns:
        round(9 * S * (1/R - 1)), clamped to [1, maximum_interval]
    """
    raw = 9 * stability * (1 / params.request_retention - 1)
    # Half-up, not round()'s half-to-even
    interval = math.floor(raw + 0.5)
    return min(max(1, interval), params.maximum_interval)
