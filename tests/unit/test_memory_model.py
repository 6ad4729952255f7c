"""
Unit tests for the FSRS memory model.

Run: pytest tests/unit/test_memory_model.py -v
"""

import math

import pytest

from topicdrill.scheduling.memory_model import (
    DEFAULT_PARAMETERS,
    FSRSParameters,
    Rating,
    State,
    initial_estimate,
    mean_reversion,
    next_interval,
    retrievability,
    review_estimate,
)


class TestInitialEstimate:
    """Tests for first-review estimates."""

    def test_good_uses_third_weight_and_base_difficulty(self):
        estimate = initial_estimate(Rating.GOOD)

        assert estimate.stability == pytest.approx(2.4)
        assert estimate.difficulty == pytest.approx(4.93)
        assert estimate.state == State.REVIEW

    def test_again(self):
        estimate = initial_estimate(Rating.AGAIN)

        assert estimate.stability == pytest.approx(0.4)
        assert estimate.difficulty == pytest.approx(6.81)

    def test_easy(self):
        estimate = initial_estimate(4)

        assert estimate.stability == pytest.approx(5.8)
        assert estimate.difficulty == pytest.approx(3.99)

    @pytest.mark.parametrize("rating", [1, 2, 3, 4])
    def test_every_rating_lands_in_review(self, rating):
        """Even a failed first review is not put into Learning."""
        assert initial_estimate(rating).state == State.REVIEW

    @pytest.mark.parametrize("rating", [1, 2, 3, 4])
    def test_difficulty_is_clamped(self, rating):
        extreme = FSRSParameters(w=DEFAULT_PARAMETERS.w[:4] + (12.0, 5.0) + DEFAULT_PARAMETERS.w[6:])

        estimate = initial_estimate(rating, extreme)

        assert 1.0 <= estimate.difficulty <= 10.0

    @pytest.mark.parametrize("rating", [0, 5, -1])
    def test_invalid_rating(self, rating):
        with pytest.raises(ValueError):
            initial_estimate(rating)


class TestReviewEstimate:
    """Tests for later-review estimates."""

    def test_again_moves_to_relearning_and_shrinks_stability(self):
        estimate = review_estimate(10.0, 5.0, Rating.AGAIN, 12.0)

        expected_d = 0.01 * 4.93 + 0.99 * (5.0 + 0.86 * 2)
        expected_s = (
            2.18
            * expected_d ** -0.05
            * (11 ** 0.34 - 1)
            * math.exp(1.26 * (1 - 0.9))
        )
        assert estimate.state == State.RELEARNING
        assert estimate.difficulty == pytest.approx(expected_d)
        assert estimate.stability == pytest.approx(expected_s)
        assert estimate.stability < 10.0

    def test_good_with_no_elapsed_time_keeps_stability(self):
        estimate = review_estimate(2.4, 4.93, Rating.GOOD, 0.0)

        assert estimate.state == State.REVIEW
        assert estimate.stability == pytest.approx(2.4)

    def test_good_after_delay_grows_stability(self):
        estimate = review_estimate(2.4, 4.93, Rating.GOOD, 3.0)

        assert estimate.stability > 2.4

    def test_rating_order_of_growth(self):
        hard = review_estimate(5.0, 5.0, Rating.HARD, 6.0)
        good = review_estimate(5.0, 5.0, Rating.GOOD, 6.0)
        easy = review_estimate(5.0, 5.0, Rating.EASY, 6.0)

        assert hard.stability < good.stability < easy.stability
        assert easy.difficulty < good.difficulty < hard.difficulty

    @pytest.mark.parametrize("rating", [1, 2, 3, 4])
    @pytest.mark.parametrize("prev_difficulty", [1.0, 5.5, 10.0])
    def test_difficulty_stays_in_bounds(self, rating, prev_difficulty):
        estimate = review_estimate(3.0, prev_difficulty, rating, 2.0)

        assert 1.0 <= estimate.difficulty <= 10.0

    def test_mean_reversion_pulls_toward_initial(self):
        assert mean_reversion(4.93, 10.0) < 10.0
        assert mean_reversion(4.93, 1.0) > 1.0


class TestNextInterval:
    """Tests for interval calculation."""

    def test_initial_good_interval(self):
        assert next_interval(2.4) == 2

    @pytest.mark.parametrize("stability", [0.0, 0.01, 0.4, 1.0, 2.4, 50.0, 1e4, 1e9])
    def test_interval_bounds(self, stability):
        assert 1 <= next_interval(stability) <= 36500

    def test_maximum_interval_cap(self):
        params = FSRSParameters(maximum_interval=30)

        assert next_interval(1000.0, params) == 30

    def test_lower_retention_lengthens_interval(self):
        params = FSRSParameters(request_retention=0.8)

        assert next_interval(10.0, params) > next_interval(10.0)


class TestRetrievability:
    """Tests for the forgetting curve."""

    def test_full_recall_right_after_review(self):
        assert retrievability(3.0, 0.0) == 1.0

    def test_half_life_at_nine_stabilities(self):
        assert retrievability(2.0, 18.0) == pytest.approx(0.5)

    def test_target_retention_at_stability(self):
        assert retrievability(4.0, 4.0) == pytest.approx(0.9)


class TestParameters:
    """Tests for parameter validation."""

    def test_wrong_weight_count(self):
        with pytest.raises(ValueError):
            FSRSParameters(w=(1.0, 2.0))

    @pytest.mark.parametrize("retention", [0.0, 1.0, 1.5])
    def test_retention_out_of_range(self, retention):
        with pytest.raises(ValueError):
            FSRSParameters(request_retention=retention)

    def test_parameters_are_immutable(self):
        with pytest.raises(AttributeError):
            DEFAULT_PARAMETERS.request_retention = 0.5
