"""
Tests for the Retrievability Calculator

Tests cover:
- Null for never-reviewed cards
- Shape of the forgetting curve
- Clamping for out-of-order timestamps
"""

from datetime import datetime, timedelta, timezone

import pytest

from memogarden_app.modules.srs.engine.retrievability import (
    DEFAULT_DECAY,
    decay_for,
    forgetting_curve,
    forgetting_factor,
    retrievability,
)
from memogarden_app.modules.srs.schemas import CardState, SchedulingState

LAST_REVIEW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def reviewed(stability=10.0, state=CardState.REVIEW, **extra):
    fields = dict(
        due=LAST_REVIEW + timedelta(days=10),
        stability=stability,
        difficulty=5.0,
        scheduled_days=10,
        reps=3,
        state=state,
        last_review=LAST_REVIEW,
    )
    fields.update(extra)
    return SchedulingState(**fields)


class TestNullability:

    def test_new_card_has_no_retrievability(self):
        assert retrievability(SchedulingState(due=LAST_REVIEW), LAST_REVIEW) is None

    @pytest.mark.parametrize('state', [CardState.LEARNING, CardState.REVIEW, CardState.RELEARNING])
    def test_reviewed_card_has_value(self, state):
        assert retrievability(reviewed(state=state), LAST_REVIEW) is not None


class TestForgettingCurve:

    def test_full_recall_right_after_review(self):
        assert retrievability(reviewed(), LAST_REVIEW) == pytest.approx(1.0)

    def test_ninety_percent_after_stability_days(self):
        """Stability is the number of days until recall drops to 90%."""
        value = retrievability(reviewed(stability=10.0), LAST_REVIEW + timedelta(days=10))
        assert value == pytest.approx(0.9)

    def test_non_increasing_over_time(self):
        card = reviewed(stability=4.0)
        values = [retrievability(card, LAST_REVIEW + timedelta(hours=6 * step)) for step in range(200)]
        assert all(later <= earlier for earlier, later in zip(values, values[1:]))

    def test_higher_stability_decays_slower(self):
        as_of = LAST_REVIEW + timedelta(days=20)
        assert retrievability(reviewed(stability=30.0), as_of) > retrievability(reviewed(stability=5.0), as_of)

    def test_stays_in_unit_interval_far_in_future(self):
        value = retrievability(reviewed(stability=0.0), LAST_REVIEW + timedelta(days=100000))
        assert 0.0 <= value <= 1.0

    def test_factor_for_default_decay(self):
        assert forgetting_factor(DEFAULT_DECAY) == pytest.approx(19.0 / 81.0)

    def test_curve_clamps_negative_elapsed(self):
        assert forgetting_curve(-3.0, 2.0) == pytest.approx(1.0)


class TestOutOfOrderTimestamps:

    def test_as_of_before_last_review_is_full_recall(self):
        value = retrievability(reviewed(), LAST_REVIEW - timedelta(days=3))
        assert value == pytest.approx(1.0)

    def test_naive_as_of_is_read_as_utc(self):
        aware = retrievability(reviewed(), LAST_REVIEW + timedelta(days=4))
        naive = retrievability(reviewed(), (LAST_REVIEW + timedelta(days=4)).replace(tzinfo=None))
        assert aware == naive

    def test_missing_last_review_uses_due_minus_interval(self):
        card = reviewed(last_review=None)
        assert retrievability(card, LAST_REVIEW + timedelta(days=10)) == pytest.approx(0.9)


class TestDecayParameter:

    def test_short_parameter_set_uses_default_decay(self):
        assert decay_for([0.4] * 19) == DEFAULT_DECAY

    def test_long_parameter_set_carries_decay(self):
        params = [0.4] * 20 + [0.2]
        assert decay_for(params) == pytest.approx(-0.2)

    def test_any_decay_keeps_ninety_percent_at_stability(self):
        assert forgetting_curve(7.0, 7.0, decay=-0.2) == pytest.approx(0.9)
