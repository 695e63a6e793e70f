"""
Tests for the account health sync

Tests cover:
- Once-per-local-day lazy sync
- Aggregate correctness and exclusions
- Idempotence of forced syncs
- Failure isolation for the best-effort variant
"""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import event

from conftest import NOW
from memogarden_app import db
from memogarden_app.core.error_handlers import NotFoundError, PersistenceError
from memogarden_app.models import Card, Deck, User
from memogarden_app.modules.health.logics.health_state import (
    HealthState,
    get_health_progress,
    to_health_state,
)
from memogarden_app.modules.health.services.health_service import HealthService
from memogarden_app.modules.health.tasks import run_health_sync
from memogarden_app.modules.review.services.review_service import ReviewService
from memogarden_app.modules.srs.schemas import CardState, Rating
from memogarden_app.utils.time_utils import ensure_utc

NOON = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def reviewed_fields(stability=10.0, days_ago=10, **extra):
    fields = dict(
        state=CardState.REVIEW,
        stability=stability,
        difficulty=5.0,
        scheduled_days=days_ago,
        reps=3,
        last_review=NOON - timedelta(days=days_ago),
        due=NOON,
        retrievability=1.0,
    )
    fields.update(extra)
    return fields


class TestLazySync:

    def test_runs_once_per_local_day(self, app, make_user, make_deck, make_card):
        user = make_user()
        make_card(make_deck(user), **reviewed_fields())

        assert HealthService.sync_account_health(user.user_id, now=NOW) is True
        first = db.session.get(User, user.user_id).retrievability

        assert HealthService.sync_account_health(user.user_id, now=NOW + timedelta(hours=3)) is False
        assert db.session.get(User, user.user_id).retrievability == first
        assert ensure_utc(db.session.get(User, user.user_id).last_health_sync) == NOW

    def test_runs_again_next_day(self, app, make_user):
        user = make_user()

        assert HealthService.sync_account_health(user.user_id, now=NOW) is True
        assert HealthService.sync_account_health(user.user_id, now=NOW + timedelta(days=1)) is True

    def test_day_rollover_follows_user_timezone(self, app, make_user):
        """14:00 UTC is 23:00 in Tokyo; 15:30 UTC is already the next day there."""
        user = make_user(tz='Asia/Tokyo')
        evening = datetime(2024, 5, 1, 14, 0, tzinfo=timezone.utc)

        assert HealthService.sync_account_health(user.user_id, now=evening) is True
        assert HealthService.sync_account_health(user.user_id, now=evening + timedelta(minutes=50)) is False
        assert HealthService.sync_account_health(user.user_id, now=evening + timedelta(minutes=90)) is True

    def test_missing_user(self, app):
        assert HealthService.sync_account_health(404, now=NOW) is False

    def test_try_sync_swallows_failures(self, app, make_user, monkeypatch):
        user = make_user()

        def boom(user_id, now=None):
            raise PersistenceError('Could not sync account health')

        monkeypatch.setattr(HealthService, 'force_sync_account_health', boom)

        assert HealthService.try_sync_account_health(user.user_id, now=NOW) is False
        assert db.session.get(User, user.user_id).last_health_sync is None


class TestForceSync:

    def test_cards_evaluated_at_local_noon(self, app, make_user, make_deck, make_card):
        user = make_user()
        deck = make_deck(user)
        card = make_card(deck, **reviewed_fields(stability=10.0, days_ago=10))

        # Evening run still anchors to noon: exactly ten days after the review
        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert db.session.get(Card, card.card_id).retrievability == pytest.approx(0.9)
        assert db.session.get(Deck, deck.deck_id).retrievability == pytest.approx(0.9)
        assert db.session.get(User, user.user_id).retrievability == pytest.approx(0.9)

    def test_same_day_runs_are_identical(self, app, make_user, make_deck, make_card):
        user = make_user()
        deck = make_deck(user)
        make_card(deck, **reviewed_fields(stability=3.0, days_ago=4))
        make_card(deck, **reviewed_fields(stability=30.0, days_ago=20))

        HealthService.force_sync_account_health(user.user_id, now=NOW - timedelta(hours=5))
        first = db.session.get(User, user.user_id).retrievability
        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert db.session.get(User, user.user_id).retrievability == first

    def test_excludes_new_and_deleted_cards(self, app, make_user, make_deck, make_card):
        user = make_user()
        deck = make_deck(user)
        make_card(deck, **reviewed_fields(stability=10.0, days_ago=10))
        make_card(deck)
        make_card(deck, **reviewed_fields(stability=1.0, days_ago=30, deleted_at=NOW))

        count = HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert count == 2
        deck = db.session.get(Deck, deck.deck_id)
        assert deck.retrievability_count == 1
        assert deck.retrievability == pytest.approx(0.9)

    def test_deleted_deck_leaves_account(self, app, make_user, make_deck, make_card):
        user = make_user()
        live = make_deck(user, 'Live')
        gone = make_deck(user, 'Gone')
        make_card(live, **reviewed_fields(stability=10.0, days_ago=10))
        make_card(gone, **reviewed_fields(stability=1.0, days_ago=30))
        gone.soft_delete(NOW)
        db.session.commit()

        HealthService.force_sync_account_health(user.user_id, now=NOW)

        user = db.session.get(User, user.user_id)
        assert user.retrievability_count == 1
        assert user.retrievability == pytest.approx(0.9)

    def test_empty_deck_has_no_value(self, app, make_user, make_deck, make_card):
        user = make_user()
        empty = make_deck(user, 'Empty')
        new_only = make_deck(user, 'New only')
        make_card(new_only)

        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert db.session.get(Deck, empty.deck_id).retrievability is None
        assert db.session.get(Deck, new_only.deck_id).retrievability is None
        assert db.session.get(User, user.user_id).retrievability is None

    def test_other_users_untouched(self, app, make_user, make_deck, make_card):
        user = make_user()
        other = make_user('other')
        card = make_card(make_deck(other), **reviewed_fields(retrievability=0.42))

        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert db.session.get(Card, card.card_id).retrievability == pytest.approx(0.42)

    def test_missing_user(self, app):
        with pytest.raises(NotFoundError):
            HealthService.force_sync_account_health(404, now=NOW)


class TestIncrementalUpdate:

    def test_moves_card_contribution(self, app, make_user, make_deck):
        user = make_user()
        deck = make_deck(user)

        HealthService.apply_card_change(user.user_id, deck.deck_id, None, 0.5)
        HealthService.apply_card_change(user.user_id, deck.deck_id, None, 1.0)
        HealthService.apply_card_change(user.user_id, deck.deck_id, 0.5, 0.8)
        db.session.commit()

        deck = db.session.get(Deck, deck.deck_id)
        assert deck.retrievability_count == 2
        assert deck.retrievability == pytest.approx(0.9)


class TestDailyJob:

    def test_counts_synced_accounts(self, app, make_user):
        make_user('a')
        make_user('b')

        assert run_health_sync(NOW) == 2
        assert run_health_sync(NOW + timedelta(hours=1)) == 0


class TestAccountHealth:

    def test_payload(self, app, make_user, make_deck, make_card):
        user = make_user()
        deck = make_deck(user, 'Verbs')
        make_card(deck, **reviewed_fields(stability=10.0, days_ago=10))
        HealthService.force_sync_account_health(user.user_id, now=NOW)

        health = HealthService.get_account_health(user.user_id)

        assert health['account']['health_state'] == HealthState.VIBRANT
        assert health['account']['last_health_sync'] is not None
        assert health['decks'][0]['name'] == 'Verbs'
        assert health['decks'][0]['retrievability'] == pytest.approx(0.9)


class TestHealthState:

    @pytest.mark.parametrize('value, expected', [
        (1.0, HealthState.VIBRANT),
        (0.9, HealthState.VIBRANT),
        (0.85, HealthState.THIRSTY),
        (0.5, HealthState.WILTING),
        (0.1, HealthState.WITHERING),
        (None, HealthState.WITHERING),
    ])
    def test_bands(self, value, expected):
        assert to_health_state(value) == expected

    @pytest.mark.parametrize('value', [0.95, 0.85, 0.6, 0.2])
    def test_progress_midway(self, value):
        assert get_health_progress(value) == pytest.approx(0.5)


@pytest.fixture
def updated_tables(app):
    """Tables hit by UPDATE statements, in execution order."""
    tables = []

    def record(conn, cursor, statement, parameters, context, executemany):
        words = statement.split()
        if words[0].upper() == 'UPDATE':
            tables.append(words[1].strip('"'))

    event.listen(db.engine, 'before_cursor_execute', record)
    yield tables
    event.remove(db.engine, 'before_cursor_execute', record)


def in_sequence(tables):
    collapsed = []
    for table in tables:
        if not collapsed or collapsed[-1] != table:
            collapsed.append(table)
    return collapsed


class TestWriteOrder:
    """Reviews and the bulk sync write cards, decks and users in the same order."""

    def test_sync_writes_cards_before_aggregates(self, app, make_user, make_deck, make_card, updated_tables):
        user = make_user()
        make_card(make_deck(user), **reviewed_fields())
        del updated_tables[:]

        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert in_sequence(updated_tables) == ['cards', 'decks', 'users']

    def test_review_writes_cards_before_aggregates(self, app, make_user, make_deck, make_card, updated_tables):
        user = make_user()
        card = make_card(make_deck(user))
        del updated_tables[:]

        ReviewService.submit_review(user.user_id, card.card_id, None, Rating.Good, now=NOW)

        assert in_sequence(updated_tables) == ['cards', 'decks', 'users']

    def test_sync_does_not_lock_user_up_front(self, app, make_user, monkeypatch):
        user = make_user()
        get = db.session.get
        locked = []

        def tracking_get(entity, ident, **kwargs):
            if kwargs.get('with_for_update'):
                locked.append(entity)
            return get(entity, ident, **kwargs)

        monkeypatch.setattr(db.session, 'get', tracking_get)

        HealthService.force_sync_account_health(user.user_id, now=NOW)

        assert locked == []
