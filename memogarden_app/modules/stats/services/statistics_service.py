from __future__ import annotations

import datetime
from collections import Counter
from typing import Dict, List, Optional

from sqlalchemy import func

from memogarden_app.core.extensions import db
from memogarden_app.models import Card, Deck, ReviewLog, User
from memogarden_app.modules.srs.engine.maturity import classify
from memogarden_app.modules.srs.schemas import CardMaturity, CardState
from memogarden_app.utils.time_utils import (
    ensure_utc,
    local_date,
    local_day_range,
    user_timezone,
    utcnow,
)

RETROSPECTION_LIMIT = 30
PREDICTION_LIMIT = 30


class StatisticsService:
    """Read-only statistics over a user's cards and reviews, in the user's timezone."""

    @staticmethod
    def _live_cards(user_id: int, deck_id: Optional[int] = None):
        query = (
            db.session.query(Card)
            .join(Deck, Card.deck_id == Deck.deck_id)
            .filter(Deck.user_id == user_id, Deck.not_deleted(), Card.not_deleted())
        )
        if deck_id is not None:
            query = query.filter(Card.deck_id == deck_id)
        return query

    @staticmethod
    def _reviews(entity, user_id: int, deck_id: Optional[int] = None):
        """
        Review logs of the user, including those of deleted cards and decks:
        those reviews still happened.
        """
        query = (
            db.session.query(entity)
            .select_from(ReviewLog)
            .join(Card, ReviewLog.card_id == Card.card_id)
            .join(Deck, Card.deck_id == Deck.deck_id)
            .filter(Deck.user_id == user_id)
        )
        if deck_id is not None:
            query = query.filter(Card.deck_id == deck_id)
        return query

    @staticmethod
    def _timezone(user_id: int) -> Optional[str]:
        return user_timezone(db.session.get(User, user_id))

    @staticmethod
    def count_cards(user_id: int, deck_id: Optional[int] = None) -> int:
        return StatisticsService._live_cards(user_id, deck_id).count()

    @staticmethod
    def count_reviews(user_id: int, deck_id: Optional[int] = None) -> int:
        query = StatisticsService._reviews(func.count(ReviewLog.log_id), user_id, deck_id)
        return query.scalar() or 0

    @staticmethod
    def count_cards_by_maturity(user_id: int, deck_id: Optional[int] = None) -> Dict[str, int]:
        """Card count per maturity stage, every stage present, in stage order."""
        rows = (
            StatisticsService._live_cards(user_id, deck_id)
            .with_entities(Card.state, Card.scheduled_days, func.count(Card.card_id))
            .group_by(Card.state, Card.scheduled_days)
            .all()
        )
        counts = dict.fromkeys(CardMaturity.ALL, 0)
        for state, scheduled_days, count in rows:
            counts[classify(state, scheduled_days or 0)] += count
        return counts

    @staticmethod
    def review_history(
        user_id: int,
        now: Optional[datetime.datetime] = None,
        days: int = RETROSPECTION_LIMIT,
        deck_id: Optional[int] = None,
    ) -> List[dict]:
        """Reviews per local day for the last ``days`` days, oldest first, today included."""
        now = ensure_utc(now) or utcnow()
        tz_name = StatisticsService._timezone(user_id)
        first_day = local_date(now, tz_name) - datetime.timedelta(days=days - 1)
        buckets = list(local_day_range(first_day, days, tz_name))

        timestamps = (
            StatisticsService._reviews(ReviewLog.reviewed_at, user_id, deck_id)
            .filter(
                ReviewLog.reviewed_at >= buckets[0][1],
                ReviewLog.reviewed_at <= buckets[-1][2],
            )
            .all()
        )
        per_day = Counter(local_date(reviewed_at, tz_name) for (reviewed_at,) in timestamps)
        return [{'date': day.isoformat(), 'count': per_day.get(day, 0)} for day, _, _ in buckets]

    @staticmethod
    def due_forecast(
        user_id: int,
        now: Optional[datetime.datetime] = None,
        days: int = PREDICTION_LIMIT,
        deck_id: Optional[int] = None,
    ) -> List[dict]:
        """
        Cards falling due per local day for the next ``days`` days, starting today.
        Overdue cards count toward today; never-reviewed cards are left out.
        """
        now = ensure_utc(now) or utcnow()
        tz_name = StatisticsService._timezone(user_id)
        buckets = list(local_day_range(local_date(now, tz_name), days, tz_name))
        today = buckets[0][0]

        dues = (
            StatisticsService._live_cards(user_id, deck_id)
            .with_entities(Card.due)
            .filter(Card.state != CardState.NEW, Card.due <= buckets[-1][2])
            .all()
        )
        per_day = Counter(max(today, local_date(due, tz_name)) for (due,) in dues)
        return [{'date': day.isoformat(), 'count': per_day.get(day, 0)} for day, _, _ in buckets]

    @staticmethod
    def get_summary(user_id: int, deck_id: Optional[int] = None, now: Optional[datetime.datetime] = None) -> dict:
        return {
            'cards': StatisticsService.count_cards(user_id, deck_id),
            'reviews': StatisticsService.count_reviews(user_id, deck_id),
            'maturity': StatisticsService.count_cards_by_maturity(user_id, deck_id),
            'review_history': StatisticsService.review_history(user_id, now, deck_id=deck_id),
            'due_forecast': StatisticsService.due_forecast(user_id, now, deck_id=deck_id),
        }
