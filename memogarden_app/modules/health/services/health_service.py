from __future__ import annotations

import datetime
import logging
from typing import Any, Dict, Optional

from sqlalchemy import bindparam, func, select, update
from sqlalchemy.exc import SQLAlchemyError

from memogarden_app.core.error_handlers import MemoGardenError, NotFoundError, PersistenceError
from memogarden_app.core.extensions import db
from memogarden_app.models import Card, Deck, User
from memogarden_app.modules.srs.engine.retrievability import retrievability
from memogarden_app.modules.srs.schemas import SchedulingState
from memogarden_app.modules.srs.services.settings_service import SRSSettingsService
from memogarden_app.utils.time_utils import ensure_utc, local_date, local_noon, user_timezone, utcnow
from ..logics.health_state import get_health_progress, to_health_state

logger = logging.getLogger(__name__)

_cards = Card.__table__

# Compare-and-set on reps: a card reviewed after it was read keeps its fresh value
_CARD_RETRIEVABILITY_UPDATE = (
    update(_cards)
    .where(_cards.c.card_id == bindparam('b_card_id'))
    .where(_cards.c.reps == bindparam('b_reps'))
    .values(retrievability=bindparam('b_retrievability'))
)


class HealthService:
    """
    Deck and account retrievability aggregates.

    Aggregates are stored as running sums and counts. Reviews adjust them
    incrementally; the daily sync and membership changes rebuild them from
    persisted card values.
    """

    # ------------------------------------------------------------------
    # Lazy / bulk sync
    # ------------------------------------------------------------------

    @staticmethod
    def is_sync_due(user: User, now: datetime.datetime) -> bool:
        if user.last_health_sync is None:
            return True
        tz_name = user_timezone(user)
        return local_date(user.last_health_sync, tz_name) != local_date(now, tz_name)

    @staticmethod
    def sync_account_health(user_id: int, now: Optional[datetime.datetime] = None) -> bool:
        """Resync the account if its local day has rolled over. Returns whether it ran."""
        now = ensure_utc(now) or utcnow()
        user = db.session.get(User, user_id)
        if user is None:
            return False
        if not HealthService.is_sync_due(user, now):
            return False
        HealthService.force_sync_account_health(user_id, now)
        return True

    @staticmethod
    def try_sync_account_health(user_id: int, now: Optional[datetime.datetime] = None) -> bool:
        """Best-effort variant for request hooks: failures are logged, never raised."""
        try:
            return HealthService.sync_account_health(user_id, now)
        except (MemoGardenError, SQLAlchemyError):
            db.session.rollback()
            logger.exception(f"Health sync failed for user {user_id}; will retry on next request")
            return False

    @staticmethod
    def force_sync_account_health(user_id: int, now: Optional[datetime.datetime] = None) -> int:
        """
        Recompute every live card, deck and the account aggregate.

        Cards are evaluated at noon of the user's local day so that repeated
        runs on the same day write identical values. Returns the number of
        cards evaluated.
        """
        now = ensure_utc(now) or utcnow()
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFoundError('User not found', resource='user')

        anchor = local_noon(now, user_timezone(user))
        decay = SRSSettingsService.get_decay()

        rows = (
            db.session.query(
                Card.card_id, Card.reps, Card.state, Card.stability,
                Card.scheduled_days, Card.due, Card.last_review,
            )
            .join(Deck, Card.deck_id == Deck.deck_id)
            .filter(Deck.user_id == user_id, Deck.not_deleted(), Card.not_deleted())
            .order_by(Card.card_id)
            .all()
        )

        updates = []
        for row in rows:
            state = SchedulingState(
                due=ensure_utc(row.due),
                stability=row.stability or 0.0,
                scheduled_days=row.scheduled_days or 0,
                state=row.state,
                last_review=ensure_utc(row.last_review),
            )
            updates.append({
                'b_card_id': row.card_id,
                'b_reps': row.reps,
                'b_retrievability': retrievability(state, anchor, decay),
            })

        # Rows are written cards, then decks, then the user: the order reviews lock them in
        try:
            if updates:
                db.session.execute(_CARD_RETRIEVABILITY_UPDATE, updates)
            HealthService._rebuild_decks(Deck.user_id == user_id)
            HealthService._rebuild_users(User.user_id == user_id)
            user.last_health_sync = now
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Health sync failed for user {user_id}: {e}")
            raise PersistenceError('Could not sync account health') from e

        logger.info(f"Synced health for user {user_id}: {len(updates)} cards as of {anchor.isoformat()}")
        return len(updates)

    # ------------------------------------------------------------------
    # Targeted rebuilds (membership changes)
    # ------------------------------------------------------------------

    @staticmethod
    def sync_deck_health(deck_id: int) -> None:
        """Rebuild one deck's aggregate from its live cards. Caller commits."""
        HealthService._rebuild_decks(Deck.deck_id == deck_id)

    @staticmethod
    def sync_user_aggregate(user_id: int) -> None:
        """Rebuild the account aggregate from all live cards. Caller commits."""
        HealthService._rebuild_users(User.user_id == user_id)

    @staticmethod
    def _rebuild_decks(criterion) -> None:
        live_cards = (Card.deck_id == Deck.deck_id, Card.not_deleted())
        total = (
            select(func.coalesce(func.sum(Card.retrievability), 0.0))
            .where(*live_cards)
            .scalar_subquery()
        )
        count = (
            select(func.count(Card.retrievability))
            .where(*live_cards)
            .scalar_subquery()
        )
        db.session.execute(
            update(Deck)
            .where(criterion)
            .values(retrievability_total=total, retrievability_count=count)
            .execution_options(synchronize_session=False)
        )

    @staticmethod
    def _rebuild_users(criterion) -> None:
        def live_cards(column):
            return (
                select(column)
                .select_from(Card)
                .join(Deck, Card.deck_id == Deck.deck_id)
                .where(Deck.user_id == User.user_id, Deck.not_deleted(), Card.not_deleted())
                .scalar_subquery()
            )

        db.session.execute(
            update(User)
            .where(criterion)
            .values(
                retrievability_total=live_cards(func.coalesce(func.sum(Card.retrievability), 0.0)),
                retrievability_count=live_cards(func.count(Card.retrievability)),
            )
            .execution_options(synchronize_session=False)
        )

    # ------------------------------------------------------------------
    # Incremental update (reviews)
    # ------------------------------------------------------------------

    @staticmethod
    def apply_card_change(
        user_id: int,
        deck_id: int,
        previous: Optional[float],
        current: Optional[float],
    ) -> None:
        """
        Move one card's contribution from ``previous`` to ``current`` in its
        deck and account aggregates. Runs in the caller's transaction.
        """
        delta_total = (current or 0.0) - (previous or 0.0)
        delta_count = int(current is not None) - int(previous is not None)
        if not delta_total and not delta_count:
            return

        for model, criterion in (
            (Deck, Deck.deck_id == deck_id),
            (User, User.user_id == user_id),
        ):
            db.session.execute(
                update(model)
                .where(criterion)
                .values(
                    retrievability_total=model.retrievability_total + delta_total,
                    retrievability_count=model.retrievability_count + delta_count,
                )
                .execution_options(synchronize_session=False)
            )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @staticmethod
    def describe(retrievability_value: Optional[float]) -> Dict[str, Any]:
        return {
            'retrievability': retrievability_value,
            'health_state': to_health_state(retrievability_value),
            'progress': round(get_health_progress(retrievability_value), 4),
        }

    @staticmethod
    def get_account_health(user_id: int) -> Dict[str, Any]:
        user = db.session.get(User, user_id)
        if user is None:
            raise NotFoundError('User not found', resource='user')
        decks = (
            Deck.query.filter(Deck.user_id == user_id, Deck.not_deleted())
            .order_by(Deck.deck_id)
            .all()
        )
        account = HealthService.describe(user.retrievability)
        account['last_health_sync'] = user.last_health_sync.isoformat() if user.last_health_sync else None
        return {
            'account': account,
            'decks': [
                dict(HealthService.describe(deck.retrievability), deck_id=deck.deck_id, name=deck.name)
                for deck in decks
            ],
        }
