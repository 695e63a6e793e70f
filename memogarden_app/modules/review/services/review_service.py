from __future__ import annotations

import datetime
import logging
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from memogarden_app.core.error_handlers import NotFoundError, PersistenceError
from memogarden_app.core.extensions import db
from memogarden_app.core.signals import card_reviewed
from memogarden_app.models import Card, ReviewLog, User
from memogarden_app.modules.srs.exceptions import InvalidRatingError
from memogarden_app.modules.srs.interface import SRSInterface
from memogarden_app.modules.srs.schemas import CardState, Rating
from memogarden_app.utils.time_utils import ensure_utc, get_day_end, user_timezone, utcnow
from ..schemas import CardsRemaining, DayBoundaryOutcome
from .card_service import CardService
from .deck_service import DeckService

logger = logging.getLogger(__name__)


class ReviewService:
    """
    Card lifecycle: review submission and the study-session queries around it.
    Handles DB interactions, engine calls and signal emission.
    """

    @staticmethod
    def _day_end_for(user_id: int, now: datetime.datetime) -> datetime.datetime:
        user = db.session.get(User, user_id)
        return get_day_end(now, user_timezone(user))

    @staticmethod
    def submit_review(
        user_id: int,
        card_id: int,
        answer_attempt: Optional[str],
        rating: int,
        now: Optional[datetime.datetime] = None,
    ) -> DayBoundaryOutcome:
        """
        Main entry point for processing a review.

        The card update, its review log and the aggregate increments are
        committed together or not at all.
        """
        if not Rating.is_valid(rating):
            raise InvalidRatingError(f"Rating must be 1-4, got {rating!r}")
        now = ensure_utc(now) or utcnow()

        # Row lock serialises concurrent reviews of the same card
        card = CardService.owned_card_query(user_id, card_id).with_for_update(of=Card).first()
        if card is None:
            raise NotFoundError('Card not found', resource='card')

        try:
            previous_retrievability = card.retrievability
            new_state, log_entry = SRSInterface.schedule(card.to_state(), rating, now)

            card.apply_state(new_state)
            card.retrievability = SRSInterface.retrievability(new_state, now)
            db.session.add(ReviewLog.from_entry(card.card_id, log_entry, answer_attempt))
            db.session.flush()

            card_reviewed.send(
                ReviewService,
                user_id=user_id,
                deck_id=card.deck_id,
                card_id=card.card_id,
                rating=rating,
                previous_retrievability=previous_retrievability,
                retrievability=card.retrievability,
                reviewed_at=now,
            )
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.error(f"Review failed for user {user_id} card {card_id}: {e}")
            raise PersistenceError('Could not save review') from e
        except Exception:
            db.session.rollback()
            raise

        logger.debug(
            f"Card {card_id} rated {Rating.LABELS[rating]}: "
            f"state={new_state.state} due={new_state.due.isoformat()}"
        )

        day_end = ReviewService._day_end_for(user_id, now)
        remaining = ReviewService.count_remaining(card.deck_id, day_end)
        return DayBoundaryOutcome(
            has_more_due=remaining.total > 0,
            day_end=day_end,
            card=new_state,
            remaining=remaining,
        )

    @staticmethod
    def count_remaining(deck_id: int, cutoff: datetime.datetime) -> CardsRemaining:
        rows = (
            db.session.query(Card.state, func.count(Card.card_id))
            .filter(Card.deck_id == deck_id, Card.not_deleted(), Card.due <= cutoff)
            .group_by(Card.state)
            .all()
        )
        remaining = CardsRemaining()
        for state, count in rows:
            if state == CardState.NEW:
                remaining.new += count
            elif state in (CardState.LEARNING, CardState.RELEARNING):
                remaining.learning += count
            else:
                remaining.review += count
        return remaining

    @staticmethod
    def get_cards_remaining(user_id: int, deck_id: int, now: Optional[datetime.datetime] = None) -> CardsRemaining:
        DeckService.get_owned_deck(user_id, deck_id)
        now = ensure_utc(now) or utcnow()
        return ReviewService.count_remaining(deck_id, ReviewService._day_end_for(user_id, now))

    @staticmethod
    def get_all_cards_remaining(user_id: int, now: Optional[datetime.datetime] = None) -> Dict[int, CardsRemaining]:
        now = ensure_utc(now) or utcnow()
        day_end = ReviewService._day_end_for(user_id, now)
        return {
            deck.deck_id: ReviewService.count_remaining(deck.deck_id, day_end)
            for deck in DeckService.list_decks(user_id)
        }

    @staticmethod
    def get_next_card(user_id: int, deck_id: int, now: Optional[datetime.datetime] = None) -> Optional[Card]:
        """Earliest-due card of the deck that belongs to today's session."""
        DeckService.get_owned_deck(user_id, deck_id)
        now = ensure_utc(now) or utcnow()
        day_end = ReviewService._day_end_for(user_id, now)
        return (
            Card.query.filter(Card.deck_id == deck_id, Card.not_deleted(), Card.due <= day_end)
            .order_by(Card.due, Card.card_id)
            .first()
        )

    @staticmethod
    def get_revision_options(user_id: int, card_id: int, now: Optional[datetime.datetime] = None) -> List[dict]:
        """Due date each rating would produce, for the rating buttons."""
        card = CardService.get_owned_card(user_id, card_id)
        now = ensure_utc(now) or utcnow()
        options = SRSInterface.preview(card.to_state(), now)
        return [options[rating].to_dict() for rating in Rating.ALL]
