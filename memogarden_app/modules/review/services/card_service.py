from __future__ import annotations

import datetime
import logging
from typing import Optional

from memogarden_app.core.error_handlers import NotFoundError, ValidationError
from memogarden_app.core.extensions import db
from memogarden_app.models import Card, Deck
from memogarden_app.modules.health.services.health_service import HealthService
from memogarden_app.modules.srs.schemas import CardState
from memogarden_app.utils.time_utils import ensure_utc, utcnow
from .deck_service import DeckService, commit_changes

logger = logging.getLogger(__name__)


def _require_text(errors: dict, field: str, value) -> None:
    if not isinstance(value, str) or not value.strip():
        errors[field] = 'required'


class CardService:
    """Card CRUD. Membership changes rebuild the affected aggregates."""

    @staticmethod
    def owned_card_query(user_id: int, card_id: int):
        """Live card reachable through a live deck owned by ``user_id``."""
        return (
            Card.query.join(Deck, Card.deck_id == Deck.deck_id)
            .filter(
                Card.card_id == card_id,
                Deck.user_id == user_id,
                Card.not_deleted(),
                Deck.not_deleted(),
            )
        )

    @staticmethod
    def get_owned_card(user_id: int, card_id: int) -> Card:
        card = CardService.owned_card_query(user_id, card_id).first()
        if card is None:
            raise NotFoundError('Card not found', resource='card')
        return card

    @staticmethod
    def create_card(
        user_id: int,
        deck_id: int,
        front: str,
        back: str,
        now: Optional[datetime.datetime] = None,
    ) -> Card:
        errors = {}
        _require_text(errors, 'front', front)
        _require_text(errors, 'back', back)
        if errors:
            raise ValidationError('Card front and back are required', errors=errors)

        DeckService.get_owned_deck(user_id, deck_id)
        card = Card(
            deck_id=deck_id,
            front=front,
            back=back,
            due=ensure_utc(now) or utcnow(),
            state=CardState.NEW,
            retrievability=None,
        )
        db.session.add(card)
        commit_changes('create card')
        return card

    @staticmethod
    def edit_card(
        user_id: int,
        card_id: int,
        front: Optional[str] = None,
        back: Optional[str] = None,
        deck_id: Optional[int] = None,
    ) -> Card:
        card = CardService.get_owned_card(user_id, card_id)

        errors = {}
        if front is not None:
            _require_text(errors, 'front', front)
        if back is not None:
            _require_text(errors, 'back', back)
        if errors:
            raise ValidationError('Card front and back cannot be blank', errors=errors)

        if front is not None:
            card.front = front
        if back is not None:
            card.back = back

        if deck_id is not None and deck_id != card.deck_id:
            DeckService.get_owned_deck(user_id, deck_id)
            previous_deck_id = card.deck_id
            card.deck_id = deck_id

            def rebuild():
                HealthService.sync_deck_health(previous_deck_id)
                HealthService.sync_deck_health(deck_id)

            commit_changes('move card', rebuild)
            logger.info(f"Card {card_id} moved from deck {previous_deck_id} to {deck_id}")
            return card

        commit_changes('edit card')
        return card

    @staticmethod
    def remove_card(user_id: int, card_id: int, now: Optional[datetime.datetime] = None) -> None:
        """Soft-delete a card; its review logs stay in place."""
        card = CardService.get_owned_card(user_id, card_id)
        card.soft_delete(ensure_utc(now) or utcnow())
        deck_id = card.deck_id

        def rebuild():
            HealthService.sync_deck_health(deck_id)
            HealthService.sync_user_aggregate(user_id)

        commit_changes('remove card', rebuild)
