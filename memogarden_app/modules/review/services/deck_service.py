from __future__ import annotations

import datetime
import logging
from typing import Callable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from memogarden_app.core.error_handlers import NotFoundError, PersistenceError, ValidationError
from memogarden_app.core.extensions import db
from memogarden_app.models import Card, Deck, User
from memogarden_app.modules.health.services.health_service import HealthService
from memogarden_app.utils.time_utils import ensure_utc, utcnow

logger = logging.getLogger(__name__)


def _clean_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError('Deck name is required', errors={'name': 'required'})
    return name.strip()


def commit_changes(action: str, rebuild: Optional[Callable[[], None]] = None) -> None:
    """Commit the session, running ``rebuild`` after a flush; roll back on failure."""
    try:
        if rebuild is not None:
            db.session.flush()
            rebuild()
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"Failed to {action}: {e}")
        raise PersistenceError(f'Could not {action}') from e


class DeckService:
    """Deck CRUD, scoped to the owning user."""

    @staticmethod
    def get_owned_deck(user_id: int, deck_id: int) -> Deck:
        deck = Deck.query.filter(
            Deck.deck_id == deck_id,
            Deck.user_id == user_id,
            Deck.not_deleted(),
        ).first()
        if deck is None:
            raise NotFoundError('Deck not found', resource='deck')
        return deck

    @staticmethod
    def list_decks(user_id: int) -> List[Deck]:
        return (
            Deck.query.filter(Deck.user_id == user_id, Deck.not_deleted())
            .order_by(Deck.deck_id)
            .all()
        )

    @staticmethod
    def create_deck(user_id: int, name: str, description: Optional[str] = None) -> Deck:
        name = _clean_name(name)
        if db.session.get(User, user_id) is None:
            raise NotFoundError('User not found', resource='user')

        deck = Deck(user_id=user_id, name=name, description=description)
        db.session.add(deck)
        commit_changes('create deck')
        return deck

    @staticmethod
    def rename_deck(user_id: int, deck_id: int, name: str, description: Optional[str] = None) -> Deck:
        deck = DeckService.get_owned_deck(user_id, deck_id)
        deck.name = _clean_name(name)
        if description is not None:
            deck.description = description
        commit_changes('rename deck')
        return deck

    @staticmethod
    def remove_deck(user_id: int, deck_id: int, now: Optional[datetime.datetime] = None) -> None:
        """Soft-delete the deck and every card in it, then rebuild the account aggregate."""
        deck = DeckService.get_owned_deck(user_id, deck_id)
        now = ensure_utc(now) or utcnow()

        deck.soft_delete(now)

        def rebuild():
            db.session.execute(
                update(Card)
                .where(Card.deck_id == deck_id, Card.not_deleted())
                .values(deleted_at=now)
                .execution_options(synchronize_session=False)
            )
            HealthService.sync_deck_health(deck_id)
            HealthService.sync_user_aggregate(user_id)

        commit_changes('remove deck', rebuild)
        logger.info(f"Deck {deck_id} removed for user {user_id}")
