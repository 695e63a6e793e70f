"""Card and review-log models."""

from __future__ import annotations

from ..core.extensions import db
from ..modules.srs.schemas import CardState, ReviewLogEntry, SchedulingState
from ..utils.time_utils import ensure_utc, utcnow
from .mixins import SoftDeleteMixin


class Card(SoftDeleteMixin, db.Model):
    """
    One flashcard with its flat SRS record.

    ``retrievability`` is null exactly while the card is New; after the first
    review it holds the last computed snapshot.
    """

    __tablename__ = 'cards'

    card_id = db.Column(db.Integer, primary_key=True)
    deck_id = db.Column(db.Integer, db.ForeignKey('decks.deck_id'), nullable=False, index=True)
    front = db.Column(db.Text, nullable=False)
    back = db.Column(db.Text, nullable=False)

    # SRS scheduling fields
    due = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    stability = db.Column(db.Float, nullable=False, default=0.0)
    difficulty = db.Column(db.Float, nullable=False, default=0.0)
    elapsed_days = db.Column(db.Integer, nullable=False, default=0)
    scheduled_days = db.Column(db.Integer, nullable=False, default=0)
    reps = db.Column(db.Integer, nullable=False, default=0)
    lapses = db.Column(db.Integer, nullable=False, default=0)
    state = db.Column(db.Integer, nullable=False, default=CardState.NEW)  # 0=New, 1=Learning, 2=Review, 3=Relearning
    last_review = db.Column(db.DateTime(timezone=True), nullable=True)
    retrievability = db.Column(db.Float, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    logs = db.relationship('ReviewLog', backref='card', lazy='dynamic', order_by='ReviewLog.reviewed_at')

    def to_state(self) -> SchedulingState:
        return SchedulingState(
            due=ensure_utc(self.due),
            stability=self.stability or 0.0,
            difficulty=self.difficulty or 0.0,
            elapsed_days=self.elapsed_days or 0,
            scheduled_days=self.scheduled_days or 0,
            reps=self.reps or 0,
            lapses=self.lapses or 0,
            state=self.state if self.state is not None else CardState.NEW,
            last_review=ensure_utc(self.last_review),
        )

    def apply_state(self, state: SchedulingState) -> None:
        self.due = state.due
        self.stability = state.stability
        self.difficulty = state.difficulty
        self.elapsed_days = state.elapsed_days
        self.scheduled_days = state.scheduled_days
        self.reps = state.reps
        self.lapses = state.lapses
        self.state = state.state
        self.last_review = state.last_review

    def to_dict(self):
        data = {
            'card_id': self.card_id,
            'deck_id': self.deck_id,
            'front': self.front,
            'back': self.back,
            'retrievability': self.retrievability,
        }
        data.update(self.to_state().to_dict())
        return data

    def __repr__(self):
        return f'<Card {self.card_id} deck={self.deck_id}>'


class ReviewLog(db.Model):
    """Immutable record of one review, holding the card's pre-review state."""

    __tablename__ = 'review_logs'

    log_id = db.Column(db.Integer, primary_key=True)
    card_id = db.Column(db.Integer, db.ForeignKey('cards.card_id'), nullable=False, index=True)
    rating = db.Column(db.Integer, nullable=False)
    answer_attempt = db.Column(db.Text, nullable=True)

    # Snapshot before the review
    state = db.Column(db.Integer, nullable=False)
    due = db.Column(db.DateTime(timezone=True), nullable=True)
    stability = db.Column(db.Float, nullable=False)
    difficulty = db.Column(db.Float, nullable=False)
    elapsed_days = db.Column(db.Integer, nullable=False)
    last_elapsed_days = db.Column(db.Integer, nullable=False)
    scheduled_days = db.Column(db.Integer, nullable=False)

    reviewed_at = db.Column(db.DateTime(timezone=True), nullable=False, index=True)

    @classmethod
    def from_entry(cls, card_id: int, entry: ReviewLogEntry, answer_attempt: str = None) -> 'ReviewLog':
        return cls(
            card_id=card_id,
            rating=entry.rating,
            answer_attempt=answer_attempt,
            state=entry.state,
            due=entry.due,
            stability=entry.stability,
            difficulty=entry.difficulty,
            elapsed_days=entry.elapsed_days,
            last_elapsed_days=entry.last_elapsed_days,
            scheduled_days=entry.scheduled_days,
            reviewed_at=entry.reviewed_at,
        )

    def to_dict(self):
        return {
            'log_id': self.log_id,
            'card_id': self.card_id,
            'rating': self.rating,
            'answer_attempt': self.answer_attempt,
            'state': self.state,
            'due': self.due.isoformat() if self.due else None,
            'stability': self.stability,
            'difficulty': self.difficulty,
            'elapsed_days': self.elapsed_days,
            'last_elapsed_days': self.last_elapsed_days,
            'scheduled_days': self.scheduled_days,
            'reviewed_at': self.reviewed_at.isoformat() if self.reviewed_at else None,
        }
