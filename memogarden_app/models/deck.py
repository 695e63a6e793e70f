"""Deck model."""

from __future__ import annotations

from ..core.extensions import db
from ..utils.time_utils import utcnow
from .mixins import HealthAggregateMixin, SoftDeleteMixin


class Deck(SoftDeleteMixin, HealthAggregateMixin, db.Model):
    """Named collection of cards belonging to one user."""

    __tablename__ = 'decks'

    deck_id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.user_id'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.Text, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    cards = db.relationship('Card', backref='deck', lazy='dynamic')

    def to_dict(self):
        return {
            'deck_id': self.deck_id,
            'user_id': self.user_id,
            'name': self.name,
            'description': self.description,
            'retrievability': self.retrievability,
        }

    def __repr__(self):
        return f'<Deck {self.deck_id} {self.name!r}>'
