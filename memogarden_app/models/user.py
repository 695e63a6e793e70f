"""User model."""

from __future__ import annotations

from flask_login import UserMixin

from ..core.extensions import db
from ..utils.time_utils import utcnow
from .mixins import HealthAggregateMixin


class User(UserMixin, HealthAggregateMixin, db.Model):
    """Application user; owns decks and the account-level health snapshot."""

    __tablename__ = 'users'

    user_id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    # IANA zone name; None means the system fallback (UTC)
    timezone = db.Column(db.String(50), nullable=True)
    last_health_sync = db.Column(db.DateTime(timezone=True), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow)

    decks = db.relationship('Deck', backref='owner', lazy='dynamic')

    def get_id(self):
        return str(self.user_id)

    def to_dict(self):
        return {
            'user_id': self.user_id,
            'username': self.username,
            'timezone': self.timezone,
            'retrievability': self.retrievability,
            'last_health_sync': self.last_health_sync.isoformat() if self.last_health_sync else None,
        }

    def __repr__(self):
        return f'<User {self.username}>'
