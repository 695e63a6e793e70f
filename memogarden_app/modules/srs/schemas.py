# File: memogarden_app/modules/srs/schemas.py
import datetime
from dataclasses import dataclass
from typing import Optional


# Self-assessed recall quality (1-4), ordinal
class Rating:
    Again = 1
    Hard = 2
    Good = 3
    Easy = 4

    ALL = (Again, Hard, Good, Easy)
    LABELS = {Again: 'again', Hard: 'hard', Good: 'good', Easy: 'easy'}

    @classmethod
    def is_valid(cls, value) -> bool:
        return isinstance(value, int) and not isinstance(value, bool) and value in cls.ALL


# Scheduling phase of a card
class CardState:
    NEW = 0
    LEARNING = 1
    REVIEW = 2
    RELEARNING = 3

    ALL = (NEW, LEARNING, REVIEW, RELEARNING)
    LABELS = {NEW: 'new', LEARNING: 'learning', REVIEW: 'review', RELEARNING: 'relearning'}


# Display stage derived from state + interval; never stored
class CardMaturity:
    SEED = 'seed'
    SPROUT = 'sprout'
    SAPLING = 'sapling'
    BUDDING = 'budding'
    MATURE = 'mature'
    MIGHTY = 'mighty'

    ALL = (SEED, SPROUT, SAPLING, BUDDING, MATURE, MIGHTY)


@dataclass
class SchedulingState:
    """Flat SRS record of one card, as persisted on the card row."""
    due: Optional[datetime.datetime] = None
    stability: float = 0.0       # days until R drops to 90%
    difficulty: float = 0.0
    elapsed_days: int = 0
    scheduled_days: int = 0
    reps: int = 0
    lapses: int = 0
    state: int = CardState.NEW
    last_review: Optional[datetime.datetime] = None

    def to_dict(self):
        return {
            'due': self.due.isoformat() if self.due else None,
            'stability': self.stability,
            'difficulty': self.difficulty,
            'elapsed_days': self.elapsed_days,
            'scheduled_days': self.scheduled_days,
            'reps': self.reps,
            'lapses': self.lapses,
            'state': CardState.LABELS.get(self.state, self.state),
            'last_review': self.last_review.isoformat() if self.last_review else None,
        }


@dataclass
class ReviewLogEntry:
    """Pre-review snapshot written once per review."""
    rating: int
    state: int
    due: Optional[datetime.datetime]
    stability: float
    difficulty: float
    elapsed_days: int            # days since the previous review, at review time
    last_elapsed_days: int       # elapsed_days stored on the card before the review
    scheduled_days: int
    reviewed_at: datetime.datetime


@dataclass
class RevisionOption:
    """What a given rating would do to a card right now."""
    rating: int
    state: int
    due: datetime.datetime
    scheduled_days: int

    def to_dict(self):
        return {
            'rating': self.rating,
            'label': Rating.LABELS[self.rating],
            'state': CardState.LABELS.get(self.state, self.state),
            'due': self.due.isoformat(),
            'scheduled_days': self.scheduled_days,
        }
