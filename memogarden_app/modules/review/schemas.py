# File: memogarden_app/modules/review/schemas.py
import datetime
from dataclasses import dataclass, field

from memogarden_app.modules.srs.schemas import SchedulingState


@dataclass
class CardsRemaining:
    """Cards due before the session cutoff, by scheduling phase."""
    new: int = 0
    learning: int = 0   # Learning + Relearning
    review: int = 0

    @property
    def total(self) -> int:
        return self.new + self.learning + self.review

    def to_dict(self):
        return {'new': self.new, 'learning': self.learning, 'review': self.review, 'total': self.total}


@dataclass
class DayBoundaryOutcome:
    """Result of a submitted review: the new card state and what is left today."""
    has_more_due: bool
    day_end: datetime.datetime
    card: SchedulingState
    remaining: CardsRemaining = field(default_factory=CardsRemaining)

    def to_dict(self):
        return {
            'has_more_due': self.has_more_due,
            'day_end': self.day_end.isoformat(),
            'remaining': self.remaining.to_dict(),
            'card': self.card.to_dict(),
        }
