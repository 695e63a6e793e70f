"""Column mixins shared by the persisted models."""

from __future__ import annotations

from sqlalchemy import case
from sqlalchemy.ext.hybrid import hybrid_property

from ..core.extensions import db
from ..utils.time_utils import utcnow


class SoftDeleteMixin:
    """Tombstone column; rows are hidden rather than removed."""

    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True, index=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, now=None) -> None:
        if self.deleted_at is None:
            self.deleted_at = now or utcnow()

    @classmethod
    def not_deleted(cls):
        """Filter expression selecting live rows."""
        return cls.deleted_at.is_(None)


class HealthAggregateMixin:
    """
    Mean retrievability kept as a running sum and count.

    Storing the pair lets a single card change be applied with atomic SQL
    increments; the mean itself is derived.
    """

    retrievability_total = db.Column(db.Float, nullable=False, default=0.0)
    retrievability_count = db.Column(db.Integer, nullable=False, default=0)

    @hybrid_property
    def retrievability(self):
        if not self.retrievability_count:
            return None
        mean = self.retrievability_total / self.retrievability_count
        return max(0.0, min(1.0, mean))

    @retrievability.expression
    def retrievability(cls):
        return case(
            (cls.retrievability_count > 0, cls.retrievability_total / cls.retrievability_count),
            else_=None,
        )
