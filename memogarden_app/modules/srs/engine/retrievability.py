"""
Forgetting curve and per-card retrievability.

Pure functions: no database, no Flask context. Retrievability follows the
FSRS power curve ``R(t) = (1 + FACTOR * t / S) ** DECAY`` where FACTOR is
chosen so that ``R(S) == 0.9``.
"""
from __future__ import annotations

import datetime
from typing import Optional, Sequence

from memogarden_app.utils.time_utils import ensure_utc
from ..schemas import CardState, SchedulingState

DEFAULT_DECAY = -0.5
STABILITY_FLOOR = 0.01
SECONDS_PER_DAY = 86400.0


def decay_for(parameters: Optional[Sequence[float]]) -> float:
    """Curve exponent for a parameter set (21-weight sets carry their own)."""
    if parameters is not None and len(parameters) >= 21:
        return -float(parameters[20])
    return DEFAULT_DECAY


def forgetting_factor(decay: float) -> float:
    return 0.9 ** (1.0 / decay) - 1.0


def forgetting_curve(elapsed_days: float, stability: float, decay: float = DEFAULT_DECAY) -> float:
    elapsed_days = max(0.0, float(elapsed_days))
    stability = max(STABILITY_FLOOR, float(stability))
    value = (1.0 + forgetting_factor(decay) * elapsed_days / stability) ** decay
    return max(0.0, min(1.0, value))


def review_basis(state: SchedulingState) -> Optional[datetime.datetime]:
    """Instant the decay is measured from: last review, else due minus interval."""
    if state.last_review is not None:
        return ensure_utc(state.last_review)
    if state.due is not None:
        return ensure_utc(state.due) - datetime.timedelta(days=state.scheduled_days or 0)
    return None


def elapsed_days_between(start: Optional[datetime.datetime], end: datetime.datetime) -> float:
    """Fractional days from ``start`` to ``end``; never negative."""
    if start is None:
        return 0.0
    seconds = (ensure_utc(end) - ensure_utc(start)).total_seconds()
    return max(0.0, seconds / SECONDS_PER_DAY)


def retrievability(
    state: SchedulingState,
    as_of: datetime.datetime,
    decay: float = DEFAULT_DECAY,
) -> Optional[float]:
    """
    Probability of recall for ``state`` at ``as_of``, in [0, 1].

    Returns None for cards that were never reviewed. An ``as_of`` earlier than
    the last review is treated as zero elapsed time.
    """
    if state.state == CardState.NEW:
        return None
    elapsed = elapsed_days_between(review_basis(state), as_of)
    return forgetting_curve(elapsed, state.stability, decay)
