from __future__ import annotations
import datetime
import logging
import math
from typing import Dict, Iterable, Optional, Sequence, Tuple
from fsrs_rs_python import FSRS, MemoryState, DEFAULT_PARAMETERS

from memogarden_app.utils.time_utils import ensure_utc
from ..exceptions import InvalidCardStateError, InvalidRatingError
from ..schemas import CardState, Rating, ReviewLogEntry, RevisionOption, SchedulingState
from .retrievability import STABILITY_FLOOR, elapsed_days_between, review_basis

logger = logging.getLogger(__name__)

DIFFICULTY_FLOOR = 0.01
MODEL_MIN_DIFFICULTY = 1.0
MODEL_MAX_DIFFICULTY = 10.0


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


class SchedulerEngine:
    """
    Card scheduler on top of the FSRS memory model (fsrs-rs-python).
    Pure Logic Layer: No Database, No Flask Context.

    The model supplies stability, difficulty and the raw interval for every
    rating. This class owns the state machine, the learning steps, interval
    rounding and the interval bounds.
    """

    def __init__(
        self,
        parameters: Optional[Sequence[float]] = None,
        desired_retention: float = 0.9,
        min_interval: int = 1,
        max_interval: int = 36500,
        learning_steps: Iterable[float] = (1, 10),
        relearning_steps: Iterable[float] = (10,),
    ):
        self.parameters = list(parameters) if parameters else list(DEFAULT_PARAMETERS)
        self.fsrs = FSRS(parameters=self.parameters)
        self.desired_retention = float(desired_retention)
        self.min_interval = max(1, int(min_interval))
        self.max_interval = max(self.min_interval, int(max_interval))
        # Step lengths in minutes
        self.learning_steps = [float(step) for step in learning_steps] or [1.0]
        self.relearning_steps = [float(step) for step in relearning_steps] or [10.0]

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def schedule(
        self,
        state: SchedulingState,
        rating: int,
        reviewed_at: datetime.datetime,
    ) -> Tuple[SchedulingState, ReviewLogEntry]:
        """Apply one review and return the new state plus its log entry."""
        if not Rating.is_valid(rating):
            raise InvalidRatingError(f"Rating must be 1-4, got {rating!r}")
        self.validate_state(state)

        reviewed_at = ensure_utc(reviewed_at)
        elapsed_days = self._elapsed_days(state, reviewed_at)
        new_state = self._candidates(state, reviewed_at, elapsed_days)[rating]

        log = ReviewLogEntry(
            rating=rating,
            state=state.state,
            due=state.due,
            stability=state.stability,
            difficulty=state.difficulty,
            elapsed_days=elapsed_days,
            last_elapsed_days=state.elapsed_days,
            scheduled_days=state.scheduled_days,
            reviewed_at=reviewed_at,
        )
        return new_state, log

    def preview(self, state: SchedulingState, reviewed_at: datetime.datetime) -> Dict[int, RevisionOption]:
        """Outcome of each rating without applying any of them."""
        self.validate_state(state)
        reviewed_at = ensure_utc(reviewed_at)
        candidates = self._candidates(state, reviewed_at, self._elapsed_days(state, reviewed_at))
        return {
            rating: RevisionOption(
                rating=rating,
                state=candidate.state,
                due=candidate.due,
                scheduled_days=candidate.scheduled_days,
            )
            for rating, candidate in candidates.items()
        }

    @staticmethod
    def validate_state(state: SchedulingState) -> None:
        if state.state not in CardState.ALL:
            raise InvalidCardStateError(f"Unknown card state {state.state!r}")
        for name in ('stability', 'difficulty'):
            value = getattr(state, name)
            if value is None or not math.isfinite(value) or value < 0:
                raise InvalidCardStateError(f"{name} must be a non-negative number, got {value!r}")
        for name in ('elapsed_days', 'scheduled_days', 'reps', 'lapses'):
            value = getattr(state, name)
            if value is None or value < 0:
                raise InvalidCardStateError(f"{name} must be non-negative, got {value!r}")

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _elapsed_days(self, state: SchedulingState, reviewed_at: datetime.datetime) -> int:
        if state.state == CardState.NEW:
            return 0
        return round_half_up(elapsed_days_between(review_basis(state), reviewed_at))

    def _memory_state(self, state: SchedulingState) -> Optional[MemoryState]:
        if state.state == CardState.NEW:
            return None
        return MemoryState(
            stability=max(STABILITY_FLOOR, float(state.stability)),
            difficulty=max(MODEL_MIN_DIFFICULTY, min(MODEL_MAX_DIFFICULTY, float(state.difficulty))),
        )

    def _model_states(self, state: SchedulingState, elapsed_days: int) -> Dict[int, object]:
        try:
            next_states = self.fsrs.next_states(
                self._memory_state(state),
                self.desired_retention,
                elapsed_days,
            )
        except Exception as e:
            logger.error(f"[SRS ENGINE] next_states error: {e}")
            raise
        return {
            Rating.Again: next_states.again,
            Rating.Hard: next_states.hard,
            Rating.Good: next_states.good,
            Rating.Easy: next_states.easy,
        }

    def _bound_interval(self, raw_days: float) -> int:
        return max(self.min_interval, min(self.max_interval, round_half_up(raw_days)))

    def _review_intervals(self, items: Dict[int, object], ratings: Sequence[int]) -> Dict[int, int]:
        """Bounded day intervals, kept in Hard < Good < Easy order."""
        intervals = {rating: self._bound_interval(items[rating].interval) for rating in ratings}
        if Rating.Hard in intervals and Rating.Good in intervals:
            intervals[Rating.Hard] = min(intervals[Rating.Hard], intervals[Rating.Good])
            intervals[Rating.Good] = max(intervals[Rating.Good], intervals[Rating.Hard] + 1)
        if Rating.Good in intervals and Rating.Easy in intervals:
            intervals[Rating.Easy] = max(intervals[Rating.Easy], intervals[Rating.Good] + 1)
        return {rating: min(days, self.max_interval) for rating, days in intervals.items()}

    def _new_card_steps(self) -> Dict[int, float]:
        steps = self.learning_steps
        if len(steps) > 1:
            return {Rating.Again: steps[0], Rating.Hard: (steps[0] + steps[1]) / 2.0, Rating.Good: steps[1]}
        return {Rating.Again: steps[0], Rating.Hard: steps[0] * 1.5, Rating.Good: steps[0] * 2.0}

    def _build(
        self,
        previous: SchedulingState,
        item,
        new_state: int,
        reviewed_at: datetime.datetime,
        elapsed_days: int,
        lapses: int,
        scheduled_days: int = 0,
        step_minutes: float = 0.0,
    ) -> SchedulingState:
        if scheduled_days:
            due = reviewed_at + datetime.timedelta(days=scheduled_days)
        else:
            due = reviewed_at + datetime.timedelta(minutes=step_minutes)
        return SchedulingState(
            due=due,
            stability=max(STABILITY_FLOOR, float(item.memory.stability)),
            difficulty=max(DIFFICULTY_FLOOR, float(item.memory.difficulty)),
            elapsed_days=elapsed_days,
            scheduled_days=scheduled_days,
            reps=previous.reps + 1,
            lapses=lapses,
            state=new_state,
            last_review=reviewed_at,
        )

    def _candidates(
        self,
        state: SchedulingState,
        reviewed_at: datetime.datetime,
        elapsed_days: int,
    ) -> Dict[int, SchedulingState]:
        items = self._model_states(state, elapsed_days)
        lapses = state.lapses

        def graduate(rating: int, days: int) -> SchedulingState:
            return self._build(state, items[rating], CardState.REVIEW, reviewed_at,
                               elapsed_days, lapses, scheduled_days=days)

        if state.state == CardState.NEW:
            steps = self._new_card_steps()
            result = {
                rating: self._build(state, items[rating], CardState.LEARNING, reviewed_at,
                                    elapsed_days, lapses, step_minutes=steps[rating])
                for rating in (Rating.Again, Rating.Hard, Rating.Good)
            }
            easy_days = self._review_intervals(items, (Rating.Easy,))[Rating.Easy]
            result[Rating.Easy] = graduate(Rating.Easy, easy_days)
            return result

        success = (Rating.Hard, Rating.Good, Rating.Easy)
        intervals = self._review_intervals(items, success)
        result = {rating: graduate(rating, intervals[rating]) for rating in success}

        if state.state == CardState.LEARNING:
            result[Rating.Again] = self._build(state, items[Rating.Again], CardState.LEARNING, reviewed_at,
                                               elapsed_days, lapses, step_minutes=self.learning_steps[0])
        elif state.state == CardState.RELEARNING:
            result[Rating.Again] = self._build(state, items[Rating.Again], CardState.RELEARNING, reviewed_at,
                                               elapsed_days, lapses, step_minutes=self.relearning_steps[0])
        else:
            result[Rating.Again] = self._build(state, items[Rating.Again], CardState.RELEARNING, reviewed_at,
                                               elapsed_days, lapses + 1, step_minutes=self.relearning_steps[0])
        return result
