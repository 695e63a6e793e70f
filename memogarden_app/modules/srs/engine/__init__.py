from .core import SchedulerEngine, round_half_up
from .maturity import classify
from .retrievability import decay_for, forgetting_curve, retrievability

__all__ = [
    'SchedulerEngine',
    'round_half_up',
    'classify',
    'decay_for',
    'forgetting_curve',
    'retrievability',
]
