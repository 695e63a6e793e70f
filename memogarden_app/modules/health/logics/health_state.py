"""
Health bands for retrievability values.
Pure logic: no database, no Flask context.
"""
from typing import Optional


class HealthState:
    WITHERING = 'withering'
    WILTING = 'wilting'
    THIRSTY = 'thirsty'
    VIBRANT = 'vibrant'

    # Lower bound of each band, highest first
    THRESHOLDS = (
        (VIBRANT, 0.90),
        (THIRSTY, 0.80),
        (WILTING, 0.40),
        (WITHERING, 0.0),
    )


def _clamp(value: Optional[float]) -> float:
    if value is None:
        return 0.0
    return max(0.0, min(1.0, float(value)))


def to_health_state(retrievability: Optional[float]) -> str:
    value = _clamp(retrievability)
    for state, threshold in HealthState.THRESHOLDS:
        if value >= threshold:
            return state
    return HealthState.WITHERING


def get_health_progress(retrievability: Optional[float]) -> float:
    """Position within the current band, 0.0 at its floor and 1.0 at the next band."""
    value = _clamp(retrievability)
    bounds = [threshold for _, threshold in HealthState.THRESHOLDS]
    for index, lower in enumerate(bounds):
        if value >= lower:
            upper = bounds[index - 1] if index > 0 else 1.0
            if upper <= lower:
                return 1.0
            return min(1.0, (value - lower) / (upper - lower))
    return 0.0
