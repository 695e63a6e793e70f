"""Maturity stage of a card, for badges and statistics."""
from ..exceptions import InvalidCardStateError
from ..schemas import CardMaturity, CardState

# Upper bounds (exclusive) of scheduled_days for Review-state stages
SAPLING_LIMIT_DAYS = 16
BUDDING_LIMIT_DAYS = 31
MATURE_LIMIT_DAYS = 62


def classify(state: int, scheduled_days: int) -> str:
    if state == CardState.NEW:
        return CardMaturity.SEED
    if state in (CardState.LEARNING, CardState.RELEARNING):
        return CardMaturity.SPROUT
    if state != CardState.REVIEW:
        raise InvalidCardStateError(f"Unknown card state {state!r}")

    if scheduled_days < SAPLING_LIMIT_DAYS:
        return CardMaturity.SAPLING
    if scheduled_days < BUDDING_LIMIT_DAYS:
        return CardMaturity.BUDDING
    if scheduled_days < MATURE_LIMIT_DAYS:
        return CardMaturity.MATURE
    return CardMaturity.MIGHTY
