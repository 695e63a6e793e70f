# File: memogarden_app/modules/srs/interface.py
import datetime
from typing import Dict, Optional, Tuple

from .engine.maturity import classify
from .engine.retrievability import retrievability
from .schemas import ReviewLogEntry, RevisionOption, SchedulingState
from .services.settings_service import SRSSettingsService


class SRSInterface:
    """Public API of the SRS module, configured from the running app."""

    @staticmethod
    def schedule(
        state: SchedulingState,
        rating: int,
        reviewed_at: datetime.datetime,
    ) -> Tuple[SchedulingState, ReviewLogEntry]:
        return SRSSettingsService.build_engine().schedule(state, rating, reviewed_at)

    @staticmethod
    def preview(state: SchedulingState, reviewed_at: datetime.datetime) -> Dict[int, RevisionOption]:
        return SRSSettingsService.build_engine().preview(state, reviewed_at)

    @staticmethod
    def retrievability(state: SchedulingState, as_of: datetime.datetime) -> Optional[float]:
        return retrievability(state, as_of, SRSSettingsService.get_decay())

    @staticmethod
    def classify(state: int, scheduled_days: int) -> str:
        return classify(state, scheduled_days)
