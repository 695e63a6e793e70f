import datetime
import logging
from typing import Optional

from memogarden_app.core.extensions import db, scheduler
from memogarden_app.models import User
from .services.health_service import HealthService

logger = logging.getLogger(__name__)


def run_health_sync(now: Optional[datetime.datetime] = None) -> int:
    """Resync every account whose local day has rolled over. Needs an app context."""
    user_ids = [user_id for (user_id,) in db.session.query(User.user_id).order_by(User.user_id)]

    synced = 0
    for user_id in user_ids:
        if HealthService.try_sync_account_health(user_id, now):
            synced += 1

    logger.info(f"Daily health sync finished: {synced}/{len(user_ids)} accounts refreshed.")
    return synced


def sync_all_accounts():
    """Scheduler entry point."""
    with scheduler.app.app_context():
        return run_health_sync()
