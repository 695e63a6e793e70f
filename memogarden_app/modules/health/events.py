"""
Health Listener
Keeps deck and account aggregates in step with reviews and triggers the
lazy resync when a user signs in.
"""
from flask_login import user_logged_in

from memogarden_app.core.signals import card_reviewed
from .services.health_service import HealthService


def init_health_listener():
    """Register signal subscriptions."""
    card_reviewed.connect(on_card_reviewed)
    user_logged_in.connect(on_user_logged_in)


def on_card_reviewed(sender, **kwargs):
    """
    Apply the reviewed card's new retrievability to its deck and account.
    Payload: user_id, deck_id, card_id, rating, previous_retrievability,
             retrievability, reviewed_at

    Runs inside the review transaction; errors propagate so the whole
    review rolls back.
    """
    HealthService.apply_card_change(
        user_id=kwargs['user_id'],
        deck_id=kwargs['deck_id'],
        previous=kwargs.get('previous_retrievability'),
        current=kwargs.get('retrievability'),
    )


def on_user_logged_in(sender, **kwargs):
    """
    Handle user login.
    Payload: user (User object)
    """
    user = kwargs.get('user')
    if not user:
        return
    HealthService.try_sync_account_health(user.user_id)
