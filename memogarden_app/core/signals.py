"""
Central Signal Registry for Event-Driven Architecture.

Uses blinker to let modules react to each other without importing
each other's services.

Usage:
    # Publisher (sender)
    from memogarden_app.core.signals import card_reviewed
    card_reviewed.send(ReviewService, user_id=1, card_id=2, ...)

    # Subscriber (receiver) - in module's events.py
    @card_reviewed.connect
    def on_card_reviewed(sender, **kwargs):
        ...
"""
from blinker import Namespace

review_signals = Namespace()

# Signal: Fired inside the review transaction, after the card row and its
# review log are staged but before commit. Receivers share the session and
# must not commit or roll back themselves.
# Payload: user_id, deck_id, card_id, rating, previous_retrievability,
#          retrievability, reviewed_at
card_reviewed = review_signals.signal('card_reviewed')
