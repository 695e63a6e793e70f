from .card_service import CardService
from .deck_service import DeckService
from .review_service import ReviewService

__all__ = ['CardService', 'DeckService', 'ReviewService']
