"""Database models package for MemoGarden."""

from ..core.extensions import db

from .user import User
from .deck import Deck
from .card import Card, ReviewLog

__all__ = [
    'db',
    'User',
    'Deck',
    'Card',
    'ReviewLog',
]
