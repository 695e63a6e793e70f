"""Deck and account health: retrievability aggregates and their sync."""
