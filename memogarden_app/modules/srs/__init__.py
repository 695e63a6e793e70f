"""Spaced-repetition engine: scheduling, retrievability and maturity."""
