"""Card lifecycle: decks, cards and review submission."""
