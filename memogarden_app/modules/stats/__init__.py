"""Card, review and maturity statistics."""
