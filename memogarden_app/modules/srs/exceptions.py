from memogarden_app.core.error_handlers import ValidationError


class SRSError(ValidationError):
    """Base exception for the SRS module."""
    pass

class InvalidRatingError(SRSError):
    """Raised when the provided rating is not valid (must be 1-4)."""
    pass

class InvalidCardStateError(SRSError):
    """Raised when a scheduling state breaks its own invariants."""
    pass
