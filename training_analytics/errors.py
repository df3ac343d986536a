"""Exception types raised by the Training Analytics engine."""


class TrainingAnalyticsError(Exception):
    """Base class for all engine errors."""


class NotFoundError(TrainingAnalyticsError):
    """Raised when a session, record or exercise definition does not exist."""

    def __init__(self, kind: str, identifier):
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class ValidationError(TrainingAnalyticsError):
    """Raised for malformed input that cannot be processed at all."""


class PersistenceError(TrainingAnalyticsError):
    """Raised when writing to the database fails."""
