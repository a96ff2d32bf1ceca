"""Domain-specific exception types."""


class MeetingTimerError(Exception):
    """Base application error."""


class PersistenceError(MeetingTimerError):
    """Raised when segment store operations fail."""


class BackendUnavailableError(PersistenceError):
    """Raised when the hosted segment backend cannot be reached or rejects a request."""


class SegmentNotFoundError(PersistenceError):
    """Raised when an update or delete targets an unknown segment id."""


class SegmentValidationError(MeetingTimerError):
    """Raised when a segment fails validation at the store boundary."""


class SettingsError(MeetingTimerError):
    """Raised when settings cannot be validated or saved."""


class TimerStateError(MeetingTimerError):
    """Raised when a countdown timer is driven through an invalid transition."""
