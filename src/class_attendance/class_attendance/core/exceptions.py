class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is missing or malformed."""


class NotFoundError(DomainError):
    """Raised when a session (or a student's prior scan) does not exist."""


class SessionEndedError(DomainError):
    """Raised when a mutation is attempted on a terminated session."""


class InvalidOrExpiredOtpError(DomainError):
    """Raised when a submitted OTP does not match the live one.

    Deliberately does not say whether the code was wrong or merely expired.
    """


class AuthorizationError(DomainError):
    """Raised when a teacher acts on a session they do not own."""
