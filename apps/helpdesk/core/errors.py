"""Error taxonomy shared by the helpdesk services.

Services raise these exceptions and never translate them into HTTP status
codes themselves; the transport layer maps them (see ``apps.helpdesk.main``).
"""


class HelpdeskError(RuntimeError):
    """Base error for recoverable helpdesk failures."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(HelpdeskError):
    """Raised when the caller's payload is malformed or violates a policy."""


class NotFoundError(HelpdeskError):
    """Raised when a referenced entity id does not resolve."""


class ForbiddenError(HelpdeskError):
    """Raised when an access, ownership or role check fails."""


class ConflictError(HelpdeskError):
    """Raised when a concurrent write invalidated the state an operation was based on."""
