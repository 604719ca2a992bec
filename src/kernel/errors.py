"""
Typed errors raised by the kernel and domain services.

The calling layer decides the external representation (the HTTP API maps
them to 404/403/400/409 in ``src.main``).
"""


class CoreError(Exception):
    """Base class for all domain errors."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(CoreError):
    """A referenced entity does not exist (or is soft-deleted)."""


class ForbiddenError(CoreError):
    """The caller may not perform the action. Never says why."""

    def __init__(self, message: str = "Resource not found or access denied"):
        super().__init__(message)


class ValidationError(CoreError):
    """Malformed input reached the core (bad role name, empty update, ...)."""


class ConflictError(CoreError):
    """The action conflicts with current state (duplicate member, sole owner, ...)."""
