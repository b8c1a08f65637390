"""
Service Errors

Exceptions raised by the scoring and verification services.
Routers translate them into HTTP responses; services never do.
"""


class ServiceError(Exception):
    """Base class for service-layer failures."""
    pass


class NotFoundError(ServiceError):
    """Referenced user, document, form or score does not exist."""
    pass


class InvalidTransitionError(ServiceError):
    """Raised when a state transition is not allowed."""
    pass


class PermissionDeniedError(ServiceError):
    """Actor does not own the resource being mutated."""
    pass


class ValidationError(ServiceError):
    """Malformed input: unknown form type, unknown document type, bad file."""
    pass


class StorageError(ServiceError):
    """Underlying persistence failure. Nothing was written."""
    pass


class ScoreIntegrityError(ServiceError):
    """A computed score broke its bounds. Indicates a logic bug."""
    pass
