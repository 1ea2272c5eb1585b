"""Error taxonomy for capture, persistence and amendment."""

from typing import Optional


class CaptureError(Exception):
    """Base class for all Glance errors.

    Attributes:
        message: Human-readable error message
        cause: Underlying exception, if any
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class ProviderError(CaptureError):
    """A capability provider could not deliver its signal.

    Never fatal: the resolver and producers degrade the field to None.
    """


class CaptureValidationError(CaptureError):
    """The type-specific validation predicate rejected the payload."""


class PersistenceError(CaptureError):
    """Creating a directory, writing a record or copying an image failed."""


class AmendError(CaptureError):
    """An amendment cannot be applied to the given record."""
