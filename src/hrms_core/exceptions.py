"""Error taxonomy shared by the calculation engines and services."""

from __future__ import annotations


class HRMSError(Exception):
    """Base class for all errors raised by hrms_core."""


class ValidationError(HRMSError):
    """Raised when input is malformed or violates a business rule.

    The message is always a specific, human-readable reason suitable for
    returning to the caller.
    """


class StructureConfigurationError(ValidationError):
    """Raised when a salary structure cannot be ordered for calculation."""

    def __init__(self, message: str, cycle: list[str] | None = None):
        self.cycle = cycle or []
        super().__init__(message)


class NotFoundError(HRMSError):
    """Raised when a referenced record does not exist."""

    def __init__(self, entity: str, key: object):
        self.entity = entity
        self.key = key
        super().__init__(f"{entity} {key} not found")


class ExternalServiceError(HRMSError):
    """Raised when an external provider fails or returns an unusable answer."""


class ComponentCalculationError(HRMSError):
    """Raised when a single pay component cannot be resolved."""

    def __init__(self, component_code: str, reason: str):
        self.component_code = component_code
        self.reason = reason
        super().__init__(reason)


class ConcurrencyConflict(HRMSError):
    """Raised when a conditional update loses a race.

    Callers must retry with a fresh read instead of overwriting.
    """
