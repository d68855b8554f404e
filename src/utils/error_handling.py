"""Custom exceptions and helpers for consistent error responses."""

import json
from typing import Any, Dict, Optional


class AppError(Exception):
    """Base class for application errors."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(AppError):
    """Raised when a requested resource is missing."""

    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=404)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str = "Invalid input"):
        super().__init__(message, status_code=422)


class InvalidIdentityError(ValidationError):
    """The identity is not a well-formed email address."""

    def __init__(self, identity: Any):
        super().__init__(f"Invalid customer identity: {identity!r}")
        self.identity = identity


class ProfileNotFoundError(NotFoundError):
    """No contact could be resolved or synthesized for the identity."""

    def __init__(self, identity: str):
        super().__init__(f"Customer profile not found: {identity}")
        self.identity = identity


class UpstreamError(AppError):
    """An upstream collaborator failed."""

    def __init__(self, message: str, status_code: int = 502):
        super().__init__(message, status_code=status_code)


class UpstreamTimeoutError(UpstreamError):
    """A guarded upstream call did not resolve within its budget."""

    def __init__(self, label: str, budget_seconds: float):
        super().__init__(
            f"{label} timed out after {int(budget_seconds * 1000)}ms", status_code=504
        )
        self.label = label
        self.budget_seconds = budget_seconds


class SourceUnavailableError(UpstreamError):
    """An upstream call failed for a reason other than a timeout."""

    def __init__(self, source: str, reason: Optional[str] = None):
        message = f"{source} unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.source = source


class CacheMiss(Exception):
    """Internal signal: the key is not cache-resident. Never surfaced to callers."""

    def __init__(self, key: str):
        super().__init__(key)
        self.key = key


def to_response(error: AppError) -> Dict[str, Any]:
    """Convert an AppError into a Lambda proxy integration response."""
    return {
        "statusCode": error.status_code,
        "headers": {"Content-Type": "application/json"},
        "body": json.dumps({"message": str(error), "status": "error"}),
    }
