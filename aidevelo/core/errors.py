# aidevelo/core/errors.py
"""
Error taxonomy shared by the services and the API layer.

Each error carries the HTTP status the API maps it to. CollaboratorError is
never surfaced to callers; the chat service converts it to a fallback reply.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AideveloError(Exception):
    status_code: int = 500
    public_message: str = "Internal server error"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.public_message)
        self.message = message or self.public_message


class ValidationError(AideveloError):
    """Malformed or missing request fields."""

    status_code = 400
    public_message = "Validation error"

    def __init__(self, message: Optional[str] = None, errors: Optional[List[Dict[str, Any]]] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class RateLimitError(AideveloError):
    status_code = 429
    public_message = "Too many requests, please try again later"

    def __init__(self, operation: str, retry_after: int) -> None:
        super().__init__(self.public_message)
        self.operation = operation
        self.retry_after = retry_after


class NotFoundError(AideveloError):
    status_code = 404
    public_message = "Not found"


class CollaboratorError(AideveloError):
    """The generative-response provider failed, timed out or returned garbage."""

    status_code = 502
    public_message = "Response provider unavailable"


class StorageError(AideveloError):
    """Persistence layer unavailable; surfaced as a generic 500."""

    status_code = 500
    public_message = "Internal server error"
