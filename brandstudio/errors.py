"""
Exception hierarchy for brand generation.

Every failure the core surfaces is one of these, with the original
status code and message preserved.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class GenerationError(Exception):
    """Base exception for all generation errors"""

    retryable = True

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self):
        if self.status_code is not None:
            return f"[{self.status_code}] {self.message}"
        return self.message


# === Service exceptions ===

class ServiceError(GenerationError):
    """The generative service rejected or failed the request"""
    pass


class TransientServiceError(ServiceError):
    """Network failure, rate limit (429) or server error (5xx)"""
    pass


class ClientRequestError(ServiceError):
    """Request rejected with a 4xx other than 429"""

    retryable = False


# === Payload exceptions ===

class SchemaValidationError(GenerationError):
    """Structured response does not match the declared schema"""

    retryable = False

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []


class GenerationEmptyError(GenerationError):
    """Call succeeded but produced no usable payload"""
    pass


def error_for_status(status: Optional[int], message: str) -> ServiceError:
    """Pick the service error class for an HTTP status."""
    if status is not None and 400 <= status < 500 and status != 429:
        return ClientRequestError(message, status_code=status)
    return TransientServiceError(message, status_code=status)
