"""
Typed error taxonomy for the policy core.
Every error carries a machine-readable code and the HTTP status the API maps it to.
"""
from typing import Any, Optional


class PolicyEngineError(Exception):
    """Base class for all errors raised by the policy core."""

    code: str = "POLICY_ENGINE_ERROR"
    http_status: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"error": self.code, "detail": self.message}
        if self.details:
            body["details"] = self.details
        return body


class InvalidTransition(PolicyEngineError):
    """Requested (from, to) pair is not allowed, or the record moved underneath us."""

    code = "INVALID_TRANSITION"
    http_status = 409


class Forbidden(PolicyEngineError):
    """Maker/checker violation: the actor authored what they are trying to review."""

    code = "MAKER_CHECKER_VIOLATION"
    http_status = 403


class NotPermitted(PolicyEngineError):
    """The actor's role lacks the capability entirely."""

    code = "NOT_PERMITTED"
    http_status = 403


class ValidationError(PolicyEngineError):
    """Required input missing or malformed."""

    code = "VALIDATION_ERROR"
    http_status = 422


class NotFound(PolicyEngineError):
    code = "NOT_FOUND"
    http_status = 404


class StoreError(PolicyEngineError):
    """Record-store operation failed (connectivity, constraint violation)."""

    code = "STORE_ERROR"
    http_status = 503


class NumberGenerationError(PolicyEngineError):
    """Numbering RPC exhausted its retries."""

    code = "NUMBER_GENERATION_FAILED"
    http_status = 503
