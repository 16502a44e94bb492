"""
Base exception classes for application-wide error handling.

Every domain error carries a machine-readable code so request handlers and
Celery tasks can branch on it without string matching.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── NotFoundError - Record expected to exist is missing
    └── ConflictError - Operation conflicts with the record's current state

Domain apps extend this hierarchy (see payments.exceptions and
notifications.exceptions).

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError(
        f"Project {project_id} not found",
        error_code="PROJECT_NOT_FOUND",
        details={"project_id": str(project_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        return JsonResponse(e.to_dict(), status=400)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, states, upstream codes)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to a response payload.

        Example:
            {
                "error": "Payment was declined",
                "error_code": "CONFIRMATION_DENIED",
                "details": {"gateway_intent_id": "pi_123"}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class NotFoundError(BaseApplicationError):
    """
    Raised when a record that must exist cannot be found.

    Use NotFoundError for single-record lookups where existence is expected
    (a payment by its gateway intent id, a project by id). List queries
    return empty results instead.
    """

    default_error_code: str = "NOT_FOUND"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with the current record state.

    Use for:
    - Invalid state transitions
    - Compare-and-set writes that lost a race and cannot be retried

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"
