"""
Project-specific exceptions.

Exception Hierarchy:
    ProjectNotFoundError - Project lookup failed (inherits NotFoundError)
    ProjectStatusConflictError - Status compare-and-set kept losing races
        (inherits ConflictError)
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError


class ProjectNotFoundError(NotFoundError):
    """Raised when a project referenced by a payment does not exist."""

    default_error_code: str = "PROJECT_NOT_FOUND"


class ProjectStatusConflictError(ConflictError):
    """
    Raised when the status write lost every compare-and-set attempt.

    Another writer kept changing the status between our read and our
    write. The caller can re-run resolve() once the contention clears.
    """

    default_error_code: str = "PROJECT_STATUS_CONFLICT"
