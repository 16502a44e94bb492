"""
Project status derivation from payment evidence.

The status of a project is a function of the set of payments that have
succeeded for it, not of the last event received:

    any succeeded FINAL payment   -> completed
    any succeeded INITIAL payment -> in_progress
    otherwise                     -> confirmed

derive_status() is that pure reducer. ProjectStatusResolver reads the
succeeded payments, folds them, and writes the result with a compare-and-set
on the status it read. The write never moves a project backwards in the
lifecycle, so stale snapshots from overlapping reconciliations can only
under-advance, and the next resolve() corrects them.

Usage:
    from projects.services import ProjectStatusResolver

    resolution = ProjectStatusResolver().resolve(project.id)
    if resolution.changed:
        ...  # notify about the new status
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from django.conf import settings
from django.utils import timezone

from core.services import BaseService
from payments.state_machines import PaymentStatus, PaymentType
from projects.exceptions import ProjectNotFoundError, ProjectStatusConflictError
from projects.models import Project, ProjectStatus

if TYPE_CHECKING:
    import uuid


logger = logging.getLogger(__name__)


class PaymentEvidence(Protocol):
    """Anything with a payment status and type (a Payment row or a stand-in)."""

    status: str
    payment_type: str


class SucceededPaymentSource(Protocol):
    def succeeded_for_project(self, project_id: uuid.UUID) -> list: ...


# =============================================================================
# Pure Reducer
# =============================================================================


def derive_status(payments: Iterable[PaymentEvidence]) -> str:
    """
    Fold a project's payments into the status they justify.

    Payments that are not succeeded are ignored, so callers may pass the
    full payment set.

    Example:
        derive_status([Payment(status="succeeded", payment_type="initial")])
        # "in_progress"
    """
    has_initial = False
    for payment in payments:
        if payment.status != PaymentStatus.SUCCEEDED:
            continue
        if payment.payment_type == PaymentType.FINAL:
            return ProjectStatus.COMPLETED
        if payment.payment_type == PaymentType.INITIAL:
            has_initial = True
    return ProjectStatus.IN_PROGRESS if has_initial else ProjectStatus.CONFIRMED


def advance(current: str, derived: str) -> str:
    """Return whichever of the two statuses is later in the lifecycle."""
    if ProjectStatus.rank(derived) > ProjectStatus.rank(current):
        return derived
    return current


# =============================================================================
# Resolver
# =============================================================================


@dataclass
class StatusResolution:
    """
    Outcome of resolving a project's status.

    Attributes:
        project_id: Project that was resolved
        previous_status: Status read before the write
        status: Status after the call
        changed: Whether this call wrote a new status
    """

    project_id: uuid.UUID
    previous_status: str
    status: str
    changed: bool


class ProjectStatusResolver(BaseService):
    """
    Derives and persists a project's status from its succeeded payments.

    Safe to call any number of times and from concurrent reconciliations:
    a second call with the same payment set performs no write.

    Args:
        ledger: Source of succeeded payments (defaults to PaymentLedger)
        max_attempts: Compare-and-set attempts before giving up
    """

    def __init__(
        self,
        ledger: SucceededPaymentSource | None = None,
        max_attempts: int | None = None,
    ):
        if ledger is None:
            # payments.services imports this module
            from payments.services.payment_ledger import PaymentLedger

            ledger = PaymentLedger
        self._ledger = ledger
        self._max_attempts = max_attempts or getattr(
            settings, "PROJECT_STATUS_MAX_WRITE_ATTEMPTS", 3
        )

    def resolve(self, project_id: uuid.UUID) -> StatusResolution:
        """
        Bring a project's status in line with its succeeded payments.

        Call this after the payment status write has completed, so the
        payment set read here includes it.

        Raises:
            ProjectNotFoundError: Project does not exist
            ProjectStatusConflictError: Every compare-and-set lost a race
        """
        log = self.get_logger()

        for attempt in range(1, self._max_attempts + 1):
            current = (
                Project.objects.filter(pk=project_id)
                .values_list("status", flat=True)
                .first()
            )
            if current is None:
                raise ProjectNotFoundError(
                    f"Project {project_id} not found",
                    details={"project_id": str(project_id)},
                )

            payments = self._ledger.succeeded_for_project(project_id)
            target = advance(current, derive_status(payments))

            if target == current:
                log.debug(
                    "Project status already current",
                    extra={"project_id": str(project_id), "status": current},
                )
                return StatusResolution(
                    project_id=project_id,
                    previous_status=current,
                    status=current,
                    changed=False,
                )

            updated = Project.objects.filter(pk=project_id, status=current).update(
                status=target,
                updated_at=timezone.now(),
            )
            if updated:
                log.info(
                    "Project status advanced",
                    extra={
                        "project_id": str(project_id),
                        "from_status": current,
                        "to_status": target,
                        "succeeded_payments": len(payments),
                    },
                )
                return StatusResolution(
                    project_id=project_id,
                    previous_status=current,
                    status=target,
                    changed=True,
                )

            log.info(
                "Project status changed concurrently, re-reading",
                extra={"project_id": str(project_id), "attempt": attempt},
            )

        raise ProjectStatusConflictError(
            f"Could not write status of project {project_id} after "
            f"{self._max_attempts} attempts",
            details={"project_id": str(project_id), "attempts": self._max_attempts},
        )
