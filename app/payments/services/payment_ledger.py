"""
Payment ledger: the persistence boundary for Payment records.

Every write to a Payment's status goes through here. Transitions are checked
by the django-fsm transition on the model, then persisted with a conditional
update keyed on status=pending. That update is the linearization point for
concurrent reconciliations of the same intent: exactly one writer moves the
row, every other writer observes it already settled.

Usage:
    from payments.services.payment_ledger import PaymentLedger

    payment, created = PaymentLedger.create_pending(
        project=project,
        gateway_intent_id="pi_123",
        amount_cents=3000,
        currency="cad",
        payment_type=PaymentType.INITIAL,
    )

    transition = PaymentLedger.mark_succeeded("pi_123")
    if transition.transitioned:
        ...  # this call settled the payment
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from django_fsm import TransitionNotAllowed

from core.services import BaseService

from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
)
from payments.models import Payment
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    import uuid
    from typing import Any

    from django.db.models import QuerySet

    from projects.models import Project


logger = logging.getLogger(__name__)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class LedgerTransition:
    """
    Outcome of a status write.

    Attributes:
        payment: The payment as stored after the call
        transitioned: True if this call moved the row, False if the row
            was already in the requested state
    """

    payment: Payment
    transitioned: bool


# =============================================================================
# Payment Ledger
# =============================================================================


class PaymentLedger(BaseService):
    """
    Persistence boundary for payment records.

    All methods are class methods - no instance state is maintained.
    """

    # Columns a status transition may touch
    TRANSITION_FIELDS = ("status", "processed_at", "payment_method", "failure_reason")

    # =========================================================================
    # Creation
    # =========================================================================

    @classmethod
    def create_pending(
        cls,
        *,
        project: Project,
        gateway_intent_id: str,
        amount_cents: int,
        currency: str,
        payment_type: str,
        metadata: dict[str, Any] | None = None,
        payment_method: str = "stripe",
    ) -> tuple[Payment, bool]:
        """
        Record a pending payment for a freshly created gateway intent.

        Idempotent on gateway_intent_id: a second call for the same intent
        returns the existing row instead of creating a duplicate.

        Returns:
            (payment, created) tuple

        Raises:
            PaymentValidationError: Bad amount or intent id, or an existing
                row for this intent disagrees on amount or project
        """
        if amount_cents <= 0:
            raise PaymentValidationError(
                "Payment amount must be positive",
                details={"amount_cents": amount_cents},
            )
        if not gateway_intent_id:
            raise PaymentValidationError("gateway_intent_id is required")

        payment, created = Payment.objects.get_or_create(
            gateway_intent_id=gateway_intent_id,
            defaults={
                "project": project,
                "client_id": project.client_id,
                "amount_cents": amount_cents,
                "currency": currency.lower(),
                "payment_type": payment_type,
                "payment_method": payment_method,
                "metadata": metadata or {},
            },
        )

        if not created and (
            payment.amount_cents != amount_cents or payment.project_id != project.pk
        ):
            raise PaymentValidationError(
                f"Intent {gateway_intent_id} is already recorded for another payment",
                error_code="INTENT_ALREADY_RECORDED",
                details={
                    "gateway_intent_id": gateway_intent_id,
                    "payment_id": str(payment.pk),
                },
            )

        cls.get_logger().info(
            "Pending payment recorded" if created else "Pending payment already recorded",
            extra={
                "payment_id": str(payment.pk),
                "gateway_intent_id": gateway_intent_id,
                "project_id": str(project.pk),
                "amount_cents": amount_cents,
                "payment_type": payment_type,
            },
        )
        return payment, created

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def find_by_intent(cls, gateway_intent_id: str) -> Payment | None:
        return Payment.objects.filter(gateway_intent_id=gateway_intent_id).first()

    @classmethod
    def get_by_intent(cls, gateway_intent_id: str) -> Payment:
        """
        Look up the payment recorded for a gateway intent.

        Raises:
            PaymentNotFoundError: No payment recorded for the intent
        """
        payment = cls.find_by_intent(gateway_intent_id)
        if payment is None:
            raise PaymentNotFoundError(
                f"No payment recorded for intent {gateway_intent_id}",
                details={"gateway_intent_id": gateway_intent_id},
            )
        return payment

    @classmethod
    def succeeded_for_project(cls, project_id: uuid.UUID) -> list[Payment]:
        """All succeeded payments of a project, oldest first."""
        return list(
            Payment.objects.filter(
                project_id=project_id,
                status=PaymentStatus.SUCCEEDED,
            ).order_by("created_at")
        )

    @classmethod
    def find_pending(
        cls,
        project_id: uuid.UUID,
        payment_type: str,
        amount_cents: int,
    ) -> Payment | None:
        """Most recent pending payment matching a project, type and amount."""
        return (
            Payment.objects.filter(
                project_id=project_id,
                payment_type=payment_type,
                amount_cents=amount_cents,
                status=PaymentStatus.PENDING,
            )
            .exclude(gateway_intent_id__isnull=True)
            .order_by("-created_at")
            .first()
        )

    @classmethod
    def count_attempts(
        cls,
        project_id: uuid.UUID,
        payment_type: str,
        amount_cents: int,
    ) -> int:
        """Number of payments ever recorded for a project, type and amount."""
        return Payment.objects.filter(
            project_id=project_id,
            payment_type=payment_type,
            amount_cents=amount_cents,
        ).count()

    @classmethod
    def pending(cls) -> QuerySet[Payment]:
        """Every pending payment, oldest first."""
        return Payment.objects.filter(status=PaymentStatus.PENDING).order_by("created_at")

    # =========================================================================
    # Status Transitions
    # =========================================================================

    @classmethod
    def mark_succeeded(
        cls,
        gateway_intent_id: str,
        payment_method: str | None = None,
    ) -> LedgerTransition:
        """
        Settle a pending payment as succeeded.

        No-op (transitioned=False) if the payment already succeeded.

        Raises:
            PaymentNotFoundError: No payment recorded for the intent
            InvalidStateTransitionError: Payment already failed or canceled
        """
        payment = cls.get_by_intent(gateway_intent_id)
        return cls._transition(
            payment, "succeed", PaymentStatus.SUCCEEDED, payment_method=payment_method
        )

    @classmethod
    def mark_failed(
        cls,
        gateway_intent_id: str,
        reason: str | None = None,
    ) -> LedgerTransition:
        """Settle a pending payment as failed. No-op if already failed."""
        payment = cls.get_by_intent(gateway_intent_id)
        return cls._transition(payment, "fail", PaymentStatus.FAILED, reason=reason)

    @classmethod
    def mark_canceled(cls, gateway_intent_id: str) -> LedgerTransition:
        """Settle a pending payment as canceled. No-op if already canceled."""
        payment = cls.get_by_intent(gateway_intent_id)
        return cls._transition(payment, "cancel", PaymentStatus.CANCELED)

    @classmethod
    def force_succeeded(cls, payment: Payment) -> LedgerTransition:
        """
        Settle a pending payment as succeeded without a gateway intent id.

        Used by the operator bulk repair, which works on rows that may never
        have received an intent id.
        """
        return cls._transition(payment, "succeed", PaymentStatus.SUCCEEDED)

    @classmethod
    def _transition(
        cls,
        payment: Payment,
        transition_name: str,
        target: str,
        **kwargs,
    ) -> LedgerTransition:
        """
        Validate a transition in memory, then persist it with a compare-and-set.

        The update only matches while the row is still pending, so at most
        one concurrent caller moves it.
        """
        log_context = {
            "payment_id": str(payment.pk),
            "gateway_intent_id": payment.gateway_intent_id,
            "from_status": payment.status,
            "target_status": target,
        }

        if payment.status == target:
            logger.debug("Payment already in target state", extra=log_context)
            return LedgerTransition(payment=payment, transitioned=False)

        try:
            getattr(payment, transition_name)(**kwargs)
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot move payment from '{payment.status}' to '{target}'",
                details={
                    "payment_id": str(payment.pk),
                    "current_state": payment.status,
                    "target_state": target,
                    "transition": transition_name,
                },
            )

        updated = Payment.objects.filter(
            pk=payment.pk,
            status=PaymentStatus.PENDING,
        ).update(
            updated_at=timezone.now(),
            **{name: getattr(payment, name) for name in cls.TRANSITION_FIELDS},
        )

        stored = Payment.objects.get(pk=payment.pk)

        if not updated:
            if stored.status == target:
                logger.info("Concurrent writer already settled payment", extra=log_context)
                return LedgerTransition(payment=stored, transitioned=False)
            raise InvalidStateTransitionError(
                f"Payment moved to '{stored.status}' before '{target}' could be written",
                details={
                    "payment_id": str(payment.pk),
                    "current_state": stored.status,
                    "target_state": target,
                    "transition": transition_name,
                },
            )

        logger.info("Payment status written", extra=log_context)
        return LedgerTransition(payment=stored, transitioned=True)
