"""
Payment orchestrator service for starting project payments.

This module provides the PaymentOrchestrator class, the entry point used
when a client picks a payment plan and is about to pay. It coordinates the
PricingCalculator, the gateway client and the ledger.

The orchestrator:
- Turns a project's price and chosen plan into the amount to charge now
- Decides whether the charge is the initial or the final payment
- Reuses an open intent for the same charge instead of creating a second one
- Records the pending Payment before the client secret leaves the server

Usage:
    from payments.services import PaymentOrchestrator

    result = PaymentOrchestrator.initiate_project_payment(project, "split")

    if result.success:
        client_secret = result.data.client_secret
        payment = result.data.payment
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from django.conf import settings

from core.services import BaseService, ServiceResult

from payments.adapters import IdempotencyKeyGenerator, PaymentGatewayClient
from payments.exceptions import GatewayUnavailable, PaymentValidationError
from payments.pricing import PaymentBreakdown, PricingCalculator
from payments.services.payment_ledger import PaymentLedger
from payments.state_machines import PaymentPlan, PaymentType

if TYPE_CHECKING:
    from payments.models import Payment
    from projects.models import Project


logger = logging.getLogger(__name__)

# Intent statuses in which the payer can still complete an existing intent
REUSABLE_INTENT_STATUSES = frozenset(
    {"requires_payment_method", "requires_confirmation", "requires_action"}
)


# =============================================================================
# Parameter Types
# =============================================================================


@dataclass
class InitiatePaymentParams:
    """
    Parameters for creating one gateway charge for a project.

    Attributes:
        project: Project being paid for
        amount_cents: Amount to charge now, in cents
        payment_type: initial, final or maintenance
        currency: ISO 4217 currency code (defaults to PAYMENTS_DEFAULT_CURRENCY)
        metadata: Extra key-value pairs stored on the intent and the Payment

    Example:
        params = InitiatePaymentParams(
            project=project,
            amount_cents=3449,
            payment_type=PaymentType.INITIAL,
        )
    """

    project: Project
    amount_cents: int
    payment_type: str
    currency: str | None = None
    metadata: dict[str, Any] | None = field(default=None)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if self.amount_cents <= 0:
            raise ValueError("amount_cents must be positive")
        if self.payment_type not in PaymentType.values:
            raise ValueError(f"Unknown payment type: {self.payment_type}")
        if not self.currency:
            self.currency = settings.PAYMENTS_DEFAULT_CURRENCY


@dataclass
class PaymentInitiation:
    """
    A charge ready for the payer.

    Attributes:
        payment: The pending Payment recorded for the intent
        client_secret: Secret the browser uses to complete the intent
        breakdown: Plan breakdown the amount came from (None for direct calls)
        reused: True if an open intent was handed out again
    """

    payment: Payment
    client_secret: str
    breakdown: PaymentBreakdown | None = None
    reused: bool = False


# =============================================================================
# Payment Orchestrator
# =============================================================================


class PaymentOrchestrator(BaseService):
    """
    Central coordinator for starting payments.

    All methods are class methods - no instance state is maintained. The
    gateway and ledger are class attributes so tests can swap them.
    """

    gateway = PaymentGatewayClient
    ledger = PaymentLedger

    @classmethod
    def payment_type_for(
        cls, plan: str, breakdown: PaymentBreakdown, payment_type: str | None = None
    ) -> tuple[str, int]:
        """
        Decide what kind of payment is due and how much it charges.

        With no explicit type, a full plan (or any plan with nothing
        deferred) is a single final payment; otherwise the first payment is
        the initial one. An explicit final payment on a plan with a deferred
        part charges that remainder. Maintenance charges the whole total.

        Returns:
            (payment_type, amount_cents) tuple
        """
        if payment_type is None:
            if plan == PaymentPlan.FULL or not breakdown.has_deferred_payment:
                return PaymentType.FINAL, breakdown.amount_due_now
            return PaymentType.INITIAL, breakdown.amount_due_now

        if payment_type == PaymentType.FINAL and breakdown.has_deferred_payment:
            return PaymentType.FINAL, breakdown.amount_deferred
        if payment_type == PaymentType.MAINTENANCE:
            return PaymentType.MAINTENANCE, breakdown.total
        return payment_type, breakdown.amount_due_now

    @classmethod
    def initiate_project_payment(
        cls,
        project: Project,
        plan: str,
        payment_type: str | None = None,
    ) -> ServiceResult[PaymentInitiation]:
        """
        Start the next payment for a project under a payment plan.

        Args:
            project: Project being paid for
            plan: full, split or monthly
            payment_type: Force initial, final or maintenance (derived when None)

        Returns:
            ServiceResult containing PaymentInitiation on success

        Error codes:
            INVALID_PARAMETERS: Unknown plan or payment type
            NOTHING_DUE: The computed amount is zero
            GATEWAY_UNAVAILABLE: Intent could not be created, retry later
        """
        if plan not in PaymentPlan.values:
            return ServiceResult.failure(
                f"Unknown payment plan: {plan}", error_code="INVALID_PARAMETERS"
            )

        total = PricingCalculator.total_with_tax(project.base_price_cents)
        breakdown = PricingCalculator.calculate(total, plan)
        resolved_type, amount_cents = cls.payment_type_for(plan, breakdown, payment_type)

        if amount_cents <= 0:
            return ServiceResult.failure(
                "Nothing is due for this payment", error_code="NOTHING_DUE"
            )

        try:
            params = InitiatePaymentParams(
                project=project,
                amount_cents=amount_cents,
                payment_type=resolved_type,
                metadata={
                    "payment_option": plan,
                    "project_title": project.title,
                    "total_amount": breakdown.total,
                    "discount": breakdown.discount,
                },
            )
        except ValueError as e:
            return ServiceResult.failure(str(e), error_code="INVALID_PARAMETERS")

        result = cls.initiate_payment(params)
        if result.success:
            result.data.breakdown = breakdown
        return result

    @classmethod
    def initiate_payment(
        cls, params: InitiatePaymentParams
    ) -> ServiceResult[PaymentInitiation]:
        """
        Create (or reuse) a gateway intent and record its pending Payment.

        Check-then-create: an open intent already recorded for the same
        project, type and amount is handed out again. A new intent is
        created with a deterministic idempotency key, so a retried request
        gets the intent the gateway already made.

        Returns:
            ServiceResult containing PaymentInitiation on success
        """
        project = params.project
        log_context = {
            "project_id": str(project.pk),
            "payment_type": params.payment_type,
            "amount_cents": params.amount_cents,
            "currency": params.currency,
        }
        cls.get_logger().info("Initiating payment", extra=log_context)

        try:
            existing = cls.ledger.find_pending(
                project.pk, params.payment_type, params.amount_cents
            )
            if existing is not None:
                reused = cls._reuse_pending(existing)
                if reused is not None:
                    return reused

            attempt = (
                cls.ledger.count_attempts(
                    project.pk, params.payment_type, params.amount_cents
                )
                + 1
            )
            idempotency_key = IdempotencyKeyGenerator.generate(
                operation="create_intent",
                entity_id=f"{project.pk}:{params.payment_type}:{params.amount_cents}",
                attempt=attempt,
            )

            intent = cls.gateway.create_intent(
                amount_cents=params.amount_cents,
                currency=params.currency,
                project_id=project.pk,
                client_id=project.client_id,
                payment_type=params.payment_type,
                metadata=params.metadata,
                idempotency_key=idempotency_key,
            )

            # The pending row must exist before the payer can complete the intent
            payment, _ = cls.ledger.create_pending(
                project=project,
                gateway_intent_id=intent.gateway_intent_id,
                amount_cents=params.amount_cents,
                currency=params.currency,
                payment_type=params.payment_type,
                metadata=params.metadata,
            )

        except GatewayUnavailable as e:
            return cls.handle_exception(e, "Payment initiation", logging.WARNING)

        except PaymentValidationError as e:
            return cls.handle_exception(e, "Payment initiation")

        except Exception as e:
            cls.get_logger().error(
                f"Unexpected error initiating payment: {type(e).__name__}",
                extra=log_context,
                exc_info=True,
            )
            return ServiceResult.failure(
                "An unexpected error occurred",
                error_code="PAYMENT_INITIATION_ERROR",
            )

        cls.get_logger().info(
            "Payment initiated",
            extra={
                **log_context,
                "payment_id": str(payment.pk),
                "gateway_intent_id": intent.gateway_intent_id,
            },
        )
        return ServiceResult.success(
            PaymentInitiation(payment=payment, client_secret=intent.client_secret)
        )

    @classmethod
    def _reuse_pending(cls, payment: Payment) -> ServiceResult[PaymentInitiation] | None:
        """
        Hand out an existing pending payment again if its intent is still open.

        Returns None when a new intent should be created instead.
        """
        log_context = {
            "payment_id": str(payment.pk),
            "gateway_intent_id": payment.gateway_intent_id,
        }

        try:
            intent = cls.gateway.retrieve_intent(payment.gateway_intent_id)
        except GatewayUnavailable as e:
            # The open intent may still be payable, so never start a second one
            return cls.handle_exception(
                e, "Reading existing payment intent", logging.WARNING
            )

        if intent.status in REUSABLE_INTENT_STATUSES and intent.client_secret:
            cls.get_logger().info("Reusing open payment intent", extra=log_context)
            return ServiceResult.success(
                PaymentInitiation(
                    payment=payment, client_secret=intent.client_secret, reused=True
                )
            )

        if intent.status == "canceled":
            cls.ledger.mark_canceled(payment.gateway_intent_id)
            return None

        # succeeded or processing: the charge is in flight, do not start another
        cls.get_logger().info(
            f"Existing intent is {intent.status}, awaiting reconciliation",
            extra=log_context,
        )
        return ServiceResult.failure(
            "A payment for this charge is already being processed",
            error_code="PAYMENT_IN_PROGRESS",
        )
