"""
Reconciliation of gateway outcomes with local payment and project records.

This module provides the ReconciliationCoordinator, the entry point called
after the payer's browser reports a completed payment (and by the gateway
webhook and the retry task). It makes the Payment row and the project's
status agree with what the gateway says happened.

Pipeline (each step returns a typed StepResult):
    1. confirm  - ask the gateway whether the intent succeeded
                  OK -> settle; PERMANENT_FAILURE -> mark failed, raise denied;
                  TRANSIENT_FAILURE -> settle anyway (fallback path)
    2. settle   - write pending -> succeeded through the ledger
    3. resolve  - re-derive the project status from its succeeded payments
    4. notify   - hand "payment completed" / "status changed" to Celery,
                  fire-and-forget

User-visible errors:
    ConfirmationDenied: The gateway declined; the payment is marked failed
    ReconciliationFailed: Nothing could be written; safe to call again

Fallback path:
    When the gateway cannot be reached, the payment is settled on the
    browser's word alone. The logs record path="fallback" so these
    payments can be audited against the gateway later.

Usage:
    from payments.services import ReconciliationCoordinator

    result = ReconciliationCoordinator().reconcile("pi_123")
    result.path                  # "primary" or "fallback"
    result.resolution.status     # e.g. "in_progress"
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Protocol

from django.db import DatabaseError

from core.services import BaseService

from notifications.tasks import notify_payment_completed, notify_project_status_changed
from payments.adapters import PaymentGatewayClient
from payments.exceptions import (
    ConfirmationDenied,
    ConfirmationUnavailable,
    InvalidStateTransitionError,
    ReconciliationFailed,
)
from payments.services.payment_ledger import LedgerTransition, PaymentLedger
from payments.state_machines import PaymentStatus
from projects.exceptions import ProjectStatusConflictError
from projects.services import ProjectStatusResolver, StatusResolution

if TYPE_CHECKING:
    from typing import Any

    from payments.models import Payment


logger = logging.getLogger(__name__)

# Label written when the payer's method is unknown (fallback path)
DEFAULT_PAYMENT_METHOD = "card"


# =============================================================================
# Data Types
# =============================================================================


class StepOutcome(str, Enum):
    OK = "ok"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass
class StepResult:
    """
    Typed result of one pipeline step.

    Attributes:
        outcome: OK, TRANSIENT_FAILURE or PERMANENT_FAILURE
        value: Step output when OK (IntentResult, LedgerTransition)
        error: The exception behind a failure
    """

    outcome: StepOutcome
    value: Any = None
    error: Exception | None = None

    @classmethod
    def ok(cls, value: Any = None) -> StepResult:
        return cls(StepOutcome.OK, value=value)

    @classmethod
    def transient(cls, error: Exception) -> StepResult:
        return cls(StepOutcome.TRANSIENT_FAILURE, error=error)

    @classmethod
    def permanent(cls, error: Exception) -> StepResult:
        return cls(StepOutcome.PERMANENT_FAILURE, error=error)

    @property
    def is_ok(self) -> bool:
        return self.outcome == StepOutcome.OK


class ReconciliationPath(str, Enum):
    PRIMARY = "primary"
    FALLBACK = "fallback"
    WEBHOOK = "webhook"
    ALREADY_SETTLED = "already_settled"


@dataclass
class ReconciliationResult:
    """
    Outcome of reconciling one payment.

    Attributes:
        payment: Payment as stored after the call
        path: How the payment was settled
        resolution: Project status resolution that followed
        transitioned: True if this call wrote the succeeded status
    """

    payment: Payment
    path: ReconciliationPath
    resolution: StatusResolution
    transitioned: bool = False


@dataclass
class BulkReconciliationResult:
    """Outcome of the operator bulk settle."""

    settled: list[uuid.UUID] = field(default_factory=list)
    failed: list[uuid.UUID] = field(default_factory=list)
    resolutions: list[StatusResolution] = field(default_factory=list)
    unresolved_projects: list[uuid.UUID] = field(default_factory=list)


# =============================================================================
# Notification Dispatch
# =============================================================================


class NotificationDispatcher(Protocol):
    def payment_completed(self, payment: Payment) -> None: ...

    def status_changed(self, resolution: StatusResolution) -> None: ...


class CeleryNotificationDispatcher:
    """Queues admin notifications on Celery."""

    def payment_completed(self, payment: Payment) -> None:
        notify_payment_completed.delay(payment_id=str(payment.pk))

    def status_changed(self, resolution: StatusResolution) -> None:
        notify_project_status_changed.delay(
            project_id=str(resolution.project_id),
            old_status=resolution.previous_status,
            new_status=resolution.status,
        )


# =============================================================================
# Reconciliation Coordinator
# =============================================================================


class ReconciliationCoordinator(BaseService):
    """
    Brings a payment and its project in line with the gateway outcome.

    Every collaborator is injectable so tests can drive each path.

    Args:
        gateway: Gateway client (defaults to PaymentGatewayClient)
        ledger: Payment persistence (defaults to PaymentLedger)
        resolver: Project status resolver (defaults to one over the ledger)
        notifier: Notification dispatcher (defaults to Celery tasks)
    """

    def __init__(
        self,
        gateway=None,
        ledger=None,
        resolver: ProjectStatusResolver | None = None,
        notifier: NotificationDispatcher | None = None,
    ):
        self.gateway = gateway or PaymentGatewayClient
        self.ledger = ledger or PaymentLedger
        self.resolver = resolver or ProjectStatusResolver(ledger=self.ledger)
        self.notifier = notifier or CeleryNotificationDispatcher()

    # =========================================================================
    # Entry Points
    # =========================================================================

    def reconcile(self, gateway_intent_id: str) -> ReconciliationResult:
        """
        Reconcile the payment recorded for a gateway intent.

        Idempotent: calling it again for a succeeded payment performs no
        payment write and sends no payment notification.

        Raises:
            PaymentNotFoundError: No payment recorded for the intent
            ConfirmationDenied: The gateway declined the payment
            ReconciliationFailed: The payment could not be loaded or settled,
                or the project status could not be written; retry later
        """
        log = self.get_logger()
        payment = self._load(self.ledger.get_by_intent, gateway_intent_id)
        log_context = {
            "payment_id": str(payment.pk),
            "gateway_intent_id": gateway_intent_id,
            "project_id": str(payment.project_id),
        }

        if payment.status == PaymentStatus.SUCCEEDED:
            log.info("Payment already settled, re-resolving project", extra=log_context)
            return self._finish(
                payment, ReconciliationPath.ALREADY_SETTLED, transitioned=False
            )

        if payment.status in (PaymentStatus.FAILED, PaymentStatus.CANCELED):
            raise ConfirmationDenied(
                f"Payment is already {payment.status}",
                gateway_code=payment.status,
                details=log_context,
            )

        confirmation = self._confirm(gateway_intent_id)

        if confirmation.outcome == StepOutcome.PERMANENT_FAILURE:
            self._record_decline(gateway_intent_id, confirmation.error)
            raise confirmation.error

        if confirmation.is_ok:
            path = ReconciliationPath.PRIMARY
            payment_method = self._payment_method_of(confirmation.value)
        else:
            path = ReconciliationPath.FALLBACK
            payment_method = DEFAULT_PAYMENT_METHOD
            log.warning(
                "Gateway confirmation unavailable, settling unverified payment",
                extra={**log_context, "path": path.value, "reason": str(confirmation.error)},
            )

        settlement = self._settle(gateway_intent_id, payment_method)

        if settlement.outcome == StepOutcome.PERMANENT_FAILURE:
            raise ConfirmationDenied(
                str(settlement.error),
                gateway_code="payment_already_settled",
                details=log_context,
            )
        if not settlement.is_ok:
            log.error(
                "Could not settle payment",
                extra={**log_context, "path": path.value},
                exc_info=settlement.error,
            )
            raise ReconciliationFailed(
                "Payment could not be recorded, please retry",
                details={**log_context, "path": path.value},
            ) from settlement.error

        transition: LedgerTransition = settlement.value
        return self._finish(transition.payment, path, transition.transitioned)

    def apply_gateway_event(self, event: dict[str, Any]) -> ReconciliationResult | None:
        """
        Apply a verified gateway webhook event.

        Handles payment_intent.succeeded, payment_intent.payment_failed and
        payment_intent.canceled. Other event types and unknown intents are
        ignored (returns None).
        """
        log = self.get_logger()
        event_type = event.get("type", "")
        intent = event.get("data", {}).get("object", {})
        gateway_intent_id = intent.get("id")
        log_context = {"event_type": event_type, "gateway_intent_id": gateway_intent_id}

        if not gateway_intent_id or not event_type.startswith("payment_intent."):
            log.debug("Ignoring gateway event", extra=log_context)
            return None

        payment = self._load(self.ledger.find_by_intent, gateway_intent_id)
        if payment is None:
            log.warning("Gateway event for unknown intent", extra=log_context)
            return None

        try:
            if event_type == "payment_intent.succeeded":
                settlement = self._settle(
                    gateway_intent_id, self._payment_method_of(intent)
                )
                if settlement.outcome == StepOutcome.TRANSIENT_FAILURE:
                    raise ReconciliationFailed(
                        "Payment could not be recorded, please retry",
                        details=log_context,
                    ) from settlement.error
                if not settlement.is_ok:
                    raise settlement.error
                transition = settlement.value
                return self._finish(
                    transition.payment, ReconciliationPath.WEBHOOK, transition.transitioned
                )

            if event_type == "payment_intent.payment_failed":
                last_error = intent.get("last_payment_error") or {}
                self.ledger.mark_failed(gateway_intent_id, reason=last_error.get("message"))
            elif event_type == "payment_intent.canceled":
                self.ledger.mark_canceled(gateway_intent_id)
            else:
                log.debug("Ignoring gateway event", extra=log_context)

        except InvalidStateTransitionError as e:
            log.warning(
                f"Gateway event conflicts with stored payment: {e.message}",
                extra={**log_context, **e.details},
            )
        return None

    def reconcile_all_pending(self) -> BulkReconciliationResult:
        """
        Force every pending payment to succeeded and re-resolve its project.

        Operator escape hatch for payments stuck while the confirmation path
        was down. It never asks the gateway, so a payment the payer
        abandoned is settled too. Run only after checking the gateway
        dashboard (see the settle_pending_payments management command).
        """
        log = self.get_logger()
        result = BulkReconciliationResult()
        pending = list(self.ledger.pending())

        log.critical(
            f"Force-settling {len(pending)} pending payment(s) without gateway verification",
            extra={"payment_ids": [str(p.pk) for p in pending]},
        )

        project_ids: list[uuid.UUID] = []
        for payment in pending:
            try:
                self.ledger.force_succeeded(payment)
            except (InvalidStateTransitionError, DatabaseError) as e:
                log.error(
                    f"Could not force-settle payment {payment.pk}: {e}",
                    extra={"payment_id": str(payment.pk)},
                )
                result.failed.append(payment.pk)
                continue
            result.settled.append(payment.pk)
            if payment.project_id not in project_ids:
                project_ids.append(payment.project_id)

        for project_id in project_ids:
            try:
                result.resolutions.append(self.resolver.resolve(project_id))
            except (ProjectStatusConflictError, DatabaseError) as e:
                log.error(
                    f"Could not resolve project {project_id} after force-settle: {e}",
                    extra={"project_id": str(project_id)},
                )
                result.unresolved_projects.append(project_id)

        log.warning(
            "Bulk settle finished",
            extra={
                "settled": len(result.settled),
                "failed": len(result.failed),
                "projects_resolved": len(result.resolutions),
            },
        )
        return result

    # =========================================================================
    # Pipeline Steps
    # =========================================================================

    def _load(self, lookup, gateway_intent_id: str) -> Payment | None:
        try:
            return lookup(gateway_intent_id)
        except DatabaseError as e:
            self.get_logger().error(
                f"Payment lookup failed: {e}",
                extra={"gateway_intent_id": gateway_intent_id},
            )
            raise ReconciliationFailed(
                "Payment could not be loaded, please retry",
                details={"gateway_intent_id": gateway_intent_id},
            ) from e

    def _confirm(self, gateway_intent_id: str) -> StepResult:
        try:
            return StepResult.ok(self.gateway.confirm(gateway_intent_id))
        except ConfirmationDenied as e:
            return StepResult.permanent(e)
        except ConfirmationUnavailable as e:
            return StepResult.transient(e)

    def _settle(self, gateway_intent_id: str, payment_method: str) -> StepResult:
        try:
            return StepResult.ok(
                self.ledger.mark_succeeded(gateway_intent_id, payment_method=payment_method)
            )
        except InvalidStateTransitionError as e:
            return StepResult.permanent(e)
        except DatabaseError as e:
            return StepResult.transient(e)

    def _record_decline(self, gateway_intent_id: str, error: ConfirmationDenied) -> None:
        try:
            self.ledger.mark_failed(gateway_intent_id, reason=error.message)
        except (InvalidStateTransitionError, DatabaseError) as e:
            # The decline is still reported to the payer
            self.get_logger().error(
                f"Could not record declined payment: {e}",
                extra={"gateway_intent_id": gateway_intent_id},
            )

    def _finish(
        self,
        payment: Payment,
        path: ReconciliationPath,
        transitioned: bool,
    ) -> ReconciliationResult:
        """Notify a fresh settlement, then resolve the project and notify any move."""
        log_context = {
            "payment_id": str(payment.pk),
            "project_id": str(payment.project_id),
            "path": path.value,
        }

        if transitioned:
            self._dispatch(self.notifier.payment_completed, payment)

        try:
            resolution = self.resolver.resolve(payment.project_id)
        except (ProjectStatusConflictError, DatabaseError) as e:
            self.get_logger().error(
                f"Project status could not be resolved: {e}", extra=log_context
            )
            raise ReconciliationFailed(
                "Payment recorded but project status could not be updated, please retry",
                details=log_context,
            ) from e

        if resolution.changed:
            self._dispatch(self.notifier.status_changed, resolution)

        self.get_logger().info(
            "Payment reconciled",
            extra={
                **log_context,
                "transitioned": transitioned,
                "project_status": resolution.status,
            },
        )
        return ReconciliationResult(
            payment=payment,
            path=path,
            resolution=resolution,
            transitioned=transitioned,
        )

    def _dispatch(self, send, *args) -> None:
        try:
            send(*args)
        except Exception:
            self.get_logger().warning(
                f"Could not dispatch notification via {getattr(send, '__name__', send)}",
                exc_info=True,
            )

    @staticmethod
    def _payment_method_of(intent) -> str:
        """First payment method type of an intent (IntentResult or event dict)."""
        raw = getattr(intent, "raw_response", intent) or {}
        types = raw.get("payment_method_types") or []
        return types[0] if types else DEFAULT_PAYMENT_METHOD

