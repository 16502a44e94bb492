"""
Payment-specific exceptions for payment operations.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment lookup failures
    ├── PaymentValidationError - Payment validation failures
    ├── GatewayError - Base for payment gateway errors
    │   ├── GatewayUnavailable - Intent creation failed (transient, retry)
    │   ├── ConfirmationUnavailable - Confirmation path unreachable
    │   │   (transient, triggers the fallback path)
    │   └── ConfirmationDenied - Gateway reports a genuine decline (permanent)
    └── ReconciliationFailed - Primary and fallback confirmation both failed
        (transient, retry the whole reconciliation)

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Propagation:
    Only ConfirmationDenied and ReconciliationFailed reach the payment UI.
    ConfirmationUnavailable is absorbed by the reconciliation fallback and
    GatewayUnavailable by the caller's retry of the payment attempt.

Usage:
    from payments.exceptions import ConfirmationDenied, ReconciliationFailed

    try:
        coordinator.reconcile(intent_id)
    except ConfirmationDenied as e:
        show_error("Payment failed", e.to_dict())
    except ReconciliationFailed as e:
        schedule_retry(intent_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    Subclasses set is_retryable so Celery tasks can decide whether to retry
    without knowing the concrete type.
    """

    default_error_code: str = "PAYMENT_ERROR"
    is_retryable: bool = False


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment cannot be found.

    Example:
        payment = Payment.objects.filter(gateway_intent_id=intent_id).first()
        if not payment:
            raise PaymentNotFoundError(
                f"No payment recorded for intent {intent_id}",
                details={"gateway_intent_id": intent_id},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment input fails validation.

    Use for:
    - Non-positive amounts
    - Missing currency or intent id
    - Attempts to change an immutable field (amount, payment type)
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentError):
    """
    Base exception for payment gateway failures.

    Attributes:
        gateway_code: Gateway's own error code (e.g. Stripe's error.code)
        decline_code: Card decline code, when the gateway gave one
        is_retryable: Whether repeating the call can succeed
    """

    default_error_code: str = "GATEWAY_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        gateway_code: str | None = None,
        decline_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if gateway_code:
            details["gateway_code"] = gateway_code
        if decline_code:
            details["decline_code"] = decline_code
        super().__init__(message, error_code=error_code, details=details)
        self.gateway_code = gateway_code
        self.decline_code = decline_code


class GatewayUnavailable(GatewayError):
    """
    Creating a payment intent failed or returned a malformed payload.

    Covers network errors, gateway 5xx, rate limiting, timeouts, bad
    credentials and a response without a client secret. The caller should
    retry the whole payment attempt.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


class ConfirmationUnavailable(GatewayError):
    """
    The primary confirmation path could not give an answer.

    This is not a decline. The reconciliation coordinator reacts by taking
    the fallback path instead of surfacing the error.
    """

    default_error_code: str = "CONFIRMATION_UNAVAILABLE"
    is_retryable: bool = True


class ConfirmationDenied(GatewayError):
    """
    The gateway reports the payment did not go through.

    Permanent: the Payment is marked failed and the project status is left
    alone. Shown to the client as "payment failed".
    """

    default_error_code: str = "CONFIRMATION_DENIED"
    is_retryable: bool = False


# =============================================================================
# Reconciliation Exceptions
# =============================================================================


class ReconciliationFailed(PaymentError):
    """
    Neither the primary nor the fallback path could settle the payment.

    The Payment stays pending and no project status changes. Re-running
    reconcile() later is safe.
    """

    default_error_code: str = "RECONCILIATION_FAILED"
    is_retryable: bool = True


# =============================================================================
# Concurrency Control Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a payment status transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed with our standard error format.

    Example:
        try:
            payment.succeed()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot mark payment succeeded from '{payment.status}'",
                details={
                    "current_state": payment.status,
                    "target_state": "succeeded",
                },
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


__all__ = [
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "GatewayError",
    "GatewayUnavailable",
    "ConfirmationUnavailable",
    "ConfirmationDenied",
    "ReconciliationFailed",
    "InvalidStateTransitionError",
]
