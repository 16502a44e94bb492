"""
Payment gateway client for project payments.

This module provides the PaymentGatewayClient class which encapsulates all
Stripe API interactions. Every Stripe call goes through this client so
errors, timeouts, idempotency and logging are handled in one place.

Features:
- A timeout on every gateway call (per call, or STRIPE_API_TIMEOUT_SECONDS)
- Translation of Stripe SDK errors into the payment error taxonomy
- Structured logging with timing metrics
- Idempotency keys for safe intent creation retries

Configuration (via settings):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_API_TIMEOUT_SECONDS: Default call timeout (default: 10)

Usage:
    from payments.adapters import PaymentGatewayClient

    intent = PaymentGatewayClient.create_intent(
        amount_cents=3000,
        currency="cad",
        project_id=project.id,
        client_id=project.client_id,
        payment_type="initial",
        metadata={"project_title": project.title},
    )

    confirmed = PaymentGatewayClient.confirm("pi_xxx", timeout=5)
"""

from __future__ import annotations

import hashlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any

import stripe
from django.conf import settings

from payments.exceptions import (
    ConfirmationDenied,
    ConfirmationUnavailable,
    GatewayError,
    GatewayUnavailable,
)


# Intent states that mean the payer's attempt did not go through
DENIED_INTENT_STATUSES = frozenset({"canceled", "requires_payment_method"})


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class IntentResult:
    """
    Result from gateway PaymentIntent operations.

    Attributes:
        gateway_intent_id: PaymentIntent ID (pi_xxx)
        status: Gateway status (requires_payment_method, succeeded, etc.)
        amount: Amount in cents
        currency: Currency code
        client_secret: Secret for client-side confirmation
        metadata: Attached metadata
        raw_response: Full Stripe response dict (for debugging)
    """

    gateway_intent_id: str
    status: str
    amount: int
    currency: str
    client_secret: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)
    raw_response: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == "succeeded"


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The same inputs always give the same key, so a retried intent creation
    returns the intent Stripe already created instead of charging twice.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="create_intent",
            entity_id=f"{project.id}:initial:3000",
        )
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Payment Gateway Client
# =============================================================================


class PaymentGatewayClient:
    """
    Client for Stripe PaymentIntent operations.

    All methods are classmethods - no instance state is maintained.
    Thread-safe for use from Celery workers.

    Error Mapping:
        create_intent / retrieve_intent:
            any Stripe error or missing client secret -> GatewayUnavailable
        confirm:
            intent succeeded                        -> IntentResult
            intent canceled / needs new method      -> ConfirmationDenied
            card error / unknown intent             -> ConfirmationDenied
            intent still processing, network,
            server, rate limit, auth, other errors  -> ConfirmationUnavailable
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe(timeout: float | None = None) -> None:
        """Configure Stripe client with API key and timeout."""
        stripe.api_key = settings.STRIPE_SECRET_KEY
        if timeout is None:
            timeout = getattr(settings, "STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this client."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @staticmethod
    def _to_result(intent: Any) -> IntentResult:
        return IntentResult(
            gateway_intent_id=intent.id,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
            client_secret=intent.client_secret,
            metadata=dict(intent.metadata or {}),
            raw_response=intent.to_dict(),
        )

    # =========================================================================
    # Core Operations
    # =========================================================================

    @classmethod
    def create_intent(
        cls,
        amount_cents: int,
        currency: str,
        project_id: uuid.UUID | str,
        client_id: int | str,
        payment_type: str,
        metadata: dict[str, Any] | None = None,
        idempotency_key: str | None = None,
        timeout: float | None = None,
    ) -> IntentResult:
        """
        Create a Stripe PaymentIntent for a project payment.

        The caller must record a pending Payment for the returned
        gateway_intent_id before exposing client_secret to the payer.

        Args:
            amount_cents: Amount to charge in cents
            currency: ISO 4217 currency code
            project_id: Project being paid for (stored in intent metadata)
            client_id: Paying user (stored in intent metadata)
            payment_type: initial, final or maintenance
            metadata: Extra key-value pairs to attach to the intent
            idempotency_key: Stripe idempotency key for safe retries
            timeout: Call timeout in seconds (defaults to settings)

        Returns:
            IntentResult including client_secret

        Raises:
            GatewayUnavailable: Stripe call failed or returned no client secret
        """
        cls._configure_stripe(timeout)
        logger = cls.get_logger()

        intent_metadata = {
            **{key: str(value) for key, value in (metadata or {}).items()},
            "project_id": str(project_id),
            "client_id": str(client_id),
            "payment_type": str(payment_type),
        }

        log_context = {
            "operation": "create_intent",
            "amount_cents": amount_cents,
            "currency": currency,
            "project_id": str(project_id),
            "payment_type": str(payment_type),
            "idempotency_key": idempotency_key,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            create_params: dict[str, Any] = {
                "amount": amount_cents,
                "currency": currency,
                "metadata": intent_metadata,
                "automatic_payment_methods": {"enabled": True},
            }
            if idempotency_key:
                create_params["idempotency_key"] = idempotency_key

            intent = stripe.PaymentIntent.create(**create_params)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms, GatewayUnavailable)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000

        if not getattr(intent, "client_secret", None) or not getattr(intent, "id", None):
            logger.error(
                "Stripe returned a payment intent without client secret",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise GatewayUnavailable(
                "Payment gateway returned an incomplete payment intent",
                error_code="MALFORMED_GATEWAY_RESPONSE",
                details={"gateway_intent_id": getattr(intent, "id", None)},
            )

        logger.info(
            "Stripe operation completed",
            extra={
                **log_context,
                "gateway_intent_id": intent.id,
                "status": intent.status,
                "duration_ms": duration_ms,
            },
        )
        return cls._to_result(intent)

    @classmethod
    def retrieve_intent(
        cls,
        gateway_intent_id: str,
        timeout: float | None = None,
    ) -> IntentResult:
        """
        Retrieve a PaymentIntent by ID.

        Raises:
            GatewayUnavailable: The intent could not be read
        """
        cls._configure_stripe(timeout)
        logger = cls.get_logger()

        log_context = {
            "operation": "retrieve_intent",
            "gateway_intent_id": gateway_intent_id,
        }

        start_time = time.time()
        logger.debug("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(gateway_intent_id)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms, GatewayUnavailable)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.debug(
            "Stripe operation completed",
            extra={**log_context, "status": intent.status, "duration_ms": duration_ms},
        )
        return cls._to_result(intent)

    @classmethod
    def confirm(
        cls,
        gateway_intent_id: str,
        timeout: float | None = None,
    ) -> IntentResult:
        """
        Verify with Stripe that a payment intent succeeded.

        This is the trusted server-side check behind reconciliation: the
        browser reported success, Stripe has the final word.

        Args:
            gateway_intent_id: Stripe PaymentIntent ID (pi_xxx)
            timeout: Call timeout in seconds (defaults to settings)

        Returns:
            IntentResult for a succeeded intent

        Raises:
            ConfirmationDenied: Stripe says the payment did not go through
            ConfirmationUnavailable: Stripe could not give a final answer
        """
        cls._configure_stripe(timeout)
        logger = cls.get_logger()

        log_context = {
            "operation": "confirm",
            "gateway_intent_id": gateway_intent_id,
        }

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            intent = stripe.PaymentIntent.retrieve(gateway_intent_id)
        except stripe.CardError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.warning(
                "Card error from Stripe during confirmation",
                extra={**log_context, "duration_ms": duration_ms},
            )
            raise ConfirmationDenied(
                str(e.user_message or e),
                gateway_code=e.code,
                decline_code=getattr(e, "decline_code", None),
                details={"gateway_intent_id": gateway_intent_id},
            )
        except stripe.InvalidRequestError as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                "Stripe rejected confirmation request",
                extra={**log_context, "stripe_code": e.code, "duration_ms": duration_ms},
            )
            raise ConfirmationDenied(
                str(e),
                gateway_code=e.code,
                details={"gateway_intent_id": gateway_intent_id},
            )
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms, ConfirmationUnavailable)
            raise

        duration_ms = (time.time() - start_time) * 1000
        result = cls._to_result(intent)
        log_context = {**log_context, "status": result.status, "duration_ms": duration_ms}

        if result.succeeded:
            logger.info("Payment intent confirmed", extra=log_context)
            return result

        last_error = getattr(intent, "last_payment_error", None)
        decline_code = getattr(last_error, "decline_code", None) if last_error else None

        if result.status in DENIED_INTENT_STATUSES:
            logger.warning("Payment intent was not completed", extra=log_context)
            raise ConfirmationDenied(
                f"Payment {result.status.replace('_', ' ')}",
                gateway_code=result.status,
                decline_code=decline_code,
                details={"gateway_intent_id": gateway_intent_id},
            )

        logger.warning("Payment intent not settled yet", extra=log_context)
        raise ConfirmationUnavailable(
            f"Payment intent is {result.status}, not succeeded",
            gateway_code=result.status,
            details={"gateway_intent_id": gateway_intent_id},
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes,
        signature: str,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload bytes
            signature: Stripe-Signature header value

        Returns:
            Parsed event data dict

        Raises:
            GatewayError: Invalid signature
        """
        try:
            event = stripe.Webhook.construct_event(
                payload,
                signature,
                settings.STRIPE_WEBHOOK_SECRET,
            )
            return event.to_dict()
        except stripe.SignatureVerificationError as e:
            cls.get_logger().warning("Rejected webhook with invalid signature")
            raise GatewayError(
                "Invalid webhook signature",
                error_code="INVALID_WEBHOOK_SIGNATURE",
                gateway_code="signature_verification_failed",
                details={"error": str(e)},
            )

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
        error_class: type[GatewayError],
    ) -> None:
        """
        Translate Stripe exceptions to a gateway error of error_class.

        Each Stripe error family is logged at its own level; the raised
        error keeps the Stripe code for diagnosis.

        Raises:
            error_class: Always
        """
        logger = cls.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, stripe.CardError):
            decline_code = getattr(error, "decline_code", None)
            logger.warning(
                "Card error from Stripe",
                extra={**log_context, "decline_code": decline_code},
            )
            raise error_class(
                str(error.user_message or error),
                gateway_code=error.code,
                decline_code=decline_code,
            )

        elif isinstance(error, stripe.InvalidRequestError):
            logger.error(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise error_class(str(error), gateway_code=error.code)

        elif isinstance(error, stripe.RateLimitError):
            logger.warning("Rate limited by Stripe", extra=log_context)
            raise error_class(
                "Stripe rate limit exceeded. Please retry.",
                gateway_code="rate_limit",
            )

        elif isinstance(error, stripe.APIConnectionError):
            logger.error("Connection error to Stripe", extra=log_context, exc_info=True)
            raise error_class(
                "Could not connect to Stripe. Please retry.",
                gateway_code="api_connection_error",
            )

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise error_class(
                "Stripe authentication failed",
                gateway_code="authentication_error",
            )

        elif isinstance(error, stripe.APIError):
            logger.error("Stripe API error", extra=log_context, exc_info=True)
            raise error_class(
                "Stripe service error. Please retry.",
                gateway_code="api_error",
            )

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise error_class(
                f"Unexpected Stripe error: {error}",
                gateway_code="unknown_error",
            )
