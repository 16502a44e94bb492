"""
Celery tasks for payment processing.

This module provides async tasks for:
- Reconciling a payment the browser reported as completed
- Applying verified gateway webhook events

Usage:
    from payments.tasks import reconcile_payment

    # Queue reconciliation (retried with backoff while the datastore is down)
    reconcile_payment.delay("pi_123")

    # Queue a webhook event after the request handler verified its signature
    from payments.tasks import process_gateway_event
    process_gateway_event.delay(event)
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.exceptions import (
    ConfirmationDenied,
    PaymentNotFoundError,
    ReconciliationFailed,
)
from payments.services import ReconciliationCoordinator

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

MAX_RECONCILIATION_RETRIES = 5


# =============================================================================
# Tasks
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(ReconciliationFailed,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_RECONCILIATION_RETRIES},
    acks_late=True,
)
def reconcile_payment(self, gateway_intent_id: str) -> dict:
    """
    Reconcile one payment asynchronously.

    ReconciliationFailed is retried with exponential backoff. Reconciling
    an already-settled payment is a no-op, so retries are safe.

    Returns:
        Dict with the outcome ("reconciled", "denied" or "not_found")
    """
    logger.info(
        "Reconciling payment",
        extra={"gateway_intent_id": gateway_intent_id, "retry": self.request.retries},
    )

    try:
        result = ReconciliationCoordinator().reconcile(gateway_intent_id)
    except ConfirmationDenied as e:
        logger.info(
            f"Payment declined: {e.message}",
            extra={"gateway_intent_id": gateway_intent_id},
        )
        return {"status": "denied", "gateway_intent_id": gateway_intent_id}
    except PaymentNotFoundError:
        logger.error(
            "No payment recorded for intent",
            extra={"gateway_intent_id": gateway_intent_id},
        )
        return {"status": "not_found", "gateway_intent_id": gateway_intent_id}

    return {
        "status": "reconciled",
        "gateway_intent_id": gateway_intent_id,
        "path": result.path.value,
        "project_status": result.resolution.status,
    }


@shared_task(
    bind=True,
    autoretry_for=(ReconciliationFailed,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": MAX_RECONCILIATION_RETRIES},
    acks_late=True,
)
def process_gateway_event(self, event: dict) -> dict:
    """
    Apply a verified gateway webhook event.

    Args:
        event: Event dict as returned by PaymentGatewayClient.verify_webhook_signature
    """
    event_type = event.get("type")
    logger.info(
        f"Processing gateway event: {event_type}",
        extra={"event_id": event.get("id"), "retry": self.request.retries},
    )

    result = ReconciliationCoordinator().apply_gateway_event(event)

    if result is None:
        return {"status": "applied", "event_type": event_type}
    return {
        "status": "reconciled",
        "event_type": event_type,
        "path": result.path.value,
        "project_status": result.resolution.status,
    }
