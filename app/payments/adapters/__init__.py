"""
Payment adapters for external services.

All payment gateway calls go through these adapters to ensure consistent
error handling, timeouts, idempotency, and observability.

Usage:
    from payments.adapters import PaymentGatewayClient

    result = PaymentGatewayClient.confirm("pi_xxx")
"""

from payments.adapters.payment_gateway import (
    IdempotencyKeyGenerator,
    IntentResult,
    PaymentGatewayClient,
)

__all__ = [
    "IdempotencyKeyGenerator",
    "IntentResult",
    "PaymentGatewayClient",
]
