"""
Payments app configuration.

This app provides project payment collection:
- Payment plan pricing
- Stripe payment intents behind PaymentGatewayClient
- The payment ledger and payment-to-project-status reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
