"""
Tests for payments app.

This package contains test modules for:
- test_pricing.py: PricingCalculator amounts, taxes and formatting
- test_models.py: Payment state machine tests
- test_payment_ledger.py: PaymentLedger writes and concurrency
- test_tasks.py: Reconciliation Celery tasks
- test_commands.py: settle_pending_payments management command
- test_integration.py: Full payment journeys

Gateway and service tests live next to their packages
(payments/adapters/tests, payments/services/tests).

Usage:
    pytest payments/
    pytest payments/tests/test_payment_ledger.py
"""
