"""
Payment services for coordinating payment operations.

This module provides:
- PaymentLedger: Persistence boundary for Payment rows
- PaymentOrchestrator: Entry point for starting a project payment
- ReconciliationCoordinator: Settles payments and advances project status

Usage:
    from payments.services import PaymentOrchestrator, ReconciliationCoordinator

    # Start the first payment of a split plan
    result = PaymentOrchestrator.initiate_project_payment(project, "split")

    # After the browser reports success
    outcome = ReconciliationCoordinator().reconcile(gateway_intent_id)
"""

from payments.services.payment_ledger import LedgerTransition, PaymentLedger
from payments.services.payment_orchestrator import (
    InitiatePaymentParams,
    PaymentInitiation,
    PaymentOrchestrator,
)
from payments.services.reconciliation_service import (
    BulkReconciliationResult,
    ReconciliationCoordinator,
    ReconciliationPath,
    ReconciliationResult,
    StepOutcome,
    StepResult,
)

__all__ = [
    "BulkReconciliationResult",
    "InitiatePaymentParams",
    "LedgerTransition",
    "PaymentInitiation",
    "PaymentLedger",
    "PaymentOrchestrator",
    "ReconciliationCoordinator",
    "ReconciliationPath",
    "ReconciliationResult",
    "StepOutcome",
    "StepResult",
]
