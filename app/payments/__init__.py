"""
Payments app for collecting project payments through Stripe.

This app handles:
- Payment plan pricing (full, split, monthly) with sales taxes
- Stripe payment intents behind PaymentGatewayClient
- The Payment ledger and its pending -> succeeded/failed/canceled lifecycle
- Reconciling gateway outcomes into project status

Related apps:
    - projects: Project whose status follows its succeeded payments
    - notifications: Admin inbox entries for received payments

Usage:
    from payments.services import PaymentOrchestrator, ReconciliationCoordinator

    # Start a payment
    result = PaymentOrchestrator.initiate_project_payment(project, "split")

    # Settle it after the browser reports success
    ReconciliationCoordinator().reconcile(result.data.payment.gateway_intent_id)
"""
