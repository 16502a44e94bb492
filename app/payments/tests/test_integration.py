"""
End-to-end payment journey tests.

Only the Stripe SDK is mocked. Orchestrator, gateway client, ledger,
resolver, Celery tasks (eager) and the admin fan-out all run for real.
"""

from unittest.mock import MagicMock, patch

import pytest

from authentication.tests.factories import AdminFactory
from notifications.models import AdminNotification
from payments.models import Payment
from payments.services import PaymentOrchestrator, ReconciliationCoordinator
from payments.state_machines import PaymentPlan, PaymentStatus, PaymentType
from projects.models import Project, ProjectStatus


def stripe_intent(intent_id, status, amount):
    data = {
        "id": intent_id,
        "object": "payment_intent",
        "status": status,
        "amount": amount,
        "currency": "cad",
        "client_secret": f"{intent_id}_secret",
        "metadata": {},
        "payment_method_types": ["card"],
    }
    intent = MagicMock(last_payment_error=None, **data)
    intent.to_dict.return_value = data
    return intent


@pytest.fixture
def stripe_api():
    """Stripe PaymentIntent API with one intent per create() call."""
    intents = {}

    def create(amount, **kwargs):
        intent_id = f"pi_journey_{len(intents) + 1}"
        intents[intent_id] = amount
        return stripe_intent(intent_id, "requires_payment_method", amount)

    def retrieve(intent_id):
        return stripe_intent(intent_id, "succeeded", intents[intent_id])

    with patch("stripe.PaymentIntent") as payment_intent, patch("stripe.RequestsClient"):
        payment_intent.create.side_effect = create
        payment_intent.retrieve.side_effect = retrieve
        yield payment_intent


def test_split_plan_journey(project, stripe_api):
    """
    Given a confirmed $100.00 project on the split plan and one admin
    When the client pays the initial and then the final payment
    Then the project goes confirmed -> in_progress -> completed
    And the admin is told about both payments and the completion
    """
    admin = AdminFactory()
    coordinator = ReconciliationCoordinator()

    # Initial payment: 30% of 114.98
    initial = PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.SPLIT)
    assert initial.success
    assert initial.data.payment.payment_type == PaymentType.INITIAL
    assert initial.data.payment.amount_cents == 3449

    first = coordinator.reconcile(initial.data.payment.gateway_intent_id)
    assert first.resolution.status == ProjectStatus.IN_PROGRESS

    # Final payment: the remaining 70%
    final = PaymentOrchestrator.initiate_project_payment(
        project, PaymentPlan.SPLIT, PaymentType.FINAL
    )
    assert final.success
    assert final.data.payment.amount_cents == 8049

    second = coordinator.reconcile(final.data.payment.gateway_intent_id)
    assert second.resolution.status == ProjectStatus.COMPLETED

    assert Project.objects.get(pk=project.pk).status == ProjectStatus.COMPLETED
    assert set(
        Payment.objects.filter(project=project).values_list("status", flat=True)
    ) == {PaymentStatus.SUCCEEDED}

    titles = list(
        AdminNotification.objects.filter(recipient=admin)
        .order_by("created_at")
        .values_list("title", flat=True)
    )
    assert sorted(titles) == sorted(
        ["💳 Payment Received", "💳 Payment Received", "🎉 Project Status Updated"]
    )


def test_retried_initiation_reuses_open_intent(project, stripe_api):
    first = PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.SPLIT)
    stripe_api.retrieve.side_effect = None
    stripe_api.retrieve.return_value = stripe_intent(
        first.data.payment.gateway_intent_id, "requires_payment_method", 3449
    )

    second = PaymentOrchestrator.initiate_project_payment(project, PaymentPlan.SPLIT)

    assert second.data.reused is True
    assert second.data.payment.pk == first.data.payment.pk
    assert stripe_api.create.call_count == 1
    assert Payment.objects.filter(project=project).count() == 1
