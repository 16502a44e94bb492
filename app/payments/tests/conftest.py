"""
Pytest fixtures for payment tests.

Fixtures provide payments in each state and a project to pay for.

Usage:
    def test_settle(pending_payment):
        PaymentLedger.mark_succeeded(pending_payment.gateway_intent_id)
"""

import pytest

from payments.state_machines import PaymentStatus, PaymentType
from payments.tests.factories import PaymentFactory
from projects.models import ProjectStatus
from projects.tests.factories import ProjectFactory


@pytest.fixture
def project(db):
    """Confirmed $100.00 project on the split plan."""
    return ProjectFactory(status=ProjectStatus.CONFIRMED)


@pytest.fixture
def pending_payment(db, project):
    """Pending initial payment for the project."""
    return PaymentFactory(project=project, gateway_intent_id="pi_pending_001")


@pytest.fixture
def succeeded_payment(db, project):
    """Succeeded initial payment for the project."""
    return PaymentFactory(
        project=project,
        gateway_intent_id="pi_succeeded_001",
        status=PaymentStatus.SUCCEEDED,
    )


@pytest.fixture
def failed_payment(db, project):
    """Failed final payment for the project."""
    return PaymentFactory(
        project=project,
        gateway_intent_id="pi_failed_001",
        payment_type=PaymentType.FINAL,
        status=PaymentStatus.FAILED,
    )
