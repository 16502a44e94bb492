"""
Pytest fixtures for payment service tests.

The gateway is never called for real here: orchestrator tests patch the
class attribute, coordinator tests inject a mock.
"""

from unittest.mock import MagicMock

import pytest

from payments.adapters import IntentResult
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
def succeeded_intent():
    """Gateway confirmation for pi_pending_001."""
    return IntentResult(
        gateway_intent_id="pi_pending_001",
        status="succeeded",
        amount=3000,
        currency="cad",
        raw_response={"id": "pi_pending_001", "payment_method_types": ["card"]},
    )


@pytest.fixture
def mock_gateway(succeeded_intent):
    """Gateway whose confirm() succeeds."""
    gateway = MagicMock()
    gateway.confirm.return_value = succeeded_intent
    return gateway


class RecordingNotifier:
    """Notification dispatcher that records what it was asked to send."""

    def __init__(self):
        self.payments = []
        self.status_changes = []

    def payment_completed(self, payment):
        self.payments.append(payment.pk)

    def status_changed(self, resolution):
        self.status_changes.append((resolution.previous_status, resolution.status))


@pytest.fixture
def notifier():
    return RecordingNotifier()
