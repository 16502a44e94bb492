"""
Test configuration and fixtures for notification tests.

This module provides:
- Admin and client users
- A project with a settled payment to notify about
- Stub directories and writers for driving the fan-out

Usage:
    def test_example(admins, fanout):
        result = fanout.notify_admins("Title", "Message")
        assert result.delivered_count == len(admins)
"""

import pytest

from authentication.tests.factories import AdminFactory, UserFactory
from notifications.exceptions import NotificationDeliveryFailed
from notifications.services import DatabaseNotificationWriter, NotificationFanout
from payments.state_machines import PaymentStatus
from payments.tests.factories import PaymentFactory
from projects.tests.factories import ProjectFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def client_user(db):
    return UserFactory(display_name="Jane Client", email="jane@example.com")


@pytest.fixture
def admins(db):
    """Two active admins, oldest first."""
    return [AdminFactory(), AdminFactory()]


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def project(client_user):
    return ProjectFactory(client=client_user, title="Bakery website")


@pytest.fixture
def payment(project):
    return PaymentFactory(
        project=project,
        amount_cents=9500,
        currency="cad",
        status=PaymentStatus.SUCCEEDED,
    )


# =============================================================================
# Fan-out Fixtures
# =============================================================================


class StaticDirectory:
    """Recipient directory returning a fixed id list."""

    def __init__(self, ids):
        self.ids = list(ids)

    def admin_ids(self):
        return list(self.ids)


class BrokenDirectory:
    def admin_ids(self):
        raise RuntimeError("user table unavailable")


class RecordingWriter:
    """Writer that records calls and fails for chosen recipients."""

    def __init__(self, name, fail_for=()):
        self.name = name
        self.fail_for = set(fail_for)
        self.calls = []

    def write(self, recipient_id, title, message, severity):
        self.calls.append(recipient_id)
        if recipient_id in self.fail_for:
            raise NotificationDeliveryFailed(f"{self.name} refused {recipient_id}")
        return None


@pytest.fixture
def fanout(admins):
    """Fan-out over the real user table and default database."""
    return NotificationFanout(writer=DatabaseNotificationWriter())
