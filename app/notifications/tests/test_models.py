"""
Unit tests for notification models.
"""

from freezegun import freeze_time

from notifications.models import AdminNotification, NotificationSeverity
from notifications.tests.factories import AdminNotificationFactory


class TestAdminNotification:
    def test_defaults(self, db):
        notification = AdminNotificationFactory(severity=NotificationSeverity.INFO)

        assert notification.is_read is False
        assert notification.severity == "info"
        assert notification.created_at is not None

    def test_newest_first(self, db):
        with freeze_time("2026-03-01 09:00"):
            older = AdminNotificationFactory()
        with freeze_time("2026-03-01 10:00"):
            newer = AdminNotificationFactory(recipient=older.recipient)

        assert list(AdminNotification.objects.filter(recipient=older.recipient)) == [
            newer,
            older,
        ]

    def test_deleted_with_recipient(self, db):
        notification = AdminNotificationFactory()

        notification.recipient.delete()

        assert not AdminNotification.objects.filter(pk=notification.pk).exists()

    def test_str(self, db):
        notification = AdminNotificationFactory(title="💳 Payment Received")

        assert "Payment Received" in str(notification)
