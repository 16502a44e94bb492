"""
Notification models for the admin inbox.

Models:
    AdminNotification: One admin's copy of an internal event

Enums:
    NotificationSeverity: Visual severity shown in the inbox (info/success/warning/error)

Rows are written only by notifications.services.NotificationFanout, one per
admin per event, and read by the inbox UI through the recipient relation.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class NotificationSeverity(models.TextChoices):
    INFO = "info", "Info"
    SUCCESS = "success", "Success"
    WARNING = "warning", "Warning"
    ERROR = "error", "Error"


class AdminNotification(UUIDPrimaryKeyMixin, BaseModel):
    """
    A notification addressed to a single admin.

    Fields:
        recipient: Admin receiving this copy (never null, no shared broadcast rows)
        title: Fully rendered title
        message: Fully rendered message body
        severity: NotificationSeverity value
        is_read: Whether the recipient has read it

    Inherits from BaseModel:
        created_at: Timestamp (auto, indexed)
        updated_at: Timestamp (auto)

    Usage:
        unread = AdminNotification.objects.filter(recipient=admin, is_read=False)
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="admin_notifications",
        db_index=True,
        help_text="Admin receiving this notification",
    )

    title = models.CharField(
        max_length=255,
        help_text="Fully rendered notification title",
    )

    message = models.TextField(
        help_text="Fully rendered notification message",
    )

    severity = models.CharField(
        max_length=10,
        choices=NotificationSeverity.choices,
        default=NotificationSeverity.INFO,
        help_text="Severity shown in the inbox",
    )

    is_read = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Whether the recipient has read this notification",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient", "is_read"],
                name="admin_notif_recipient_read_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"AdminNotification({self.severity}: {self.title} -> {self.recipient_id})"
