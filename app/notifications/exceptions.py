"""
Notification exceptions.

NotificationDeliveryFailed is raised by a delivery strategy when it cannot
write a recipient's row. NotificationFanout catches it, tries the next
strategy, and logs it when every strategy has failed. It never leaves the
fan-out.
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class NotificationDeliveryFailed(BaseApplicationError):
    """A delivery strategy could not write a notification row."""

    default_error_code: str = "NOTIFICATION_DELIVERY_FAILED"
