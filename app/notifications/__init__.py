"""
Notifications app for the admin inbox.

This app provides:
- AdminNotification model, one row per admin per event
- NotificationFanout for best-effort delivery to every admin
- AdminEventNotifier with the message templates for each event
- Celery tasks so payment flows hand events off without waiting

Usage:
    from notifications.services import AdminEventNotifier

    AdminEventNotifier().project_created(project)
"""
