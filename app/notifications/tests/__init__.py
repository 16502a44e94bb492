"""
Tests for notifications app.

This package contains test modules for:
- test_models.py: AdminNotification model tests
- test_fanout.py: NotificationFanout delivery and failure isolation
- test_services.py: AdminEventNotifier message templates
- test_tasks.py: Celery task tests

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_fanout.py
"""
