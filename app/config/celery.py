"""
Celery configuration for the Django application.

Celery runs the work that must never block a payment request:
- Admin notification fan-out after a payment completes or a project moves
- Retried reconciliation of payments whose confirmation could not complete

Tasks are auto-discovered from all installed Django apps.

Usage:
    from celery import shared_task

    @shared_task
    def notify_payment_completed(payment_id):
        ...

    notify_payment_completed.delay(str(payment.id))

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
