"""
Celery tasks for admin notifications.

Tasks:
    notify_payment_completed: "Payment Received" to every admin
    notify_project_status_changed: "Project Status Updated" for milestone statuses

Design:
    - Tasks receive ids (UUID strings), never model instances
    - The fan-out never raises, so these tasks are not retried; a retry
      would duplicate rows already written for other admins
    - A missing payment or project is logged and skipped

Usage:
    from notifications.tasks import notify_payment_completed

    notify_payment_completed.delay(payment_id=str(payment.id))
"""

from __future__ import annotations

import logging

from celery import shared_task

from notifications.services import AdminEventNotifier
from payments.models import Payment
from projects.models import Project

logger = logging.getLogger(__name__)


@shared_task
def notify_payment_completed(payment_id: str) -> int:
    """
    Tell every admin a payment went through.

    Returns:
        Number of admins notified
    """
    payment = (
        Payment.objects.select_related("project", "client")
        .filter(id=payment_id)
        .first()
    )
    if payment is None:
        logger.warning(f"Payment {payment_id} not found, skipping notification")
        return 0

    result = AdminEventNotifier().payment_completed(payment)
    return result.delivered_count


@shared_task
def notify_project_status_changed(project_id: str, old_status: str, new_status: str) -> int:
    """
    Tell every admin a project reached a milestone status.

    Returns:
        Number of admins notified (0 for non-milestone statuses)
    """
    project = Project.objects.select_related("client").filter(id=project_id).first()
    if project is None:
        logger.warning(f"Project {project_id} not found, skipping notification")
        return 0

    result = AdminEventNotifier().status_changed(project, old_status, new_status)
    return result.delivered_count if result else 0
