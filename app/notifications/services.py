"""
Admin notification fan-out.

This module delivers internal events to every admin as independent
per-recipient rows. Delivery is best effort: nothing in here raises to the
caller, so a broken inbox can never fail a payment.

Classes:
    DatabaseNotificationWriter: Writes one AdminNotification through a database alias
    NotificationFanout: Resolves admins and writes one row each through a strategy cascade
    AdminEventNotifier: Fixed message templates for the events admins care about

Delivery cascade per recipient:
    1. privileged writer (separate credential, only when configured)
    2. normal writer (default database)
    3. log and move on

Usage:
    from notifications.services import AdminEventNotifier, NotificationFanout

    NotificationFanout.from_settings().notify_admins(
        "Payment Received", "Jane paid $95.00", NotificationSeverity.SUCCESS
    )

    AdminEventNotifier().payment_completed(payment)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

from django.conf import settings
from django.db import DatabaseError, transaction

from authentication.services import UserDirectory
from core.services import BaseService
from notifications.exceptions import NotificationDeliveryFailed
from notifications.models import AdminNotification, NotificationSeverity
from payments.pricing import PricingCalculator
from projects.models import ProjectStatus

if TYPE_CHECKING:
    from payments.models import Payment
    from projects.models import Project

logger = logging.getLogger(__name__)


class RecipientDirectory(Protocol):
    def admin_ids(self) -> list: ...


class NotificationWriter(Protocol):
    name: str

    def write(
        self, recipient_id, title: str, message: str, severity: str
    ) -> AdminNotification: ...


# =============================================================================
# Delivery Strategies
# =============================================================================


class DatabaseNotificationWriter:
    """
    Writes a notification row through one database alias.

    Args:
        using: Database alias (None routes to the default database)
        name: Label used in logs
    """

    def __init__(self, using: str | None = None, name: str = "default"):
        self.using = using
        self.name = name

    def write(
        self, recipient_id, title: str, message: str, severity: str
    ) -> AdminNotification:
        try:
            with transaction.atomic(using=self.using):
                return AdminNotification.objects.db_manager(self.using).create(
                    recipient_id=recipient_id,
                    title=title,
                    message=message,
                    severity=severity,
                )
        except DatabaseError as e:
            raise NotificationDeliveryFailed(
                f"{self.name} writer could not store notification",
                details={"recipient_id": str(recipient_id), "reason": str(e)},
            ) from e

    def __repr__(self) -> str:
        return f"DatabaseNotificationWriter(name={self.name!r}, using={self.using!r})"


# =============================================================================
# Fan-out
# =============================================================================


@dataclass
class FanoutResult:
    """
    Outcome of one fan-out.

    Attributes:
        recipients: Admin ids the event was addressed to
        delivered: Ids whose row was written
        failed: Ids for which every strategy failed
    """

    recipients: list = field(default_factory=list)
    delivered: list = field(default_factory=list)
    failed: list = field(default_factory=list)

    @property
    def delivered_count(self) -> int:
        return len(self.delivered)


class NotificationFanout(BaseService):
    """
    Best-effort delivery of one event to every admin.

    Recipients are resolved on every call. Each recipient is delivered
    independently: a failure for one admin does not affect the others.

    Recipients are written one after another, not concurrently: Django
    database connections are per thread, and fan-out already runs in a
    Celery task off the request path.

    Args:
        directory: Source of admin ids (defaults to UserDirectory)
        privileged_writer: Elevated-credential writer tried first (optional)
        writer: Normal writer tried next (defaults to the default database)
    """

    def __init__(
        self,
        directory: RecipientDirectory | None = None,
        privileged_writer: NotificationWriter | None = None,
        writer: NotificationWriter | None = None,
    ):
        self.directory = directory or UserDirectory
        self.privileged_writer = privileged_writer
        self.writer = writer or DatabaseNotificationWriter(name="default")

    @classmethod
    def from_settings(cls) -> NotificationFanout:
        """Build a fan-out wired to the configured privileged alias, if any."""
        alias = getattr(settings, "NOTIFICATIONS_PRIVILEGED_DB_ALIAS", None)
        privileged = (
            DatabaseNotificationWriter(using=alias, name="privileged") if alias else None
        )
        return cls(privileged_writer=privileged)

    @property
    def strategies(self) -> list[NotificationWriter]:
        return [w for w in (self.privileged_writer, self.writer) if w is not None]

    def notify_admins(
        self,
        title: str,
        message: str,
        severity: str = NotificationSeverity.INFO,
    ) -> FanoutResult:
        """
        Write one notification per admin.

        Never raises. Zero admins is a logged no-op.
        """
        log = self.get_logger()

        try:
            recipients = list(self.directory.admin_ids())
        except Exception:
            log.exception("Could not resolve admin recipients", extra={"title": title})
            return FanoutResult()

        result = FanoutResult(recipients=recipients)
        if not recipients:
            log.info("No admin recipients, notification dropped", extra={"title": title})
            return result

        for recipient_id in recipients:
            if self._deliver(recipient_id, title, message, severity):
                result.delivered.append(recipient_id)
            else:
                result.failed.append(recipient_id)

        log.info(
            f"Notified {result.delivered_count}/{len(recipients)} admin(s)",
            extra={
                "title": title,
                "severity": severity,
                "failed_recipients": [str(r) for r in result.failed],
            },
        )
        return result

    def _deliver(self, recipient_id, title: str, message: str, severity: str) -> bool:
        log = self.get_logger()

        for strategy in self.strategies:
            try:
                strategy.write(recipient_id, title, message, severity)
                return True
            except Exception as e:
                log.warning(
                    f"Notification strategy '{strategy.name}' failed: {e}",
                    extra={"recipient_id": str(recipient_id), "strategy": strategy.name},
                )

        log.error(
            "All notification strategies failed",
            extra={"recipient_id": str(recipient_id), "title": title},
        )
        return False


# =============================================================================
# Event Producers
# =============================================================================


class AdminEventNotifier:
    """
    Builds the admin-facing message for each event and hands it to the fan-out.

    Usage:
        notifier = AdminEventNotifier()
        notifier.project_created(project)
        notifier.status_changed(project, "in_progress", "completed")
    """

    # Status changes outside this set are not worth an inbox entry
    NOTIFIABLE_STATUSES = frozenset(
        {ProjectStatus.SUBMITTED, ProjectStatus.CONFIRMED, ProjectStatus.COMPLETED}
    )

    def __init__(self, fanout: NotificationFanout | None = None):
        self.fanout = fanout or NotificationFanout.from_settings()

    def project_created(self, project: Project) -> FanoutResult:
        client = project.client
        return self.fanout.notify_admins(
            "🚀 New Project Created",
            f"{UserDirectory.display_name_for(client)} ({client.email}) has created "
            f'a new project: "{project.title}"',
            NotificationSeverity.INFO,
        )

    def payment_completed(self, payment: Payment) -> FanoutResult:
        amount = PricingCalculator.format_amount(payment.amount_cents, payment.currency)
        return self.fanout.notify_admins(
            "💳 Payment Received",
            f"{UserDirectory.display_name_for(payment.client)} completed payment of "
            f'{amount} for project "{payment.project.title}"',
            NotificationSeverity.SUCCESS,
        )

    def assets_uploaded(self, project: Project, file_count: int) -> FanoutResult:
        return self.fanout.notify_admins(
            "📁 New Assets Uploaded",
            f"{UserDirectory.display_name_for(project.client)} uploaded {file_count} "
            f'file(s) to project "{project.title}"',
            NotificationSeverity.INFO,
        )

    def ticket_created(self, client, subject: str, priority: str) -> FanoutResult:
        """Support ticket opened by a client. High priority tickets are warnings."""
        icons = {"high": "🚨", "medium": "⚠️"}
        return self.fanout.notify_admins(
            f"{icons.get(priority, '📝')} New Support Ticket",
            f"{UserDirectory.display_name_for(client)} created a {priority} priority "
            f'ticket: "{subject}"',
            NotificationSeverity.WARNING if priority == "high" else NotificationSeverity.INFO,
        )

    def status_changed(
        self, project: Project, old_status: str, new_status: str
    ) -> FanoutResult | None:
        """
        Project reached a milestone status.

        Returns None without notifying when new_status is not a milestone.
        """
        if new_status not in self.NOTIFIABLE_STATUSES:
            logger.debug(
                f"Skipping status notification for '{new_status}'",
                extra={"project_id": str(project.pk), "old_status": old_status},
            )
            return None

        icon = {"completed": "🎉", "confirmed": "✅"}.get(new_status, "📋")
        return self.fanout.notify_admins(
            f"{icon} Project Status Updated",
            f'Project "{project.title}" by {UserDirectory.display_name_for(project.client)} '
            f"is now {new_status}",
            NotificationSeverity.SUCCESS
            if new_status == ProjectStatus.COMPLETED
            else NotificationSeverity.INFO,
        )
