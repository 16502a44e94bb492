"""
Project models.

A Project is a website build ordered by a client. Intake flows (outside this
backend) create projects and move them through the early lifecycle states;
payment evidence moves them through the confirmed -> in_progress -> completed
sub-path via projects.services.ProjectStatusResolver.

Usage:
    from projects.models import Project, ProjectStatus

    project = Project.objects.create(
        client=user,
        title="Bakery website",
        base_price_cents=250000,
        payment_option=PaymentPlan.SPLIT,
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.state_machines.states import PaymentPlan


class ProjectStatus(models.TextChoices):
    """
    Lifecycle of a project, in order.

    State Flow:
        NEW -> SUBMITTED -> WAITING_FOR_CONFIRMATION -> CONFIRMED
            -> IN_PROGRESS -> IN_DESIGN -> REVIEW -> FINAL_DELIVERY -> COMPLETED

    Only CONFIRMED, IN_PROGRESS and COMPLETED are ever derived from payments.
    """

    NEW = "new", "New"
    SUBMITTED = "submitted", "Submitted"
    WAITING_FOR_CONFIRMATION = "waiting_for_confirmation", "Waiting for confirmation"
    CONFIRMED = "confirmed", "Confirmed"
    IN_PROGRESS = "in_progress", "In progress"
    IN_DESIGN = "in_design", "In design"
    REVIEW = "review", "Review"
    FINAL_DELIVERY = "final_delivery", "Final delivery"
    COMPLETED = "completed", "Completed"

    @classmethod
    def rank(cls, status: str) -> int:
        """Position of a status in the lifecycle (0 for NEW, -1 if unknown)."""
        try:
            return cls.values.index(status)
        except ValueError:
            return -1


class Project(UUIDPrimaryKeyMixin, BaseModel):
    """
    A client's website project.

    Fields:
        client: User who owns and pays for the project
        title: Project name shown to the client and admins
        base_price_cents: Price before sales taxes, in minor currency units
        payment_option: Plan the client chose at intake (full, split, monthly)
        status: Current lifecycle status

    Note:
        status is written with compare-and-set updates by the status
        resolver. Do not save() a stale instance over it.
    """

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="projects",
        help_text="Client who owns the project",
    )

    title = models.CharField(
        max_length=200,
        help_text="Project name",
    )

    base_price_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Price before taxes in smallest currency unit (e.g., cents)",
    )

    payment_option = models.CharField(
        max_length=20,
        choices=PaymentPlan.choices,
        default=PaymentPlan.FULL,
        help_text="Payment plan chosen at intake",
    )

    status = models.CharField(
        max_length=32,
        choices=ProjectStatus.choices,
        default=ProjectStatus.NEW,
        db_index=True,
        help_text="Current lifecycle status",
    )

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Project({self.id}, {self.title!r}, {self.status})"
