"""
State enums for payment models.

This module defines all enums used by the Payment model with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment Status:
    pending → succeeded
    pending → failed
    pending → canceled

    Terminal states are never left. A client who retries after a failure
    gets a new Payment row with a new gateway intent.
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: SUCCEEDED, FAILED, CANCELED
    """

    PENDING = "pending", "Pending"
    SUCCEEDED = "succeeded", "Succeeded"
    FAILED = "failed", "Failed"
    CANCELED = "canceled", "Canceled"

    @classmethod
    def terminal_states(cls) -> frozenset[str]:
        return frozenset({cls.SUCCEEDED, cls.FAILED, cls.CANCELED})


class PaymentType(models.TextChoices):
    """
    What a payment pays for within a project.

    INITIAL: Deposit collected before work starts (split and monthly plans)
    FINAL: Last payment (full plan, or the remainder of a split plan)
    MAINTENANCE: Recurring care after delivery, never moves project status
    """

    INITIAL = "initial", "Initial"
    FINAL = "final", "Final"
    MAINTENANCE = "maintenance", "Maintenance"


class PaymentPlan(models.TextChoices):
    """
    Payment plan selected by the client.

    FULL: Pay everything now with a 5% discount
    SPLIT: 30% now, 70% on delivery
    MONTHLY: One third now, the rest over the following months
    """

    FULL = "full", "Pay in full"
    SPLIT = "split", "Split payment"
    MONTHLY = "monthly", "Monthly installments"
