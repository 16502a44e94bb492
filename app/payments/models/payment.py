"""
Payment model for project payment collection.

A Payment is the local record of one gateway payment intent. It is created
as PENDING before the client secret is handed to the browser and is settled
once by reconciliation (or by a gateway webhook).

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus, PaymentType

    payment = Payment.objects.create(
        project=project,
        client=project.client,
        gateway_intent_id="pi_123",
        amount_cents=3000,
        payment_type=PaymentType.INITIAL,
    )

    # State transitions using django-fsm (validated in memory, written by
    # payments.services.PaymentLedger with a compare-and-set update)
    payment.succeed()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.model_mixins import MetadataMixin, UUIDPrimaryKeyMixin
from core.models import BaseModel
from payments.exceptions import PaymentValidationError
from payments.state_machines import PaymentStatus, PaymentType

# Fields that never change after the row is created
IMMUTABLE_FIELDS = ("amount_cents", "payment_type")


class Payment(UUIDPrimaryKeyMixin, MetadataMixin, BaseModel):
    """
    Local record of a gateway payment intent for a project.

    State Flow:
        PENDING -> SUCCEEDED
        PENDING -> FAILED
        PENDING -> CANCELED

    Fields:
        project: Project being paid for
        client: User paying
        gateway_intent_id: Gateway PaymentIntent id (pi_xxx), unique
        amount_cents: Amount in smallest currency unit, immutable
        currency: ISO 4217 currency code (lowercase)
        status: Current FSM state
        payment_type: initial, final or maintenance, immutable
        payment_method: Label of the method used (stripe, card)
        processed_at: When the payment reached a terminal state
        failure_reason: Gateway message when the payment failed
        metadata: Project title, chosen plan and other display data

    Note:
        status is protected: it only changes through the transitions
        below, and the ledger persists them with conditional updates
        keyed on status=pending.
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    project = models.ForeignKey(
        "projects.Project",
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="Project this payment is for",
    )

    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="payments",
        help_text="User making the payment",
    )

    # ==========================================================================
    # Gateway Correlation
    # ==========================================================================

    gateway_intent_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Gateway PaymentIntent ID (pi_xxx)",
    )

    # ==========================================================================
    # Amount & Type
    # ==========================================================================

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payment amount in smallest currency unit (e.g., cents)",
    )

    currency = models.CharField(
        max_length=3,
        default="cad",
        help_text="ISO 4217 currency code (lowercase)",
    )

    payment_type = models.CharField(
        max_length=20,
        choices=PaymentType.choices,
        help_text="What this payment pays for (initial, final, maintenance)",
    )

    payment_method = models.CharField(
        max_length=50,
        default="stripe",
        help_text="Payment method label",
    )

    # ==========================================================================
    # State
    # ==========================================================================

    status = FSMField(
        default=PaymentStatus.PENDING,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment reached a terminal state",
    )

    failure_reason = models.TextField(
        blank=True,
        default="",
        help_text="Gateway message when the payment failed",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["project", "status"], name="payment_project_status_idx"),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payment({self.id}, {self.status}, {self.payment_type}, {amount_display})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = {
            name: value
            for name, value in zip(field_names, values)
            if name in IMMUTABLE_FIELDS
        }
        return instance

    def save(self, *args, **kwargs):
        """Save, refusing to change amount or payment type of a stored row."""
        loaded = getattr(self, "_loaded_values", None)
        if loaded and not self._state.adding:
            changed = [
                name
                for name, value in loaded.items()
                if getattr(self, name) != value
            ]
            if changed:
                raise PaymentValidationError(
                    f"Payment {self.pk} fields are immutable: {', '.join(changed)}",
                    error_code="PAYMENT_IMMUTABLE_FIELD",
                    details={"payment_id": str(self.pk), "fields": changed},
                )
        super().save(*args, **kwargs)

    @property
    def is_terminal(self) -> bool:
        return self.status in PaymentStatus.terminal_states()

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.SUCCEEDED,
    )
    def succeed(self, payment_method: str | None = None):
        """
        Mark the payment as succeeded.

        Transition: PENDING -> SUCCEEDED
        """
        self.processed_at = timezone.now()
        if payment_method:
            self.payment_method = payment_method

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Mark the payment as failed.

        Transition: PENDING -> FAILED
        """
        self.processed_at = timezone.now()
        if reason:
            self.failure_reason = reason

    @transition(
        field=status,
        source=PaymentStatus.PENDING,
        target=PaymentStatus.CANCELED,
    )
    def cancel(self):
        """
        Cancel the payment.

        Transition: PENDING -> CANCELED
        """
        self.processed_at = timezone.now()
