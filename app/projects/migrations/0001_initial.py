import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Project",
            fields=[
                (
                    "created_at",
                    models.DateTimeField(
                        auto_now_add=True,
                        db_index=True,
                        help_text="Timestamp when this record was created",
                    ),
                ),
                (
                    "updated_at",
                    models.DateTimeField(
                        auto_now=True,
                        help_text="Timestamp when this record was last modified",
                    ),
                ),
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                ("title", models.CharField(help_text="Project name", max_length=200)),
                (
                    "base_price_cents",
                    models.PositiveBigIntegerField(
                        default=0,
                        help_text="Price before taxes in smallest currency unit (e.g., cents)",
                    ),
                ),
                (
                    "payment_option",
                    models.CharField(
                        choices=[
                            ("full", "Pay in full"),
                            ("split", "Split payment"),
                            ("monthly", "Monthly installments"),
                        ],
                        default="full",
                        help_text="Payment plan chosen at intake",
                        max_length=20,
                    ),
                ),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("new", "New"),
                            ("submitted", "Submitted"),
                            ("waiting_for_confirmation", "Waiting for confirmation"),
                            ("confirmed", "Confirmed"),
                            ("in_progress", "In progress"),
                            ("in_design", "In design"),
                            ("review", "Review"),
                            ("final_delivery", "Final delivery"),
                            ("completed", "Completed"),
                        ],
                        db_index=True,
                        default="new",
                        help_text="Current lifecycle status",
                        max_length=32,
                    ),
                ),
                (
                    "client",
                    models.ForeignKey(
                        help_text="Client who owns the project",
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="projects",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
            },
        ),
    ]
