import uuid

from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Session",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("title", models.CharField(max_length=255)),
                ("starts_at", models.DateTimeField()),
                ("ends_at", models.DateTimeField(blank=True, null=True)),
                ("price_cents", models.PositiveIntegerField(default=0)),
                ("spots_total", models.PositiveIntegerField()),
                ("spots_remaining", models.PositiveIntegerField()),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("open", "Open"),
                            ("full", "Full"),
                            ("in_progress", "In progress"),
                            ("completed", "Completed"),
                            ("cancelled", "Cancelled"),
                        ],
                        default="open",
                        max_length=20,
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Session",
                "verbose_name_plural": "Sessions",
                "ordering": ["starts_at"],
                "indexes": [models.Index(fields=["status", "starts_at"], name="session_status_starts_idx")],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("spots_remaining__lte", models.F("spots_total"))),
                        name="session_spots_within_total",
                    )
                ],
            },
        ),
    ]
