import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

STAGE_CHOICES = [
    ("shortlisting", "Shortlisting"),
    ("screening", "Screening Call"),
    ("assignment-sent", "Assignment Sent"),
    ("assignment-submitted", "Assignment Submitted"),
    ("interview", "Interview"),
    ("offer-sent", "Offer Sent"),
    ("offer-accepted", "Offer Accepted"),
    ("hired", "Hired"),
    ("rejected", "Rejected"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("candidates", "0001_initial"),
        ("jobs", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="Application",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "stage",
                    models.CharField(choices=STAGE_CHOICES, db_index=True, default="shortlisting", max_length=30),
                ),
                ("stage_entered_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ai_score", models.PositiveSmallIntegerField(blank=True, null=True)),
                ("ai_analysis", models.JSONField(blank=True, null=True)),
                ("is_hot_applicant", models.BooleanField(db_index=True, default=False)),
                ("assigned_to", models.CharField(blank=True, db_index=True, max_length=150, null=True)),
                ("rejection_reason", models.TextField(blank=True, null=True)),
                ("rejection_date", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "candidate",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to="candidates.candidate",
                    ),
                ),
                (
                    "job",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="applications",
                        to="jobs.jobopening",
                    ),
                ),
            ],
            options={
                "verbose_name": "Application",
                "verbose_name_plural": "Applications",
                "ordering": ["-created_at"],
                "unique_together": {("candidate", "job")},
            },
        ),
        migrations.CreateModel(
            name="Comment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("transition", "Stage Change"),
                            ("revert", "Revert"),
                            ("rejection", "Rejection"),
                            ("reassignment", "Reassignment"),
                            ("note", "Note"),
                        ],
                        db_index=True,
                        max_length=20,
                    ),
                ),
                ("text", models.TextField()),
                ("author", models.CharField(max_length=150)),
                ("stage", models.CharField(choices=STAGE_CHOICES, max_length=30)),
                ("from_stage", models.CharField(blank=True, choices=STAGE_CHOICES, default="", max_length=30)),
                ("created_at", models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="applications.application",
                    ),
                ),
            ],
            options={
                "verbose_name": "Comment",
                "verbose_name_plural": "Comments",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="PendingEffect",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "kind",
                    models.CharField(
                        choices=[("send_notification", "Send Notification"), ("create_task", "Create Task")],
                        max_length=30,
                    ),
                ),
                ("payload", models.JSONField()),
                (
                    "status",
                    models.CharField(
                        choices=[("pending", "Pending"), ("delivered", "Delivered"), ("failed", "Failed")],
                        db_index=True,
                        default="pending",
                        max_length=10,
                    ),
                ),
                ("attempts", models.PositiveSmallIntegerField(default=0)),
                ("last_error", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="pending_effects",
                        to="applications.application",
                    ),
                ),
            ],
            options={
                "verbose_name": "Pending Effect",
                "verbose_name_plural": "Pending Effects",
                "ordering": ["created_at", "id"],
            },
        ),
    ]
