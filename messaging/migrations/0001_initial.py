import django.db.models.deletion
from django.db import migrations, models

TEMPLATE_KEY_CHOICES = [
    ("application_received", "Application Received"),
    ("screening_invitation", "Screening Invitation"),
    ("assignment_invitation", "Assignment Invitation"),
    ("interview_invitation", "Interview Invitation"),
    ("offer_letter", "Offer Letter"),
    ("rejection", "Rejection"),
]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("applications", "0001_initial"),
    ]

    operations = [
        migrations.CreateModel(
            name="MessageTemplate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("template_key", models.CharField(choices=TEMPLATE_KEY_CHOICES, max_length=30, unique=True)),
                ("subject", models.CharField(max_length=255)),
                ("body", models.TextField()),
                ("is_active", models.BooleanField(db_index=True, default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Message Template",
                "verbose_name_plural": "Message Templates",
                "ordering": ["template_key"],
            },
        ),
        migrations.CreateModel(
            name="Message",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("template_key", models.CharField(choices=TEMPLATE_KEY_CHOICES, max_length=30)),
                ("recipient", models.CharField(max_length=254)),
                (
                    "status",
                    models.CharField(
                        choices=[("sent", "Sent"), ("failed", "Failed")],
                        db_index=True,
                        max_length=10,
                    ),
                ),
                ("external_id", models.CharField(blank=True, max_length=255, null=True)),
                ("subject", models.CharField(max_length=255)),
                ("body", models.TextField()),
                ("sent_at", models.DateTimeField(blank=True, null=True)),
                ("error_detail", models.CharField(blank=True, max_length=500, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "application",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="messages",
                        to="applications.application",
                    ),
                ),
            ],
            options={
                "verbose_name": "Message",
                "verbose_name_plural": "Messages",
                "ordering": ["-created_at", "-id"],
            },
        ),
    ]
