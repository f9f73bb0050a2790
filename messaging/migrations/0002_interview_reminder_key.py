from django.db import migrations, models

TEMPLATE_KEY_CHOICES = [
    ("application_received", "Application Received"),
    ("screening_invitation", "Screening Invitation"),
    ("assignment_invitation", "Assignment Invitation"),
    ("interview_invitation", "Interview Invitation"),
    ("interview_reminder", "Interview Reminder"),
    ("offer_letter", "Offer Letter"),
    ("rejection", "Rejection"),
]


class Migration(migrations.Migration):

    dependencies = [
        ("messaging", "0001_initial"),
    ]

    operations = [
        migrations.AlterField(
            model_name="messagetemplate",
            name="template_key",
            field=models.CharField(choices=TEMPLATE_KEY_CHOICES, max_length=30, unique=True),
        ),
        migrations.AlterField(
            model_name="message",
            name="template_key",
            field=models.CharField(choices=TEMPLATE_KEY_CHOICES, max_length=30),
        ),
    ]
