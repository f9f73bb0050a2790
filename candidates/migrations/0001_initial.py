from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Candidate",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=300)),
                ("email", models.EmailField(max_length=254, unique=True)),
                ("phone", models.CharField(blank=True, db_index=True, default="", max_length=50)),
                ("location", models.CharField(blank=True, default="", max_length=255)),
                ("linkedin_url", models.URLField(blank=True, default="", max_length=500)),
                (
                    "source",
                    models.CharField(
                        choices=[("public_form", "Public Application Form"), ("manual", "Added by Staff")],
                        default="public_form",
                        max_length=20,
                    ),
                ),
                ("resume_path", models.CharField(blank=True, max_length=500, null=True)),
                ("resume_text", models.TextField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "Candidate",
                "verbose_name_plural": "Candidates",
                "ordering": ["-created_at"],
            },
        ),
    ]
