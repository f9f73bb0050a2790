from django.db import models


class Candidate(models.Model):
    class Source(models.TextChoices):
        PUBLIC_FORM = "public_form", "Public Application Form"
        MANUAL = "manual", "Added by Staff"

    full_name = models.CharField(max_length=300)

    # Contact
    email = models.EmailField(max_length=254, unique=True)
    phone = models.CharField(max_length=50, blank=True, default="", db_index=True)
    location = models.CharField(max_length=255, blank=True, default="")
    linkedin_url = models.URLField(max_length=500, blank=True, default="")

    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.PUBLIC_FORM,
    )

    # Object-store key of the latest resume (default_storage) and its text,
    # extracted once on upload for scoring.
    resume_path = models.CharField(max_length=500, null=True, blank=True)
    resume_text = models.TextField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Candidate"
        verbose_name_plural = "Candidates"

    def __str__(self) -> str:
        return f"{self.full_name} <{self.email}>"
