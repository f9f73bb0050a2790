from django.db import models


class JobOpening(models.Model):
    class Status(models.TextChoices):
        OPEN = "open", "Open"
        PAUSED = "paused", "Paused"
        CLOSED = "closed", "Closed"

    title = models.CharField(max_length=255)
    department = models.CharField(max_length=150, blank=True, default="")
    location = models.CharField(max_length=255, blank=True, default="Remote")
    description = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.OPEN,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Job Opening"
        verbose_name_plural = "Job Openings"

    def __str__(self) -> str:
        return f"[{self.status}] {self.title}"
