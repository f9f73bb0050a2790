from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models


class Interview(models.Model):
    """
    A scheduled conversation with the candidate. Scheduling the first one
    moves the application into the Interview stage.
    """

    class LocationType(models.TextChoices):
        ONLINE = "online", "Online"
        IN_PERSON = "in_person", "In Person"
        PHONE = "phone", "Phone"

    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"
        NO_SHOW = "no_show", "No Show"

    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.CASCADE,
        related_name="interviews",
    )
    title = models.CharField(max_length=200, default="Interview")
    scheduled_at = models.DateTimeField(db_index=True)
    duration_minutes = models.PositiveIntegerField(default=60)

    location_type = models.CharField(
        max_length=15,
        choices=LocationType.choices,
        default=LocationType.ONLINE,
    )
    meeting_link = models.URLField(blank=True, default="")
    address = models.CharField(max_length=300, blank=True, default="")
    interviewer_name = models.CharField(max_length=150, blank=True, default="")

    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.SCHEDULED,
        db_index=True,
    )
    notes = models.TextField(blank=True, default="")
    feedback = models.TextField(blank=True, default="")
    rating = models.PositiveSmallIntegerField(
        null=True,
        blank=True,
        validators=[MinValueValidator(1), MaxValueValidator(5)],
    )

    scheduled_by = models.CharField(max_length=150, blank=True, default="")
    reminder_sent_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["scheduled_at"]

    def __str__(self) -> str:
        return f"{self.title} (App#{self.application_id}) {self.scheduled_at:%Y-%m-%d %H:%M} [{self.status}]"

    def details_text(self) -> str:
        """Plain-text block for the {details} placeholder of candidate e-mails."""
        lines = [
            f"When: {self.scheduled_at:%A, %d %B %Y at %H:%M %Z} ({self.duration_minutes} minutes)",
            f"Format: {self.get_location_type_display()}",
        ]
        if self.meeting_link:
            lines.append(f"Link: {self.meeting_link}")
        if self.address:
            lines.append(f"Address: {self.address}")
        if self.interviewer_name:
            lines.append(f"Interviewer: {self.interviewer_name}")
        return "\n".join(lines)
