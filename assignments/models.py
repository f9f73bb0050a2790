import uuid

from django.db import models


class AssignmentTemplate(models.Model):
    """Reusable take-home assignment staff can send to candidates."""

    name = models.CharField(max_length=200)
    instructions = models.TextField(blank=True, default="")
    link = models.URLField(blank=True, default="")
    deadline_days = models.PositiveIntegerField(default=3)
    is_active = models.BooleanField(default=True)
    created_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]

    def __str__(self) -> str:
        return self.name


class CandidateAssignment(models.Model):
    """
    One assignment sent to one application. The template's text is copied
    so later template edits do not change what the candidate received.
    """

    class Status(models.TextChoices):
        SENT = "sent", "Sent"
        SUBMITTED = "submitted", "Submitted"
        PASSED = "passed", "Passed"
        FAILED = "failed", "Failed"

    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.CASCADE,
        related_name="assignments",
    )
    template = models.ForeignKey(
        AssignmentTemplate,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="sent_assignments",
    )
    name = models.CharField(max_length=200)
    instructions = models.TextField(blank=True, default="")
    link = models.URLField(blank=True, default="")
    deadline_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.SENT,
        db_index=True,
    )
    sent_by = models.CharField(max_length=150, blank=True, default="")
    submission_token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    submission_link = models.URLField(blank=True, default="")
    submission_notes = models.TextField(blank=True, default="")
    submitted_at = models.DateTimeField(null=True, blank=True)

    score = models.PositiveSmallIntegerField(null=True, blank=True)
    review_notes = models.TextField(blank=True, default="")
    reviewed_by = models.CharField(max_length=150, blank=True, default="")
    reviewed_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"{self.name} (App#{self.application_id}) [{self.status}]"

    @property
    def is_late(self) -> bool:
        return bool(self.deadline_at and self.submitted_at and self.submitted_at > self.deadline_at)

    def details_text(self, submit_url: str = "") -> str:
        """Plain-text block for the {details} placeholder of the assignment e-mail."""
        lines = [f"Assignment: {self.name}"]
        if self.deadline_at:
            lines.append(f"Deadline: {self.deadline_at:%A, %d %B %Y at %H:%M %Z}")
        if self.link:
            lines.append(f"Link: {self.link}")
        if self.instructions:
            lines.append("")
            lines.append(self.instructions)
        if submit_url:
            lines.append("")
            lines.append(f"Submit your work here: {submit_url}")
        return "\n".join(lines)
