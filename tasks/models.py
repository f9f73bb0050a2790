from django.db import models


class TaskAssignment(models.Model):
    """
    "Who must act next" record for an application. Created by the pipeline
    when a stage with a responsible party is entered, or on reassignment.
    """

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        IN_PROGRESS = "in_progress", "In Progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    class Priority(models.TextChoices):
        LOW = "low", "Low"
        NORMAL = "normal", "Normal"
        HIGH = "high", "High"
        URGENT = "urgent", "Urgent"

    OPEN_STATUSES = (Status.PENDING, Status.IN_PROGRESS)

    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.CASCADE,
        related_name="tasks",
    )
    assignee = models.CharField(max_length=150, db_index=True)
    stage = models.CharField(max_length=50)
    notes = models.TextField(blank=True, default="")
    assigned_by = models.CharField(max_length=150, blank=True, default="")

    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    priority = models.CharField(
        max_length=10,
        choices=Priority.choices,
        default=Priority.NORMAL,
    )
    due_date = models.DateTimeField(null=True, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)
    completed_by = models.CharField(max_length=150, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Task Assignment"
        verbose_name_plural = "Task Assignments"

    def __str__(self) -> str:
        return f"{self.assignee}: {self.stage} (App#{self.application_id}) [{self.status}]"
