"""
tasks/services.py

Task Service: assignment-of-responsibility records.

Public services:
  create_task(application_id, assignee, stage_label, notes)  → TaskAssignment
  update_task_status(task, status, completed_by)             → TaskAssignment
"""

import logging

from django.utils import timezone

from tasks.models import TaskAssignment

logger = logging.getLogger(__name__)


def create_task(
    application_id: int,
    assignee: str,
    stage_label: str,
    notes: str = "",
    assigned_by: str = "",
) -> TaskAssignment:
    """
    Create a pending task for `assignee`.

    Idempotent per open (application, assignee, stage): a retried CreateTask
    effect returns the task created by the first attempt.
    """
    existing = TaskAssignment.objects.filter(
        application_id=application_id,
        assignee=assignee,
        stage=stage_label,
        status__in=TaskAssignment.OPEN_STATUSES,
    ).first()
    if existing is not None:
        logger.info(
            "Task already open: task=%s application=%s assignee=%s stage=%s",
            existing.pk, application_id, assignee, stage_label,
        )
        return existing

    task = TaskAssignment.objects.create(
        application_id=application_id,
        assignee=assignee,
        stage=stage_label,
        notes=notes or "",
        assigned_by=assigned_by or "",
    )
    logger.info(
        "Task created: task=%s application=%s assignee=%s stage=%s",
        task.pk, application_id, assignee, stage_label,
    )
    return task


def update_task_status(task: TaskAssignment, status: str, completed_by: str = "") -> TaskAssignment:
    task.status = status
    update_fields = ["status", "updated_at"]
    if status == TaskAssignment.Status.COMPLETED:
        task.completed_at = timezone.now()
        task.completed_by = completed_by or "Admin"
        update_fields += ["completed_at", "completed_by"]
    task.save(update_fields=update_fields)
    logger.info("Task %s status → %s", task.pk, status)
    return task
