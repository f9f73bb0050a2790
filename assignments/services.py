"""
assignments/services.py

Take-home assignments: templates, sending, candidate submissions and
staff review.

Public services:
  create_template(name, ...)                  → AssignmentTemplate
  send_assignment(application, template, ...) → (CandidateAssignment, StageChangeOutcome)
  submit_assignment(assignment, link, notes)  → (CandidateAssignment, StageChangeOutcome | None)
  review_assignment(assignment, passed, ...)  → CandidateAssignment

Sending moves an earlier application to Assignment Sent and a submission
moves it on to Assignment Submitted, both through
applications.services.apply_transition. Reviewing never changes the stage.
"""

import logging
from datetime import timedelta

from django.conf import settings
from django.urls import reverse
from django.utils import timezone

from applications.models import Application
from applications.services import StageChangeOutcome, actor_name_for, apply_transition, notify_candidate
from applications.stages import Stage, is_earlier, is_terminal
from assignments.models import AssignmentTemplate, CandidateAssignment
from messaging.keys import TemplateKey

logger = logging.getLogger(__name__)


class AssignmentError(Exception):
    """Raised when an assignment action does not fit its current state."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidAssignment(AssignmentError):
    """Raised for a request that is missing required content."""

    status_code = 400


def submit_url(assignment: CandidateAssignment) -> str:
    path = reverse("assignments:submit", args=[assignment.submission_token])
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{path}"


def create_template(
    name: str,
    *,
    instructions: str = "",
    link: str = "",
    deadline_days: int = 3,
    user=None,
) -> AssignmentTemplate:
    template = AssignmentTemplate.objects.create(
        name=name,
        instructions=instructions or "",
        link=link or "",
        deadline_days=deadline_days,
        created_by=actor_name_for(user),
    )
    logger.info("Assignment template created: template=%s name=%s", template.pk, name)
    return template


def send_assignment(
    application: Application,
    *,
    template: AssignmentTemplate | None = None,
    name: str = "",
    instructions: str = "",
    link: str = "",
    deadline_days: int | None = None,
    user=None,
) -> tuple[CandidateAssignment, StageChangeOutcome]:
    """
    Send an assignment to the candidate. Explicit values override the
    template's.

    Raises:
        AssignmentError, TransitionError
    """
    if is_terminal(application.stage):
        raise AssignmentError(
            f"Cannot send an assignment: the application is {application.get_stage_display().lower()}."
        )

    name = name or (template.name if template else "")
    if not name:
        raise InvalidAssignment("Choose a template or give the assignment a name.")
    if deadline_days is None and template is not None:
        deadline_days = template.deadline_days

    assignment = CandidateAssignment(
        application=application,
        template=template,
        name=name,
        instructions=instructions or (template.instructions if template else ""),
        link=link or (template.link if template else ""),
        deadline_at=timezone.now() + timedelta(days=deadline_days) if deadline_days else None,
        sent_by=actor_name_for(user),
    )
    details = {"details": assignment.details_text(submit_url(assignment))}

    if is_earlier(application.stage, Stage.ASSIGNMENT_SENT):
        outcome = apply_transition(
            application,
            Stage.ASSIGNMENT_SENT,
            user=user,
            assignee=application.assigned_to,
            template_data=details,
        )
        assignment.save()
    else:
        assignment.save()
        outcome = StageChangeOutcome(application=application, changed=False)
        notify_candidate(application, TemplateKey.ASSIGNMENT_INVITATION, details, outcome=outcome)

    logger.info(
        "Assignment sent: assignment=%s application=%s stage_changed=%s",
        assignment.pk, application.pk, outcome.changed,
    )
    return assignment, outcome


def submit_assignment(
    assignment: CandidateAssignment,
    *,
    link: str = "",
    notes: str = "",
) -> tuple[CandidateAssignment, StageChangeOutcome | None]:
    """
    Record the candidate's work. The first submission while the application
    waits in Assignment Sent moves it to Assignment Submitted, authored by
    the candidate. Late submissions are accepted and flagged by `is_late`.

    Raises:
        AssignmentError, InvalidAssignment, TransitionError
    """
    if assignment.status != CandidateAssignment.Status.SENT:
        raise AssignmentError("This assignment has already been submitted.")

    application = assignment.application
    if is_terminal(application.stage):
        raise AssignmentError("This application is closed; the assignment can no longer be submitted.")

    link, notes = (link or "").strip(), (notes or "").strip()
    if not link and not notes:
        raise InvalidAssignment("Please provide a link to your work or a short note.")

    outcome = None
    if application.stage == Stage.ASSIGNMENT_SENT:
        outcome = apply_transition(
            application,
            Stage.ASSIGNMENT_SUBMITTED,
            actor_name=application.candidate.full_name,
            assignee=application.assigned_to,
        )

    assignment.status = CandidateAssignment.Status.SUBMITTED
    assignment.submission_link = link
    assignment.submission_notes = notes
    assignment.submitted_at = timezone.now()
    assignment.save(update_fields=[
        "status", "submission_link", "submission_notes", "submitted_at", "updated_at",
    ])
    logger.info(
        "Assignment submitted: assignment=%s application=%s late=%s",
        assignment.pk, application.pk, assignment.is_late,
    )
    return assignment, outcome


def review_assignment(
    assignment: CandidateAssignment,
    *,
    passed: bool,
    score: int | None = None,
    notes: str = "",
    user=None,
) -> CandidateAssignment:
    if assignment.status != CandidateAssignment.Status.SUBMITTED:
        raise AssignmentError("Only submitted assignments can be reviewed.")

    assignment.status = CandidateAssignment.Status.PASSED if passed else CandidateAssignment.Status.FAILED
    assignment.score = score
    assignment.review_notes = notes or ""
    assignment.reviewed_by = actor_name_for(user)
    assignment.reviewed_at = timezone.now()
    assignment.save(update_fields=[
        "status", "score", "review_notes", "reviewed_by", "reviewed_at", "updated_at",
    ])
    logger.info("Assignment %s reviewed: %s", assignment.pk, assignment.status)
    return assignment
