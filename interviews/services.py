"""
interviews/services.py

Interview scheduling on top of the stage engine.

Public services:
  schedule_interview(application, scheduled_at, ...)  → (Interview, StageChangeOutcome)
  reschedule_interview(interview, scheduled_at)        → Interview
  record_interview_outcome(interview, status, ...)     → Interview
  send_reminder(interview)                             → bool
  send_due_reminders(hours_ahead)                      → (sent, failed)

Scheduling moves an earlier application into the Interview stage through
applications.services.apply_transition; the engine then sends the
invitation. Later interviews leave the stage alone and send the invitation
through the outbox directly.
"""

import logging
from datetime import timedelta

from django.utils import timezone

from applications.models import Application
from applications.services import StageChangeOutcome, actor_name_for, apply_transition, notify_candidate
from applications.stages import TERMINAL_STAGES, Stage, is_earlier, is_terminal
from interviews.models import Interview
from messaging.keys import TemplateKey
from messaging.models import Message
from messaging.services import NotificationError, send_notification
from talentflow.constants import INTERVIEW_REMINDER_HOURS_AHEAD

logger = logging.getLogger(__name__)

OUTCOME_STATUSES = (
    Interview.Status.COMPLETED,
    Interview.Status.CANCELLED,
    Interview.Status.NO_SHOW,
)


class InterviewError(Exception):
    """Raised when an interview action does not fit its current state."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def schedule_interview(
    application: Application,
    scheduled_at,
    *,
    user=None,
    title: str = "Interview",
    duration_minutes: int = 60,
    location_type: str = Interview.LocationType.ONLINE,
    meeting_link: str = "",
    address: str = "",
    interviewer_name: str = "",
    notes: str = "",
) -> tuple[Interview, StageChangeOutcome]:
    """
    Create an interview and invite the candidate.

    The interviewer (or the current assignee) becomes the assignee of the
    Interview stage when the application moves into it.

    Raises:
        InterviewError if the application is hired or rejected.
        TransitionError from the stage engine (e.g. a missing assignee).
    """
    if is_terminal(application.stage):
        raise InterviewError(
            f"Cannot schedule an interview: the application is {application.get_stage_display().lower()}."
        )

    interview = Interview(
        application=application,
        title=title or "Interview",
        scheduled_at=scheduled_at,
        duration_minutes=duration_minutes,
        location_type=location_type,
        meeting_link=meeting_link or "",
        address=address or "",
        interviewer_name=interviewer_name or "",
        notes=notes or "",
        scheduled_by=actor_name_for(user),
    )
    details = {"details": interview.details_text()}

    if is_earlier(application.stage, Stage.INTERVIEW):
        outcome = apply_transition(
            application,
            Stage.INTERVIEW,
            user=user,
            assignee=interviewer_name or application.assigned_to,
            template_data=details,
        )
        interview.save()
    else:
        interview.save()
        outcome = StageChangeOutcome(application=application, changed=False)
        notify_candidate(application, TemplateKey.INTERVIEW_INVITATION, details, outcome=outcome)

    logger.info(
        "Interview scheduled: interview=%s application=%s at=%s stage_changed=%s",
        interview.pk, application.pk, interview.scheduled_at.isoformat(), outcome.changed,
    )
    return interview, outcome


def reschedule_interview(interview: Interview, scheduled_at) -> Interview:
    if interview.status != Interview.Status.SCHEDULED:
        raise InterviewError(f"Cannot reschedule an interview that is {interview.get_status_display().lower()}.")

    interview.scheduled_at = scheduled_at
    interview.reminder_sent_at = None
    interview.save(update_fields=["scheduled_at", "reminder_sent_at", "updated_at"])
    logger.info("Interview %s rescheduled to %s", interview.pk, scheduled_at.isoformat())
    return interview


def record_interview_outcome(
    interview: Interview,
    status: str,
    *,
    feedback: str = "",
    rating: int | None = None,
) -> Interview:
    """
    Close a scheduled interview. The application stage is not touched:
    moving on to an offer or rejecting stays a staff decision.
    """
    if status not in OUTCOME_STATUSES:
        raise InterviewError(f"'{status}' is not an interview outcome.")
    if interview.status != Interview.Status.SCHEDULED:
        raise InterviewError(f"Interview is already {interview.get_status_display().lower()}.")

    interview.status = status
    interview.feedback = feedback or ""
    interview.rating = rating
    interview.save(update_fields=["status", "feedback", "rating", "updated_at"])
    logger.info("Interview %s status → %s", interview.pk, status)
    return interview


# ── Reminders ──────────────────────────────────────────────────────────────────

def send_reminder(interview: Interview) -> bool:
    """
    E-mail the candidate a reminder for one interview. Returns True when the
    e-mail went out; reminder_sent_at is only set then, so a failed reminder
    is tried again on the next run.
    """
    application = interview.application
    candidate = application.candidate
    try:
        message = send_notification(
            TemplateKey.INTERVIEW_REMINDER.value,
            application.pk,
            candidate.email,
            {
                "candidate_name": candidate.full_name,
                "job_title": application.job.title,
                "stage": application.get_stage_display(),
                "reason": "",
                "application_pk": application.pk,
                "details": interview.details_text(),
            },
        )
    except NotificationError as exc:
        logger.warning("Interview reminder not sent: interview=%s: %s", interview.pk, exc)
        return False

    if message.status != Message.Status.SENT:
        logger.warning(
            "Interview reminder failed: interview=%s error=%s", interview.pk, message.error_detail,
        )
        return False

    interview.reminder_sent_at = timezone.now()
    interview.save(update_fields=["reminder_sent_at", "updated_at"])
    return True


def due_for_reminder(hours_ahead: int = INTERVIEW_REMINDER_HOURS_AHEAD, now=None):
    now = now or timezone.now()
    return (
        Interview.objects
        .filter(
            status=Interview.Status.SCHEDULED,
            reminder_sent_at__isnull=True,
            scheduled_at__gte=now,
            scheduled_at__lte=now + timedelta(hours=hours_ahead),
        )
        .exclude(application__stage__in=TERMINAL_STAGES)
        .select_related("application__candidate", "application__job")
        .order_by("scheduled_at")
    )


def send_due_reminders(hours_ahead: int = INTERVIEW_REMINDER_HOURS_AHEAD, now=None) -> tuple[int, int]:
    """
    Remind candidates of scheduled interviews starting within `hours_ahead`.

    Returns:
        (sent, failed) counts for this run.
    """
    sent = failed = 0
    for interview in due_for_reminder(hours_ahead, now):
        if send_reminder(interview):
            sent += 1
        else:
            failed += 1
    return sent, failed
