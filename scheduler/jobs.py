"""
scheduler/jobs.py

Background job definitions for the TalentFlow pipeline.
Registered and started by: scheduler/management/commands/run_scheduler.py

  retry_pending_effects       every  5 min
  score_unscored_applications every 30 min
  send_interview_reminders    every 60 min

Each function is decorated with @close_old_connections from django-apscheduler so
that Django DB connections opened in APScheduler's worker threads are always
returned to the pool (or closed) after each run, preventing "connection already
closed" errors in long-running processes.
"""

import logging

from django_apscheduler.util import close_old_connections

from applications.effects import retry_undelivered
from applications.models import Application
from applications.stages import TERMINAL_STAGES
from interviews.services import send_due_reminders
from scoring.services import trigger_scoring
from talentflow.constants import SCORING_BATCH_SIZE

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Job 1: retry_pending_effects  (every 5 min)
# ─────────────────────────────────────────────────────────────────────────────

@close_old_connections
def retry_pending_effects() -> None:
    """
    Re-deliver notifications and tasks that failed (or never ran) after a
    committed stage change. Rows stop being retried once they reach
    MAX_EFFECT_ATTEMPTS.
    """
    delivered, failed = retry_undelivered()
    if delivered or failed:
        logger.info(
            "retry_pending_effects: delivered=%s still_failing=%s", delivered, failed,
        )


# ─────────────────────────────────────────────────────────────────────────────
# Job 2: score_unscored_applications  (every 30 min)
# ─────────────────────────────────────────────────────────────────────────────

@close_old_connections
def score_unscored_applications() -> None:
    """
    Ask Claude for an advisory score on active applications that have a
    resume but no score yet. Oldest first, at most SCORING_BATCH_SIZE per run.
    """
    batch = list(
        Application.objects
        .filter(ai_score__isnull=True)
        .exclude(stage__in=TERMINAL_STAGES)
        .exclude(candidate__resume_text__isnull=True)
        .exclude(candidate__resume_text="")
        .select_related("candidate", "job")
        .order_by("created_at")[:SCORING_BATCH_SIZE]
    )
    if not batch:
        return

    scored = sum(1 for application in batch if trigger_scoring(application))
    logger.info(
        "score_unscored_applications: scored %s of %s application(s)", scored, len(batch),
    )


# ─────────────────────────────────────────────────────────────────────────────
# Job 3: send_interview_reminders  (every 60 min)
# ─────────────────────────────────────────────────────────────────────────────

@close_old_connections
def send_interview_reminders() -> None:
    """
    E-mail candidates whose scheduled interview starts within
    INTERVIEW_REMINDER_HOURS_AHEAD. Each interview is reminded once; a failed
    reminder is tried again on the next run while still inside the window.
    """
    sent, failed = send_due_reminders()
    if sent or failed:
        logger.info("send_interview_reminders: sent=%s failed=%s", sent, failed)
