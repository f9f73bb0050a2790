"""
applications/services.py

Application Store orchestration around the stage engine.

Each stage-changing service:
  1. snapshots the Application (Application.to_state),
  2. asks the pure engine (applications.transitions) for the new state,
  3. persists stage fields, the audit Comment and one PendingEffect per
     effect in a single transaction,
  4. delivers the effects after the transaction, best-effort.

The stage change is authoritative once step 3 commits; a failed e-mail or
task in step 4 is reported on the returned StageChangeOutcome and retried
later, but never reverts the stage.
"""

import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.core.cache import cache
from django.db import IntegrityError, transaction

from applications import effects as effect_runner
from applications import transitions
from applications.models import Application, Comment, PendingEffect
from applications.stages import INITIAL_STAGE, is_terminal, parse_stage
from applications.transitions import SendNotification, TransitionContext, TransitionPolicy
from candidates.models import Candidate
from candidates.services import attach_resume, get_or_create_candidate
from config.models import SystemSetting
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from talentflow.constants import PIPELINE_COUNTS_CACHE_KEY

logger = logging.getLogger(__name__)

ASSIGNEE_REQUIRED_SETTING = "assignee_required_stages"


# ── Exceptions ─────────────────────────────────────────────────────────────────

class DuplicateApplication(Exception):
    """Raised when a candidate already has an application for the job."""

    status_code = 409


class JobNotOpen(Exception):
    """Raised when a public application targets a paused or closed job."""

    status_code = 400


# ── Result type ────────────────────────────────────────────────────────────────

@dataclass
class StageChangeOutcome:
    application: Application
    changed: bool
    delivered: list[PendingEffect] = field(default_factory=list)
    failed: list[PendingEffect] = field(default_factory=list)

    @property
    def notification_failed(self) -> bool:
        return any(p.kind == PendingEffect.Kind.SEND_NOTIFICATION for p in self.failed)

    @property
    def task_failed(self) -> bool:
        return any(p.kind == PendingEffect.Kind.CREATE_TASK for p in self.failed)


# ── Configuration ──────────────────────────────────────────────────────────────

def can_require_assignee(stage) -> bool:
    """
    Only stages entered by a forward move can demand an assignee. The
    initial stage is never entered, and HIRED / REJECTED must stay
    reachable without one.
    """
    return stage != INITIAL_STAGE and not is_terminal(stage)


def load_policy() -> TransitionPolicy:
    """
    Build the engine policy. The required-assignee table comes from the
    "assignee_required_stages" SystemSetting when present, otherwise from
    settings.PIPELINE_ASSIGNEE_REQUIRED_STAGES.
    """
    raw = SystemSetting.get_list(ASSIGNEE_REQUIRED_SETTING)
    if raw is None:
        raw = settings.PIPELINE_ASSIGNEE_REQUIRED_STAGES

    required = set()
    for value in raw:
        stage = parse_stage(value.strip())
        if stage is None:
            logger.warning("Ignoring unknown stage %r in the assignee-required table", value)
            continue
        if not can_require_assignee(stage):
            logger.warning("Ignoring stage %r in the assignee-required table: it cannot require an assignee", value)
            continue
        required.add(stage)
    return TransitionPolicy(assignee_required=frozenset(required))


def actor_name_for(user) -> str:
    if user is None:
        return "System"
    return user.get_full_name() or user.get_username()


def _context(
    user,
    *,
    reason: str = "",
    assignee: str | None = None,
    actor_name: str | None = None,
    template_data: dict | None = None,
) -> TransitionContext:
    return TransitionContext(
        actor_name=actor_name or actor_name_for(user),
        reason=reason or "",
        assignee=assignee,
        privileged=bool(user is not None and user.is_superuser),
        template_data=dict(template_data or {}),
    )


# ── Persistence ────────────────────────────────────────────────────────────────

def _persist(application: Application, result) -> list[PendingEffect]:
    """Write an engine result. Must run inside transaction.atomic()."""
    state = result.state
    application.stage = state.stage
    application.stage_entered_at = state.stage_entered_at or application.stage_entered_at
    application.assigned_to = state.assigned_to
    application.rejection_reason = state.rejection_reason
    application.rejection_date = state.rejection_date
    application.save(update_fields=[
        "stage",
        "stage_entered_at",
        "assigned_to",
        "rejection_reason",
        "rejection_date",
        "updated_at",
    ])

    if result.comment is not None:
        Comment.from_entry(application, result.comment).save()

    pending = []
    for effect in result.effects:
        row = effect_runner.to_pending(application, effect)
        row.save()
        pending.append(row)
    return pending


def _apply(application: Application, compute, action: str) -> StageChangeOutcome:
    stage_before = application.stage
    with transaction.atomic():
        result = compute(application.to_state())
        if not result.changed:
            logger.info("%s no-op: application=%s stage=%s", action, application.pk, stage_before)
            return StageChangeOutcome(application=application, changed=False)
        pending = _persist(application, result)

    if application.stage != stage_before:
        cache.delete(PIPELINE_COUNTS_CACHE_KEY)

    logger.info(
        "%s: application=%s %s -> %s effects=%s",
        action, application.pk, stage_before, application.stage, [p.kind for p in pending],
    )
    delivered, failed = effect_runner.execute_all(pending)
    return StageChangeOutcome(
        application=application,
        changed=True,
        delivered=delivered,
        failed=failed,
    )


# ── Stage-changing services ────────────────────────────────────────────────────

def apply_transition(
    application: Application,
    target_stage: str,
    *,
    user=None,
    reason: str = "",
    assignee: str | None = None,
    actor_name: str | None = None,
    template_data: dict | None = None,
) -> StageChangeOutcome:
    """
    Forward move or rejection through the stage engine.

    `actor_name` overrides the author recorded for the change (e.g. the
    candidate answering an offer); `template_data` adds placeholders to the
    notification sent on entry to the target stage.
    """
    context = _context(
        user, reason=reason, assignee=assignee, actor_name=actor_name, template_data=template_data,
    )
    policy = load_policy()
    return _apply(
        application,
        lambda state: transitions.request_transition(state, target_stage, context, policy),
        "Stage transition",
    )


def apply_revert(
    application: Application,
    target_stage: str,
    *,
    user=None,
    reason: str = "",
    assignee: str | None = None,
) -> StageChangeOutcome:
    context = _context(user, reason=reason, assignee=assignee)
    policy = load_policy()
    return _apply(
        application,
        lambda state: transitions.revert_stage(state, target_stage, context, policy),
        "Stage revert",
    )


def apply_rejection(application: Application, reason: str, *, user=None) -> StageChangeOutcome:
    actor_name = actor_name_for(user)
    policy = load_policy()
    return _apply(
        application,
        lambda state: transitions.reject_application(state, reason, actor_name, policy),
        "Rejection",
    )


def apply_reassignment(
    application: Application,
    assignee: str | None,
    *,
    user=None,
    reason: str = "",
) -> StageChangeOutcome:
    context = _context(user, reason=reason)
    return _apply(
        application,
        lambda state: transitions.reassign(state, assignee, context),
        "Reassignment",
    )


def add_note(application: Application, text: str, *, user=None, actor_name: str | None = None) -> Comment:
    context = _context(user, actor_name=actor_name)
    result = transitions.add_note(application.to_state(), text, context)
    comment = Comment.from_entry(application, result.comment)
    comment.save()
    return comment


def toggle_hot_applicant(application: Application) -> bool:
    """Flip the hot-applicant flag. Independent of stage; no audit entry."""
    application.is_hot_applicant = not application.is_hot_applicant
    application.save(update_fields=["is_hot_applicant", "updated_at"])
    return application.is_hot_applicant


# ── Creation ───────────────────────────────────────────────────────────────────

def create_application(candidate: Candidate, job: JobOpening) -> Application:
    """
    Create an application in the initial stage.

    Raises:
        DuplicateApplication if the candidate already applied to the job.
    """
    try:
        with transaction.atomic():
            application = Application.objects.create(
                candidate=candidate,
                job=job,
                stage=INITIAL_STAGE,
            )
    except IntegrityError as exc:
        raise DuplicateApplication(
            f"{candidate.full_name} has already applied for {job.title}."
        ) from exc

    cache.delete(PIPELINE_COUNTS_CACHE_KEY)
    logger.info(
        "Application created: application=%s candidate=%s job=%s",
        application.pk, candidate.pk, job.pk,
    )
    return application


def _intake(job: JobOpening, *, full_name: str, email: str, phone: str, resume, source: str) -> Application:
    """
    Resolve the candidate and create the application, then store the resume.

    The resume is written only once the application row exists, so a
    duplicate submission never replaces the stored file or its text, and
    its candidate changes are rolled back.
    """
    with transaction.atomic():
        candidate = get_or_create_candidate(full_name=full_name, email=email, phone=phone, source=source)
        application = create_application(candidate, job)
        if resume is not None:
            attach_resume(candidate, resume)
    return application


def submit_manual_application(
    job: JobOpening,
    *,
    full_name: str,
    email: str,
    phone: str = "",
    resume=None,
) -> Application:
    """
    Staff adds a candidate to a job, whatever its status. No acknowledgement
    e-mail is sent.

    Raises:
        DuplicateApplication
    """
    return _intake(
        job,
        full_name=full_name,
        email=email,
        phone=phone,
        resume=resume,
        source=Candidate.Source.MANUAL,
    )


def submit_public_application(
    job: JobOpening,
    *,
    full_name: str,
    email: str,
    phone: str = "",
    resume=None,
) -> Application:
    """
    Public apply flow: resolve the candidate, store the resume, create the
    application and acknowledge it by e-mail (best-effort, via the outbox).

    Raises:
        JobNotOpen, DuplicateApplication
    """
    if job.status != JobOpening.Status.OPEN:
        raise JobNotOpen(f"{job.title} is not accepting applications.")

    application = _intake(
        job,
        full_name=full_name,
        email=email,
        phone=phone,
        resume=resume,
        source=Candidate.Source.PUBLIC_FORM,
    )
    notify_candidate(application, TemplateKey.APPLICATION_RECEIVED)
    return application


# ── Candidate notifications outside a stage change ─────────────────────────────

def notify_candidate(
    application: Application,
    template_key: str,
    template_data: dict | None = None,
    outcome: StageChangeOutcome | None = None,
) -> PendingEffect:
    """
    Queue and deliver one candidate e-mail through the outbox, e.g. the
    application acknowledgement or a second interview invitation while the
    stage is unchanged. A failed delivery is retried by the scheduler.

    When `outcome` is given the row is recorded on it, so callers report a
    failed e-mail the same way as for a stage change.
    """
    candidate = application.candidate
    data = dict(template_data or {})
    data.update({
        "candidate_name": candidate.full_name,
        "job_title": application.job.title,
        "stage": application.get_stage_display(),
        "reason": "",
        "application_pk": application.pk,
    })
    notification = SendNotification(
        template_key=str(template_key),
        application_id=application.pk,
        recipient_email=candidate.email,
        template_data=data,
    )
    pending = effect_runner.to_pending(application, notification)
    pending.save()
    delivered = effect_runner.execute_effect(pending)
    if outcome is not None:
        (outcome.delivered if delivered else outcome.failed).append(pending)
    return pending
