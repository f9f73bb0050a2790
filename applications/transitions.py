"""
applications/transitions.py

Pipeline stage engine.

Every stage change goes through one of the public operations below. They are
pure: each takes an immutable ApplicationState plus a TransitionContext and
returns a TransitionResult holding the new state and a tuple of effect
descriptors (SendNotification, CreateTask). Persisting the state and
executing the effects is the caller's job (applications/services.py).

Public operations:
  request_transition(state, target_stage, context)  forward move or rejection
  revert_stage(state, target_stage, context)        explicit backward move
  reject_application(state, reason, actor_name)     rejection shortcut (idempotent)
  reassign(state, assignee, context)                change the responsible person
  add_note(state, text, context)                    free-text timeline entry
"""

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import ClassVar

from django.db import models

from applications.stages import (
    Stage,
    is_earlier,
    is_terminal,
    parse_stage,
    stage_label,
)
from messaging.keys import TemplateKey


# ── Exceptions ─────────────────────────────────────────────────────────────────

class TransitionError(Exception):
    """
    Base class for rejected stage-change requests. No state is ever mutated
    when one of these is raised. `message` is safe to show to staff users.
    """

    status_code = 400
    default_message = "This stage change is not allowed."

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidStage(TransitionError):
    default_message = "Unknown pipeline stage."


class TerminalStateViolation(TransitionError):
    status_code = 409
    default_message = "This application is closed and can no longer change stage."


class MissingReason(TransitionError):
    default_message = "Please provide a reason."


class MissingAssignee(TransitionError):
    default_message = "Please choose who is responsible for the next step."


class InvalidRevertTarget(TransitionError):
    default_message = "An application can only be reverted to an earlier stage."


class InvalidTransition(TransitionError):
    default_message = "Applications can only move forward; use a revert to go back."


# ── Value types ────────────────────────────────────────────────────────────────

class CommentKind(models.TextChoices):
    TRANSITION = "transition", "Stage Change"
    REVERT = "revert", "Revert"
    REJECTION = "rejection", "Rejection"
    REASSIGNMENT = "reassignment", "Reassignment"
    NOTE = "note", "Note"


@dataclass(frozen=True)
class CommentEntry:
    kind: str
    text: str
    author: str
    stage: str
    from_stage: str
    timestamp: datetime


@dataclass(frozen=True)
class ApplicationState:
    """Snapshot of the fields of an Application the engine reads or writes."""

    id: int | None
    stage: str
    candidate_name: str = ""
    candidate_email: str = ""
    job_title: str = ""
    assigned_to: str | None = None
    rejection_reason: str | None = None
    rejection_date: datetime | None = None
    stage_entered_at: datetime | None = None
    comments: tuple[CommentEntry, ...] = ()


@dataclass(frozen=True)
class TransitionContext:
    actor_name: str
    reason: str = ""
    assignee: str | None = None
    # Super-Admin actors may revert to any non-terminal stage regardless of order.
    privileged: bool = False
    # Extra placeholders for the entry notification (interview time, offer link...).
    template_data: Mapping[str, object] = field(default_factory=dict)


@dataclass(frozen=True)
class SendNotification:
    kind: ClassVar[str] = "send_notification"

    template_key: str
    application_id: int | None
    recipient_email: str
    template_data: dict = field(default_factory=dict)


@dataclass(frozen=True)
class CreateTask:
    kind: ClassVar[str] = "create_task"

    application_id: int | None
    assignee: str
    stage_label: str
    notes: str = ""


Effect = SendNotification | CreateTask


@dataclass(frozen=True)
class TransitionResult:
    state: ApplicationState
    effects: tuple[Effect, ...] = ()
    changed: bool = True

    @property
    def comment(self) -> CommentEntry | None:
        if not self.changed or not self.state.comments:
            return None
        return self.state.comments[-1]


# ── Policy ─────────────────────────────────────────────────────────────────────

DEFAULT_ASSIGNEE_REQUIRED = frozenset({Stage.SCREENING, Stage.INTERVIEW})

DEFAULT_NOTIFICATION_TEMPLATES: dict[str, str] = {
    Stage.SCREENING: TemplateKey.SCREENING_INVITATION,
    Stage.ASSIGNMENT_SENT: TemplateKey.ASSIGNMENT_INVITATION,
    Stage.INTERVIEW: TemplateKey.INTERVIEW_INVITATION,
    Stage.OFFER_SENT: TemplateKey.OFFER_LETTER,
    Stage.REJECTED: TemplateKey.REJECTION,
}


@dataclass(frozen=True)
class TransitionPolicy:
    """
    Configuration tables consulted by the engine.

    assignee_required       stages that cannot be entered without an assignee
    notification_templates  stage → template key sent to the candidate on entry
    """

    assignee_required: frozenset = DEFAULT_ASSIGNEE_REQUIRED
    notification_templates: Mapping[str, str] = field(
        default_factory=lambda: dict(DEFAULT_NOTIFICATION_TEMPLATES)
    )


DEFAULT_POLICY = TransitionPolicy()


# ── Helpers ────────────────────────────────────────────────────────────────────

def _now(now: datetime | None) -> datetime:
    return now or datetime.now(timezone.utc)


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _require_stage(value) -> Stage:
    stage = parse_stage(value)
    if stage is None:
        raise InvalidStage(f"Unknown pipeline stage '{value}'.")
    return stage


def _with_reason(text: str, reason: str) -> str:
    return f"{text}. Reason: {reason}" if reason else f"{text}."


def _notification(
    state: ApplicationState,
    template_key: str,
    reason: str,
    extra: Mapping[str, object] | None = None,
) -> SendNotification:
    data = dict(extra or {})
    data.update({
        "candidate_name": state.candidate_name,
        "job_title": state.job_title,
        "stage": stage_label(state.stage),
        "reason": reason,
        "application_pk": state.id,
    })
    return SendNotification(
        template_key=str(template_key),
        application_id=state.id,
        recipient_email=state.candidate_email,
        template_data=data,
    )


def _task(state: ApplicationState, assignee: str, context: TransitionContext, reason: str) -> CreateTask:
    label = stage_label(state.stage)
    return CreateTask(
        application_id=state.id,
        assignee=assignee,
        stage_label=label,
        notes=reason or f"Assigned by {context.actor_name} for the {label} stage",
    )


def _move(
    state: ApplicationState,
    target: Stage,
    *,
    kind: str,
    text: str,
    context: TransitionContext,
    assignee: str,
    timestamp: datetime,
) -> ApplicationState:
    comment = CommentEntry(
        kind=kind,
        text=text,
        author=context.actor_name,
        stage=target.value,
        from_stage=state.stage,
        timestamp=timestamp,
    )
    changes = {
        "stage": target.value,
        "stage_entered_at": timestamp,
        "comments": state.comments + (comment,),
    }
    if assignee:
        changes["assigned_to"] = assignee
    return dataclasses.replace(state, **changes)


# ── Operations ─────────────────────────────────────────────────────────────────

def request_transition(
    state: ApplicationState,
    target_stage,
    context: TransitionContext,
    policy: TransitionPolicy = DEFAULT_POLICY,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Move an application forward in the pipeline, or into REJECTED.

    Requesting the current stage is a no-op (changed=False, no comment,
    no effects).

    Raises:
        InvalidStage, TerminalStateViolation, MissingReason,
        InvalidTransition, MissingAssignee
    """
    target = _require_stage(target_stage)
    current = _require_stage(state.stage)

    if is_terminal(current) and target != current:
        raise TerminalStateViolation(
            f"Application is already {current.label.lower()} and cannot move to {target.label}."
        )

    reason = _clean(context.reason)
    if target == Stage.REJECTED and not reason:
        raise MissingReason("Please provide a rejection reason.")

    if target == current:
        return TransitionResult(state=state, changed=False)

    if target != Stage.REJECTED and not is_earlier(current, target):
        raise InvalidTransition(
            f"Cannot move from {current.label} back to {target.label}; use a revert instead."
        )

    # Rejection stays available from every non-terminal stage.
    needs_assignee = target != Stage.REJECTED and target in policy.assignee_required
    assignee = _clean(context.assignee)
    if needs_assignee and not assignee:
        raise MissingAssignee(f"Please choose who is responsible for the {target.label} stage.")

    timestamp = _now(now)
    if target == Stage.REJECTED:
        kind = CommentKind.REJECTION
        text = _with_reason(f"Application rejected from {current.label} stage", reason)
    else:
        kind = CommentKind.TRANSITION
        text = _with_reason(f"Moved from {current.label} to {target.label}", reason)

    new_state = _move(
        state, target,
        kind=kind, text=text, context=context, assignee=assignee, timestamp=timestamp,
    )
    if target == Stage.REJECTED:
        new_state = dataclasses.replace(new_state, rejection_reason=reason, rejection_date=timestamp)

    effects: list[Effect] = []
    template_key = policy.notification_templates.get(target)
    if template_key:
        effects.append(_notification(new_state, template_key, reason, context.template_data))
    if needs_assignee:
        effects.append(_task(new_state, assignee, context, reason))

    return TransitionResult(state=new_state, effects=tuple(effects))


def revert_stage(
    state: ApplicationState,
    target_stage,
    context: TransitionContext,
    policy: TransitionPolicy = DEFAULT_POLICY,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Move an application back to an earlier stage.

    Non-privileged actors may only target a stage strictly earlier than the
    current one; privileged (Super-Admin) actors may target any other
    non-terminal stage. A revert never targets, and never leaves, HIRED or
    REJECTED. Reverts do not notify the candidate; a task is created only when
    an assignee is supplied.

    Raises:
        InvalidStage, InvalidRevertTarget, TerminalStateViolation, MissingReason
    """
    target = _require_stage(target_stage)
    current = _require_stage(state.stage)

    if is_terminal(target):
        raise InvalidRevertTarget(f"Cannot revert an application to {target.label}.")

    if is_terminal(current):
        raise TerminalStateViolation(
            f"Application is already {current.label.lower()} and cannot be reverted."
        )

    reason = _clean(context.reason)
    if not reason:
        raise MissingReason("Please provide a reason for reverting the stage.")

    if target == current:
        raise InvalidRevertTarget(f"Application is already in {target.label}.")

    if not context.privileged and not is_earlier(target, current):
        raise InvalidRevertTarget(
            f"{target.label} is not earlier than {current.label}; only a super admin can make that move."
        )

    timestamp = _now(now)
    direction = "Moved back" if is_earlier(target, current) else "Moved"
    text = _with_reason(f"[Revert] {direction} from {current.label} to {target.label}", reason)
    assignee = _clean(context.assignee)

    new_state = _move(
        state, target,
        kind=CommentKind.REVERT, text=text, context=context, assignee=assignee, timestamp=timestamp,
    )

    effects: tuple[Effect, ...] = ()
    if assignee:
        effects = (_task(new_state, assignee, context, reason),)
    return TransitionResult(state=new_state, effects=effects)


def reject_application(
    state: ApplicationState,
    reason: str,
    actor_name: str,
    policy: TransitionPolicy = DEFAULT_POLICY,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """
    Reject an application from any non-terminal stage.

    Rejecting an already-rejected application is a no-op: the same state is
    returned with changed=False and no effects. The existing rejection reason
    is kept.
    """
    return request_transition(
        state,
        Stage.REJECTED,
        TransitionContext(actor_name=actor_name, reason=reason),
        policy,
        now=now,
    )


def reassign(
    state: ApplicationState,
    assignee: str | None,
    context: TransitionContext,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """Set or clear the responsible staff member. Stage is unchanged."""
    new_assignee = _clean(assignee) or None
    if new_assignee == state.assigned_to:
        return TransitionResult(state=state, changed=False)

    current = _require_stage(state.stage)
    if new_assignee:
        text = f"Assigned to {new_assignee}"
        if state.assigned_to:
            text += f" (previously {state.assigned_to})"
    else:
        text = f"Unassigned {state.assigned_to}"

    comment = CommentEntry(
        kind=CommentKind.REASSIGNMENT,
        text=_with_reason(text, _clean(context.reason)),
        author=context.actor_name,
        stage=current.value,
        from_stage=current.value,
        timestamp=_now(now),
    )
    new_state = dataclasses.replace(
        state,
        assigned_to=new_assignee,
        comments=state.comments + (comment,),
    )

    effects: tuple[Effect, ...] = ()
    if new_assignee:
        effects = (_task(new_state, new_assignee, context, _clean(context.reason)),)
    return TransitionResult(state=new_state, effects=effects)


def add_note(
    state: ApplicationState,
    text: str,
    context: TransitionContext,
    *,
    now: datetime | None = None,
) -> TransitionResult:
    """Append a free-text note to the timeline at the current stage."""
    body = _clean(text)
    if not body:
        raise MissingReason("Note text cannot be empty.")
    current = _require_stage(state.stage)
    comment = CommentEntry(
        kind=CommentKind.NOTE,
        text=body,
        author=context.actor_name,
        stage=current.value,
        from_stage=current.value,
        timestamp=_now(now),
    )
    return TransitionResult(
        state=dataclasses.replace(state, comments=state.comments + (comment,)),
    )
