"""
applications/effects.py

Delivery of effect descriptors produced by the stage engine.

Effects are persisted as PendingEffect rows in the same transaction as the
stage change, then delivered here. A failed delivery marks the row failed
and is logged; it never touches the application's stage. Undelivered rows are
retried by scheduler.jobs.retry_pending_effects.
"""

import dataclasses
import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from applications.models import Application, PendingEffect
from messaging.models import Message
from messaging.services import send_notification
from tasks.services import create_task
from talentflow.constants import EFFECT_RETRY_GRACE_SECONDS, MAX_EFFECT_ATTEMPTS

logger = logging.getLogger(__name__)


def to_pending(application: Application, effect) -> PendingEffect:
    """Build (unsaved) the outbox row for an engine effect descriptor."""
    return PendingEffect(
        application=application,
        kind=effect.kind,
        payload=dataclasses.asdict(effect),
    )


def _deliver(pending: PendingEffect) -> str | None:
    """Run one effect. Returns an error description, or None on success."""
    if pending.kind == PendingEffect.Kind.SEND_NOTIFICATION:
        message = send_notification(**pending.payload)
        if message.status != Message.Status.SENT:
            return message.error_detail or "Notification was not sent"
        return None

    if pending.kind == PendingEffect.Kind.CREATE_TASK:
        create_task(**pending.payload)
        return None

    return f"Unknown effect kind '{pending.kind}'"


def execute_effect(pending: PendingEffect) -> bool:
    """
    Deliver a single PendingEffect and record the attempt.

    Collaborator errors are caught and stored on the row; the caller only
    learns whether delivery succeeded.
    """
    pending.attempts += 1
    try:
        # Savepoint so a collaborator DB error cannot poison an outer transaction.
        with transaction.atomic():
            error = _deliver(pending)
    except Exception as exc:  # noqa: BLE001
        logger.error(
            "Effect delivery raised: effect=%s kind=%s application=%s attempt=%s: %s",
            pending.pk, pending.kind, pending.application_id, pending.attempts, exc,
            exc_info=True,
        )
        error = str(exc) or exc.__class__.__name__

    if error:
        pending.status = PendingEffect.Status.FAILED
        pending.last_error = error[:500]
        logger.warning(
            "Effect not delivered: effect=%s kind=%s application=%s attempt=%s error=%s",
            pending.pk, pending.kind, pending.application_id, pending.attempts, error,
        )
    else:
        pending.status = PendingEffect.Status.DELIVERED
        pending.last_error = None
        pending.delivered_at = timezone.now()

    pending.save(update_fields=["status", "attempts", "last_error", "delivered_at"])
    return not error


def execute_all(pending_effects) -> tuple[list[PendingEffect], list[PendingEffect]]:
    """Deliver each effect in order. Returns (delivered, failed)."""
    delivered, failed = [], []
    for pending in pending_effects:
        (delivered if execute_effect(pending) else failed).append(pending)
    return delivered, failed


def retry_undelivered(
    max_attempts: int = MAX_EFFECT_ATTEMPTS,
    grace_seconds: int = EFFECT_RETRY_GRACE_SECONDS,
) -> tuple[int, int]:
    """
    Re-deliver pending/failed effects that have not exhausted their attempts.

    Pending rows younger than `grace_seconds` are skipped: the request that
    wrote them may still be delivering them inline.

    Returns:
        (delivered, failed) counts for this run.
    """
    cutoff = timezone.now() - timedelta(seconds=grace_seconds)
    candidates = list(
        PendingEffect.objects
        .filter(
            Q(status=PendingEffect.Status.FAILED)
            | Q(status=PendingEffect.Status.PENDING, created_at__lt=cutoff),
            attempts__lt=max_attempts,
        )
        .order_by("created_at", "id")
    )
    delivered, failed = execute_all(candidates)
    if candidates:
        logger.info(
            "Effect retry run: delivered=%s failed=%s", len(delivered), len(failed),
        )
    return len(delivered), len(failed)
