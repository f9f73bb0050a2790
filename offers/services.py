"""
offers/services.py

Offer lifecycle: draft → sent → accepted / declined, or withdrawn.

Public services:
  create_offer(application, ...)          → Offer (draft)
  send_offer(offer, user)                 → StageChangeOutcome
  respond_to_offer(offer, accept, notes)  → Offer
  withdraw_offer(offer, user)             → Offer

Stage changes (Offer Sent on sending, Offer Accepted on acceptance) go
through applications.services.apply_transition like every other move.
A declined offer leaves the stage alone and is recorded as a note; the
rejection stays a staff decision.
"""

import logging

from django.conf import settings
from django.urls import reverse
from django.utils import timezone

from applications.models import Application
from applications.services import (
    StageChangeOutcome,
    actor_name_for,
    add_note,
    apply_transition,
    notify_candidate,
)
from applications.stages import Stage, is_earlier, is_terminal
from messaging.keys import TemplateKey
from offers.models import Offer

logger = logging.getLogger(__name__)


class OfferError(Exception):
    """Raised when an offer action does not fit the offer or application state."""

    status_code = 409

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def response_url(offer: Offer) -> str:
    path = reverse("offers:respond", args=[offer.response_token])
    return f"{settings.PUBLIC_BASE_URL.rstrip('/')}{path}"


def create_offer(
    application: Application,
    *,
    user=None,
    salary=None,
    currency: str = "INR",
    start_date=None,
    expiry_date=None,
    terms: str = "",
) -> Offer:
    if is_terminal(application.stage):
        raise OfferError(
            f"Cannot create an offer: the application is {application.get_stage_display().lower()}."
        )
    offer = Offer.objects.create(
        application=application,
        salary=salary,
        currency=(currency or "INR").upper(),
        start_date=start_date,
        expiry_date=expiry_date,
        terms=terms or "",
        created_by=actor_name_for(user),
    )
    logger.info("Offer drafted: offer=%s application=%s", offer.pk, application.pk)
    return offer


def send_offer(offer: Offer, *, user=None) -> StageChangeOutcome:
    """
    Send a draft offer to the candidate.

    The first offer moves the application to Offer Sent and the engine
    e-mails the offer letter. A revised offer at Offer Sent replaces the
    previous one (which is withdrawn) and is e-mailed directly.

    Raises:
        OfferError, TransitionError
    """
    if offer.status != Offer.Status.DRAFT:
        raise OfferError(f"Only draft offers can be sent; this one is {offer.get_status_display().lower()}.")

    application = offer.application
    stage = application.stage
    if is_terminal(stage) or not (is_earlier(stage, Stage.OFFER_SENT) or stage == Stage.OFFER_SENT):
        raise OfferError(f"Cannot send an offer while the application is in {application.get_stage_display()}.")

    details = {"details": offer.details_text(response_url(offer))}
    if stage == Stage.OFFER_SENT:
        outcome = StageChangeOutcome(application=application, changed=False)
        notify_candidate(application, TemplateKey.OFFER_LETTER, details, outcome=outcome)
    else:
        outcome = apply_transition(
            application,
            Stage.OFFER_SENT,
            user=user,
            assignee=application.assigned_to,
            template_data=details,
        )

    superseded = (
        Offer.objects
        .filter(application=application, status=Offer.Status.SENT)
        .exclude(pk=offer.pk)
        .update(status=Offer.Status.WITHDRAWN, updated_at=timezone.now())
    )

    offer.status = Offer.Status.SENT
    offer.sent_at = timezone.now()
    offer.sent_by = actor_name_for(user)
    offer.save(update_fields=["status", "sent_at", "sent_by", "updated_at"])
    logger.info(
        "Offer sent: offer=%s application=%s stage_changed=%s superseded=%s",
        offer.pk, application.pk, outcome.changed, superseded,
    )
    return outcome


def respond_to_offer(offer: Offer, *, accept: bool, notes: str = "") -> Offer:
    """
    Record the candidate's answer. Acceptance moves the application to
    Offer Accepted, authored by the candidate.

    Raises:
        OfferError, TransitionError
    """
    if offer.status != Offer.Status.SENT:
        raise OfferError("This offer is no longer open for a response.")
    if offer.is_expired(timezone.localdate()):
        raise OfferError(f"This offer expired on {offer.expiry_date:%d %B %Y}.")

    application = offer.application
    if application.stage != Stage.OFFER_SENT:
        raise OfferError("This offer is no longer open for a response.")

    candidate_name = application.candidate.full_name
    notes = (notes or "").strip()

    if accept:
        apply_transition(
            application,
            Stage.OFFER_ACCEPTED,
            actor_name=candidate_name,
            reason=notes,
            assignee=application.assigned_to,
        )
        offer.status = Offer.Status.ACCEPTED
    else:
        offer.status = Offer.Status.DECLINED
        text = "Offer declined by the candidate"
        add_note(application, f"{text}: {notes}" if notes else text, actor_name=candidate_name)

    offer.responded_at = timezone.now()
    offer.response_notes = notes
    offer.save(update_fields=["status", "responded_at", "response_notes", "updated_at"])
    logger.info("Offer %s %s by candidate (application=%s)", offer.pk, offer.status, application.pk)
    return offer


def withdraw_offer(offer: Offer, *, user=None) -> Offer:
    if offer.status not in (Offer.Status.DRAFT, Offer.Status.SENT):
        raise OfferError(f"Cannot withdraw an offer that is {offer.get_status_display().lower()}.")

    offer.status = Offer.Status.WITHDRAWN
    offer.save(update_fields=["status", "updated_at"])
    logger.info("Offer %s withdrawn by %s", offer.pk, actor_name_for(user))
    return offer
