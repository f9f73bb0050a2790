"""
offers/views.py

Staff endpoints (login required):
  GET  /offers/                    — filter by application, status
  POST /offers/new/<app_pk>/       — draft an offer
  GET  /offers/<pk>/
  POST /offers/<pk>/send/          — may move the stage to Offer Sent
  POST /offers/<pk>/withdraw/

Candidate endpoint (public, token in the e-mailed link):
  GET  /offers/respond/<token>/    — offer summary
  POST /offers/respond/<token>/    — decision=accept|decline
"""

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from applications.transitions import TransitionError
from applications.views import error_response, form_error_response, get_application, outcome_warning
from offers.forms import OfferForm, OfferResponseForm
from offers.models import Offer
from offers.services import OfferError, create_offer, respond_to_offer, send_offer, withdraw_offer


def _date(value):
    return value.isoformat() if value else None


def serialize_offer(offer: Offer) -> dict:
    return {
        "id": offer.pk,
        "application_id": offer.application_id,
        "salary": str(offer.salary) if offer.salary is not None else None,
        "currency": offer.currency,
        "start_date": _date(offer.start_date),
        "expiry_date": _date(offer.expiry_date),
        "terms": offer.terms,
        "status": offer.status,
        "created_by": offer.created_by,
        "sent_by": offer.sent_by,
        "sent_at": _date(offer.sent_at),
        "responded_at": _date(offer.responded_at),
        "response_notes": offer.response_notes,
        "created_at": offer.created_at.isoformat(),
    }


def serialize_public_offer(offer: Offer) -> dict:
    """What the candidate sees: no internal authorship fields."""
    application = offer.application
    return {
        "candidate_name": application.candidate.full_name,
        "job_title": application.job.title,
        "salary": str(offer.salary) if offer.salary is not None else None,
        "currency": offer.currency,
        "start_date": _date(offer.start_date),
        "expiry_date": _date(offer.expiry_date),
        "terms": offer.terms,
        "status": offer.status,
    }


def _get_offer(pk) -> Offer:
    return get_object_or_404(
        Offer.objects.select_related("application__candidate", "application__job"), pk=pk,
    )


class OfferListView(LoginRequiredMixin, View):
    def get(self, request):
        qs = Offer.objects.order_by("-created_at")

        application_id = request.GET.get("application")
        if application_id:
            qs = qs.filter(application_id=application_id)

        status = request.GET.get("status")
        if status:
            qs = qs.filter(status=status)

        return JsonResponse({"results": [serialize_offer(o) for o in qs]})


class CreateOfferView(LoginRequiredMixin, View):
    def post(self, request, app_pk):
        application = get_application(app_pk)
        form = OfferForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        try:
            offer = create_offer(
                application,
                user=request.user,
                salary=data["salary"],
                currency=data["currency"],
                start_date=data["start_date"],
                expiry_date=data["expiry_date"],
                terms=data["terms"],
            )
        except OfferError as exc:
            return error_response(exc)
        return JsonResponse({"offer": serialize_offer(offer)}, status=201)


class OfferDetailView(LoginRequiredMixin, View):
    def get(self, request, pk):
        return JsonResponse(serialize_offer(_get_offer(pk)))


class SendOfferView(LoginRequiredMixin, View):
    def post(self, request, pk):
        offer = _get_offer(pk)
        try:
            outcome = send_offer(offer, user=request.user)
        except (OfferError, TransitionError) as exc:
            return error_response(exc)

        body = {
            "offer": serialize_offer(offer),
            "stage": offer.application.stage,
            "stage_changed": outcome.changed,
        }
        warning = outcome_warning(outcome)
        if warning:
            body["warning"] = warning
        return JsonResponse(body)


class WithdrawOfferView(LoginRequiredMixin, View):
    def post(self, request, pk):
        offer = _get_offer(pk)
        try:
            withdraw_offer(offer, user=request.user)
        except OfferError as exc:
            return error_response(exc)
        return JsonResponse({"offer": serialize_offer(offer)})


@method_decorator(csrf_exempt, name="dispatch")
class OfferRespondView(View):
    """Public page behind the link in the offer e-mail."""

    def _offer(self, token) -> Offer:
        return get_object_or_404(
            Offer.objects.select_related("application__candidate", "application__job"),
            response_token=token,
        )

    def get(self, request, token):
        return JsonResponse(serialize_public_offer(self._offer(token)))

    def post(self, request, token):
        offer = self._offer(token)
        form = OfferResponseForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            respond_to_offer(
                offer,
                accept=form.cleaned_data["decision"] == "accept",
                notes=form.cleaned_data["notes"],
            )
        except (OfferError, TransitionError) as exc:
            return error_response(exc)
        return JsonResponse(serialize_public_offer(offer))
