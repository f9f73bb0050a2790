"""
applications/views.py

JSON endpoints for the application pipeline: list, detail, intake and the
stage actions. Stage changes go through applications.services; engine and
service errors map to 400/409 responses carrying the user-facing message.
"""

import logging

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from applications import services
from applications.forms import (
    AddNoteForm,
    ManualApplicationForm,
    PublicApplicationForm,
    ReassignForm,
    RejectForm,
    RevertForm,
    TransitionForm,
)
from applications.models import Application, Comment
from applications.services import DuplicateApplication, JobNotOpen
from applications.transitions import TransitionError

logger = logging.getLogger(__name__)

NOTIFICATION_WARNING = "Stage updated, but the email may not have been sent"
TASK_WARNING = "Stage updated, but the task for the assignee could not be created"


# ── Serialisation ──────────────────────────────────────────────────────────────

def serialize_comment(comment: Comment) -> dict:
    return {
        "id": comment.pk,
        "kind": comment.kind,
        "text": comment.text,
        "author": comment.author,
        "stage": comment.stage,
        "from_stage": comment.from_stage,
        "created_at": comment.created_at.isoformat(),
    }


def serialize_application(application: Application, *, detail: bool = False) -> dict:
    data = {
        "id": application.pk,
        "candidate": {
            "id": application.candidate_id,
            "full_name": application.candidate.full_name,
            "email": application.candidate.email,
        },
        "job": {"id": application.job_id, "title": application.job.title},
        "stage": application.stage,
        "stage_label": application.get_stage_display(),
        "stage_entered_at": application.stage_entered_at.isoformat(),
        "assigned_to": application.assigned_to,
        "is_hot_applicant": application.is_hot_applicant,
        "ai_score": application.ai_score,
        "created_at": application.created_at.isoformat(),
    }
    if detail:
        data.update({
            "days_in_stage": application.days_in_stage,
            "total_days": application.total_days,
            "rejection_reason": application.rejection_reason,
            "rejection_date": (
                application.rejection_date.isoformat() if application.rejection_date else None
            ),
            "ai_analysis": application.ai_analysis,
            "comments": [serialize_comment(c) for c in application.comments.all()],
        })
    return data


def form_error_response(form) -> JsonResponse:
    return JsonResponse({"error": "Invalid request.", "fields": form.errors}, status=400)


def error_response(exc) -> JsonResponse:
    message = getattr(exc, "message", None) or str(exc)
    return JsonResponse({"error": message}, status=exc.status_code)


def outcome_warning(outcome: services.StageChangeOutcome) -> str | None:
    """Staff-facing warning for effects that failed after a committed change."""
    warnings = []
    if outcome.notification_failed:
        warnings.append(NOTIFICATION_WARNING)
    if outcome.task_failed:
        warnings.append(TASK_WARNING)
    return "; ".join(warnings) or None


def _outcome_response(outcome: services.StageChangeOutcome) -> JsonResponse:
    body = {
        "application": serialize_application(outcome.application, detail=True),
        "changed": outcome.changed,
    }
    warning = outcome_warning(outcome)
    if warning:
        body["warning"] = warning
    return JsonResponse(body)


def get_application(pk) -> Application:
    return get_object_or_404(Application.objects.select_related("candidate", "job"), pk=pk)


# ── Read ───────────────────────────────────────────────────────────────────────

class ApplicationListView(LoginRequiredMixin, View):
    """
    Filterable application list.
    Query params: stage, job, hot, assigned_to.
    """

    def get(self, request):
        qs = (
            Application.objects
            .select_related("candidate", "job")
            .order_by("-updated_at")
        )

        stage = request.GET.get("stage")
        if stage:
            qs = qs.filter(stage=stage)

        job_id = request.GET.get("job")
        if job_id:
            qs = qs.filter(job_id=job_id)

        hot = request.GET.get("hot")
        if hot == "true":
            qs = qs.filter(is_hot_applicant=True)
        elif hot == "false":
            qs = qs.filter(is_hot_applicant=False)

        assigned_to = request.GET.get("assigned_to")
        if assigned_to:
            qs = qs.filter(assigned_to=assigned_to)

        return JsonResponse({"results": [serialize_application(a) for a in qs]})


class ApplicationDetailView(LoginRequiredMixin, View):
    def get(self, request, pk):
        return JsonResponse(serialize_application(get_application(pk), detail=True))


# ── Intake ─────────────────────────────────────────────────────────────────────

@method_decorator(csrf_exempt, name="dispatch")
class PublicApplyView(View):
    """Anonymous apply endpoint for the careers page."""

    def post(self, request):
        form = PublicApplicationForm(request.POST, request.FILES)
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        try:
            application = services.submit_public_application(
                data["job"],
                full_name=data["full_name"],
                email=data["email"],
                phone=data["phone"],
                resume=data.get("resume"),
            )
        except (DuplicateApplication, JobNotOpen) as exc:
            return error_response(exc)

        return JsonResponse({"id": application.pk, "stage": application.stage}, status=201)


class ManualApplicationView(LoginRequiredMixin, View):
    """Staff adds a candidate to a job; no acknowledgement e-mail is sent."""

    def post(self, request):
        form = ManualApplicationForm(request.POST, request.FILES)
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        try:
            application = services.submit_manual_application(
                data["job"],
                full_name=data["full_name"],
                email=data["email"],
                phone=data["phone"],
                resume=data.get("resume"),
            )
        except DuplicateApplication as exc:
            return error_response(exc)

        return JsonResponse(serialize_application(application, detail=True), status=201)


# ── Stage actions ──────────────────────────────────────────────────────────────

class TransitionView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        form = TransitionForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            outcome = services.apply_transition(
                application,
                form.cleaned_data["stage"],
                user=request.user,
                reason=form.cleaned_data["reason"],
                assignee=form.cleaned_data["assignee"],
            )
        except TransitionError as exc:
            return error_response(exc)
        return _outcome_response(outcome)


class RevertView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        form = RevertForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            outcome = services.apply_revert(
                application,
                form.cleaned_data["stage"],
                user=request.user,
                reason=form.cleaned_data["reason"],
                assignee=form.cleaned_data["assignee"],
            )
        except TransitionError as exc:
            return error_response(exc)
        return _outcome_response(outcome)


class RejectView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        form = RejectForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            outcome = services.apply_rejection(
                application,
                form.cleaned_data["reason"],
                user=request.user,
            )
        except TransitionError as exc:
            return error_response(exc)
        return _outcome_response(outcome)


class ReassignView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        form = ReassignForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            outcome = services.apply_reassignment(
                application,
                form.cleaned_data["assignee"],
                user=request.user,
                reason=form.cleaned_data["reason"],
            )
        except TransitionError as exc:
            return error_response(exc)
        return _outcome_response(outcome)


class AddNoteView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        form = AddNoteForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            comment = services.add_note(application, form.cleaned_data["note"], user=request.user)
        except TransitionError as exc:
            return error_response(exc)
        return JsonResponse(serialize_comment(comment), status=201)


class ToggleHotApplicantView(LoginRequiredMixin, View):
    def post(self, request, pk):
        application = get_application(pk)
        is_hot = services.toggle_hot_applicant(application)
        logger.info("Hot applicant flag: application=%s is_hot=%s", application.pk, is_hot)
        return JsonResponse({"id": application.pk, "is_hot_applicant": is_hot})
