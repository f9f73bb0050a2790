"""
assignments/views.py

Staff endpoints (login required):
  GET  /assignments/templates/       — active templates
  POST /assignments/templates/       — create a template
  GET  /assignments/                 — filter by application, status
  POST /assignments/send/<app_pk>/   — may move the stage to Assignment Sent
  POST /assignments/<pk>/submit/     — record a submission received by e-mail
  POST /assignments/<pk>/review/     — passed / failed

Candidate endpoint (public, token in the e-mailed link):
  GET  /assignments/submit/<token>/
  POST /assignments/submit/<token>/
"""

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from applications.transitions import TransitionError
from applications.views import error_response, form_error_response, get_application, outcome_warning
from assignments.forms import AssignmentTemplateForm, ReviewForm, SendAssignmentForm, SubmissionForm
from assignments.models import AssignmentTemplate, CandidateAssignment
from assignments.services import (
    AssignmentError,
    create_template,
    review_assignment,
    send_assignment,
    submit_assignment,
)


def _dt(value):
    return value.isoformat() if value else None


def serialize_template(template: AssignmentTemplate) -> dict:
    return {
        "id": template.pk,
        "name": template.name,
        "instructions": template.instructions,
        "link": template.link,
        "deadline_days": template.deadline_days,
        "is_active": template.is_active,
        "created_by": template.created_by,
    }


def serialize_assignment(assignment: CandidateAssignment) -> dict:
    return {
        "id": assignment.pk,
        "application_id": assignment.application_id,
        "template_id": assignment.template_id,
        "name": assignment.name,
        "instructions": assignment.instructions,
        "link": assignment.link,
        "deadline_at": _dt(assignment.deadline_at),
        "status": assignment.status,
        "sent_by": assignment.sent_by,
        "submission_link": assignment.submission_link,
        "submission_notes": assignment.submission_notes,
        "submitted_at": _dt(assignment.submitted_at),
        "is_late": assignment.is_late,
        "score": assignment.score,
        "review_notes": assignment.review_notes,
        "reviewed_by": assignment.reviewed_by,
        "reviewed_at": _dt(assignment.reviewed_at),
    }


def serialize_public_assignment(assignment: CandidateAssignment) -> dict:
    return {
        "name": assignment.name,
        "job_title": assignment.application.job.title,
        "instructions": assignment.instructions,
        "link": assignment.link,
        "deadline_at": _dt(assignment.deadline_at),
        "status": assignment.status,
        "submitted_at": _dt(assignment.submitted_at),
    }


def _with_warning(body: dict, outcome) -> dict:
    warning = outcome_warning(outcome) if outcome is not None else None
    if warning:
        body["warning"] = warning
    return body


def _get_assignment(**lookup) -> CandidateAssignment:
    return get_object_or_404(
        CandidateAssignment.objects.select_related("application__candidate", "application__job"),
        **lookup,
    )


class TemplateListView(LoginRequiredMixin, View):
    def get(self, request):
        qs = AssignmentTemplate.objects.filter(is_active=True)
        return JsonResponse({"results": [serialize_template(t) for t in qs]})

    def post(self, request):
        form = AssignmentTemplateForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        data = form.cleaned_data
        template = create_template(
            data["name"],
            instructions=data["instructions"],
            link=data["link"],
            deadline_days=data["deadline_days"] or 3,
            user=request.user,
        )
        return JsonResponse({"template": serialize_template(template)}, status=201)


class AssignmentListView(LoginRequiredMixin, View):
    def get(self, request):
        qs = CandidateAssignment.objects.order_by("-created_at")

        application_id = request.GET.get("application")
        if application_id:
            qs = qs.filter(application_id=application_id)

        status = request.GET.get("status")
        if status:
            qs = qs.filter(status=status)

        return JsonResponse({"results": [serialize_assignment(a) for a in qs]})


class SendAssignmentView(LoginRequiredMixin, View):
    def post(self, request, app_pk):
        application = get_application(app_pk)
        form = SendAssignmentForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        try:
            assignment, outcome = send_assignment(
                application,
                template=data["template"],
                name=data["name"],
                instructions=data["instructions"],
                link=data["link"],
                deadline_days=data["deadline_days"],
                user=request.user,
            )
        except (AssignmentError, TransitionError) as exc:
            return error_response(exc)

        body = {
            "assignment": serialize_assignment(assignment),
            "stage": application.stage,
            "stage_changed": outcome.changed,
        }
        return JsonResponse(_with_warning(body, outcome), status=201)


class StaffSubmissionView(LoginRequiredMixin, View):
    def post(self, request, pk):
        assignment = _get_assignment(pk=pk)
        form = SubmissionForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            _, outcome = submit_assignment(
                assignment,
                link=form.cleaned_data["submission_link"],
                notes=form.cleaned_data["notes"],
            )
        except (AssignmentError, TransitionError) as exc:
            return error_response(exc)
        body = {"assignment": serialize_assignment(assignment), "stage": assignment.application.stage}
        return JsonResponse(_with_warning(body, outcome))


class ReviewAssignmentView(LoginRequiredMixin, View):
    def post(self, request, pk):
        assignment = _get_assignment(pk=pk)
        form = ReviewForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            review_assignment(
                assignment,
                passed=form.cleaned_data["passed"],
                score=form.cleaned_data["score"],
                notes=form.cleaned_data["notes"],
                user=request.user,
            )
        except AssignmentError as exc:
            return error_response(exc)
        return JsonResponse({"assignment": serialize_assignment(assignment)})


@method_decorator(csrf_exempt, name="dispatch")
class PublicSubmissionView(View):
    """Public page behind the link in the assignment e-mail."""

    def get(self, request, token):
        return JsonResponse(serialize_public_assignment(_get_assignment(submission_token=token)))

    def post(self, request, token):
        assignment = _get_assignment(submission_token=token)
        form = SubmissionForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            submit_assignment(
                assignment,
                link=form.cleaned_data["submission_link"],
                notes=form.cleaned_data["notes"],
            )
        except (AssignmentError, TransitionError) as exc:
            return error_response(exc)
        return JsonResponse(serialize_public_assignment(assignment))
