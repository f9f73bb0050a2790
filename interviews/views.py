"""
interviews/views.py

JSON endpoints for interview scheduling.

  GET  /interviews/                       — filter by application, status, upcoming
  POST /interviews/schedule/<app_pk>/     — schedule (may move the stage)
  GET  /interviews/<pk>/
  POST /interviews/<pk>/reschedule/
  POST /interviews/<pk>/outcome/          — completed / cancelled / no-show
  POST /interviews/<pk>/remind/           — send the reminder now
"""

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.views import View

from applications.transitions import TransitionError
from applications.views import error_response, form_error_response, get_application, outcome_warning
from interviews.forms import InterviewOutcomeForm, RescheduleInterviewForm, ScheduleInterviewForm
from interviews.models import Interview
from interviews.services import (
    InterviewError,
    record_interview_outcome,
    reschedule_interview,
    schedule_interview,
    send_reminder,
)


def serialize_interview(interview: Interview) -> dict:
    return {
        "id": interview.pk,
        "application_id": interview.application_id,
        "title": interview.title,
        "scheduled_at": interview.scheduled_at.isoformat(),
        "duration_minutes": interview.duration_minutes,
        "location_type": interview.location_type,
        "meeting_link": interview.meeting_link,
        "address": interview.address,
        "interviewer_name": interview.interviewer_name,
        "status": interview.status,
        "notes": interview.notes,
        "feedback": interview.feedback,
        "rating": interview.rating,
        "scheduled_by": interview.scheduled_by,
        "reminder_sent_at": interview.reminder_sent_at.isoformat() if interview.reminder_sent_at else None,
        "created_at": interview.created_at.isoformat(),
    }


class InterviewListView(LoginRequiredMixin, View):
    def get(self, request):
        qs = Interview.objects.order_by("scheduled_at")

        application_id = request.GET.get("application")
        if application_id:
            qs = qs.filter(application_id=application_id)

        status = request.GET.get("status")
        if status:
            qs = qs.filter(status=status)

        if request.GET.get("upcoming") == "true":
            qs = qs.filter(scheduled_at__gte=timezone.now())

        return JsonResponse({"results": [serialize_interview(i) for i in qs]})


class ScheduleInterviewView(LoginRequiredMixin, View):
    def post(self, request, app_pk):
        application = get_application(app_pk)
        form = ScheduleInterviewForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)

        data = form.cleaned_data
        try:
            interview, outcome = schedule_interview(
                application,
                data["scheduled_at"],
                user=request.user,
                title=data["title"],
                duration_minutes=data["duration_minutes"] or 60,
                location_type=data["location_type"] or Interview.LocationType.ONLINE,
                meeting_link=data["meeting_link"],
                address=data["address"],
                interviewer_name=data["interviewer_name"],
                notes=data["notes"],
            )
        except (InterviewError, TransitionError) as exc:
            return error_response(exc)

        body = {
            "interview": serialize_interview(interview),
            "stage": application.stage,
            "stage_changed": outcome.changed,
        }
        warning = outcome_warning(outcome)
        if warning:
            body["warning"] = warning
        return JsonResponse(body, status=201)


class InterviewDetailView(LoginRequiredMixin, View):
    def get(self, request, pk):
        return JsonResponse(serialize_interview(get_object_or_404(Interview, pk=pk)))


class RescheduleInterviewView(LoginRequiredMixin, View):
    def post(self, request, pk):
        interview = get_object_or_404(Interview, pk=pk)
        form = RescheduleInterviewForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            reschedule_interview(interview, form.cleaned_data["scheduled_at"])
        except InterviewError as exc:
            return error_response(exc)
        return JsonResponse({"interview": serialize_interview(interview)})


class InterviewOutcomeView(LoginRequiredMixin, View):
    def post(self, request, pk):
        interview = get_object_or_404(Interview, pk=pk)
        form = InterviewOutcomeForm(request.POST)
        if not form.is_valid():
            return form_error_response(form)
        try:
            record_interview_outcome(
                interview,
                form.cleaned_data["status"],
                feedback=form.cleaned_data["feedback"],
                rating=form.cleaned_data["rating"],
            )
        except InterviewError as exc:
            return error_response(exc)
        return JsonResponse({"interview": serialize_interview(interview)})


class SendReminderView(LoginRequiredMixin, View):
    def post(self, request, pk):
        interview = get_object_or_404(
            Interview.objects.select_related("application__candidate", "application__job"), pk=pk,
        )
        if interview.status != Interview.Status.SCHEDULED:
            return JsonResponse({"error": "Only scheduled interviews can be reminded."}, status=409)

        if not send_reminder(interview):
            return JsonResponse({"error": "The reminder email could not be sent."}, status=502)
        return JsonResponse({"interview": serialize_interview(interview)})
