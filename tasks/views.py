"""
tasks/views.py

JSON endpoints for the staff task list.

  GET  /tasks/              — filter by assignee, status, application
  POST /tasks/<pk>/status/  — move a task to a new status
"""

from django.contrib.auth.mixins import LoginRequiredMixin
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views import View

from applications.services import actor_name_for
from tasks.forms import TaskStatusForm
from tasks.models import TaskAssignment
from tasks.services import update_task_status


def serialize_task(task: TaskAssignment) -> dict:
    return {
        "id": task.pk,
        "application_id": task.application_id,
        "assignee": task.assignee,
        "stage": task.stage,
        "notes": task.notes,
        "assigned_by": task.assigned_by,
        "status": task.status,
        "priority": task.priority,
        "due_date": task.due_date.isoformat() if task.due_date else None,
        "completed_at": task.completed_at.isoformat() if task.completed_at else None,
        "completed_by": task.completed_by,
        "created_at": task.created_at.isoformat(),
    }


class TaskListView(LoginRequiredMixin, View):
    def get(self, request):
        qs = TaskAssignment.objects.order_by("-created_at")

        assignee = request.GET.get("assignee")
        if assignee:
            qs = qs.filter(assignee=assignee)

        status = request.GET.get("status")
        if status:
            qs = qs.filter(status=status)

        application_id = request.GET.get("application")
        if application_id:
            qs = qs.filter(application_id=application_id)

        return JsonResponse({"results": [serialize_task(t) for t in qs]})


class TaskStatusView(LoginRequiredMixin, View):
    def post(self, request, pk):
        task = get_object_or_404(TaskAssignment, pk=pk)
        form = TaskStatusForm(request.POST)
        if not form.is_valid():
            return JsonResponse({"error": "Invalid task status."}, status=400)

        update_task_status(
            task,
            form.cleaned_data["status"],
            completed_by=actor_name_for(request.user),
        )
        return JsonResponse({"task": serialize_task(task)})
