from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse

from applications.models import Application
from candidates.models import Candidate
from jobs.models import JobOpening
from tasks.models import TaskAssignment
from tasks.services import create_task, update_task_status


def _make_application() -> Application:
    return Application.objects.create(
        candidate=Candidate.objects.create(full_name="Ana Pop", email="ana@example.com"),
        job=JobOpening.objects.create(title="Backend Engineer"),
    )


class CreateTaskTests(TestCase):
    def setUp(self):
        self.app = _make_application()

    def test_creates_pending_task(self):
        task = create_task(self.app.pk, "Raj", "Interview", notes="Tech round")
        self.assertEqual(task.status, TaskAssignment.Status.PENDING)
        self.assertEqual(task.notes, "Tech round")

    def test_retry_returns_existing_open_task(self):
        first = create_task(self.app.pk, "Raj", "Interview")
        second = create_task(self.app.pk, "Raj", "Interview")
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(TaskAssignment.objects.count(), 1)

    def test_completed_task_does_not_block_new_one(self):
        first = create_task(self.app.pk, "Raj", "Interview")
        update_task_status(first, TaskAssignment.Status.COMPLETED, completed_by="Raj")
        second = create_task(self.app.pk, "Raj", "Interview")
        self.assertNotEqual(first.pk, second.pk)


class UpdateTaskStatusTests(TestCase):
    def test_completion_records_actor_and_time(self):
        task = create_task(_make_application().pk, "Raj", "Screening Call")
        update_task_status(task, TaskAssignment.Status.COMPLETED, completed_by="Raj")
        task.refresh_from_db()
        self.assertEqual(task.completed_by, "Raj")
        self.assertIsNotNone(task.completed_at)

    def test_in_progress_keeps_completion_empty(self):
        task = create_task(_make_application().pk, "Raj", "Screening Call")
        update_task_status(task, TaskAssignment.Status.IN_PROGRESS)
        task.refresh_from_db()
        self.assertIsNone(task.completed_at)


class TaskViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="raj", password="test-pass-123", first_name="Raj", last_name="Kumar",
        )
        self.client.force_login(self.user)
        self.app = _make_application()
        self.task = create_task(self.app.pk, "Raj", "Interview")
        create_task(self.app.pk, "Mira", "Screening Call")

    def test_list_filters_by_assignee(self):
        resp = self.client.get(reverse("tasks:list"), {"assignee": "Raj"})
        results = resp.json()["results"]
        self.assertEqual([t["id"] for t in results], [self.task.pk])

    def test_status_update(self):
        resp = self.client.post(reverse("tasks:update_status", args=[self.task.pk]), {"status": "completed"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["task"]["completed_by"], "Raj Kumar")

    def test_invalid_status_returns_400(self):
        resp = self.client.post(reverse("tasks:update_status", args=[self.task.pk]), {"status": "done"})
        self.assertEqual(resp.status_code, 400)

    def test_login_required(self):
        self.client.logout()
        self.assertEqual(self.client.get(reverse("tasks:list")).status_code, 302)
