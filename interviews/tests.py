from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.urls import reverse
from django.utils import timezone

from applications.models import Application, PendingEffect
from applications.stages import Stage
from applications.transitions import MissingAssignee
from candidates.models import Candidate
from interviews.models import Interview
from interviews.services import (
    InterviewError,
    record_interview_outcome,
    reschedule_interview,
    schedule_interview,
    send_due_reminders,
)
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from messaging.models import Message
from tasks.models import TaskAssignment


def _make_application(stage=Stage.SHORTLISTING, email="ana@example.com") -> Application:
    return Application.objects.create(
        candidate=Candidate.objects.create(full_name="Ana Pop", email=email),
        job=JobOpening.objects.create(title="Backend Engineer"),
        stage=stage,
    )


def _sent(*args, **kwargs):
    return Message(status=Message.Status.SENT)


def _failed(*args, **kwargs):
    return Message(status=Message.Status.FAILED, error_detail="Gmail send failed: quota")


def _tomorrow():
    return timezone.now() + timedelta(days=1)


@patch("applications.effects.send_notification", side_effect=_sent)
class ScheduleInterviewTests(TestCase):
    def test_first_interview_moves_stage_and_invites(self, mock_send):
        app = _make_application(stage=Stage.SCREENING)

        interview, outcome = schedule_interview(
            app, _tomorrow(), interviewer_name="Raj", meeting_link="https://meet.example.com/abc",
        )

        app.refresh_from_db()
        self.assertTrue(outcome.changed)
        self.assertEqual(app.stage, Stage.INTERVIEW)
        self.assertEqual(app.assigned_to, "Raj")
        self.assertEqual(interview.status, Interview.Status.SCHEDULED)
        self.assertTrue(TaskAssignment.objects.filter(application=app, assignee="Raj").exists())

        payload = mock_send.call_args.kwargs
        self.assertEqual(payload["template_key"], TemplateKey.INTERVIEW_INVITATION)
        self.assertIn("https://meet.example.com/abc", payload["template_data"]["details"])

    def test_missing_interviewer_and_assignee_saves_nothing(self, mock_send):
        app = _make_application()

        with self.assertRaises(MissingAssignee):
            schedule_interview(app, _tomorrow())

        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.SHORTLISTING)
        self.assertFalse(Interview.objects.exists())
        mock_send.assert_not_called()

    def test_second_interview_keeps_stage_and_still_invites(self, mock_send):
        app = _make_application(stage=Stage.INTERVIEW)
        app.assigned_to = "Raj"
        app.save()

        interview, outcome = schedule_interview(app, _tomorrow(), title="Culture fit")

        app.refresh_from_db()
        self.assertFalse(outcome.changed)
        self.assertEqual(app.stage, Stage.INTERVIEW)
        self.assertEqual(app.comments.count(), 0)
        self.assertEqual(interview.title, "Culture fit")
        self.assertEqual(mock_send.call_args.kwargs["template_key"], TemplateKey.INTERVIEW_INVITATION)
        self.assertEqual(PendingEffect.objects.get().status, PendingEffect.Status.DELIVERED)

    def test_failed_invitation_is_reported_on_outcome(self, mock_send):
        mock_send.side_effect = _failed
        app = _make_application(stage=Stage.OFFER_SENT)

        _, outcome = schedule_interview(app, _tomorrow())

        self.assertTrue(outcome.notification_failed)
        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.OFFER_SENT)

    def test_terminal_application_cannot_be_scheduled(self, mock_send):
        app = _make_application(stage=Stage.REJECTED)
        with self.assertRaises(InterviewError):
            schedule_interview(app, _tomorrow(), interviewer_name="Raj")
        self.assertFalse(Interview.objects.exists())


class InterviewLifecycleTests(TestCase):
    def setUp(self):
        self.interview = Interview.objects.create(
            application=_make_application(stage=Stage.INTERVIEW),
            scheduled_at=_tomorrow(),
            reminder_sent_at=timezone.now(),
        )

    def test_outcome_recorded_once(self):
        record_interview_outcome(self.interview, Interview.Status.COMPLETED, feedback="Strong", rating=4)
        self.interview.refresh_from_db()
        self.assertEqual(self.interview.status, Interview.Status.COMPLETED)
        self.assertEqual(self.interview.rating, 4)

        with self.assertRaises(InterviewError):
            record_interview_outcome(self.interview, Interview.Status.NO_SHOW)

    def test_outcome_does_not_change_stage(self):
        record_interview_outcome(self.interview, Interview.Status.NO_SHOW)
        self.interview.application.refresh_from_db()
        self.assertEqual(self.interview.application.stage, Stage.INTERVIEW)

    def test_reschedule_clears_reminder(self):
        new_time = timezone.now() + timedelta(days=3)
        reschedule_interview(self.interview, new_time)
        self.interview.refresh_from_db()
        self.assertIsNone(self.interview.reminder_sent_at)
        self.assertEqual(self.interview.scheduled_at, new_time)

    def test_cancelled_interview_cannot_be_rescheduled(self):
        record_interview_outcome(self.interview, Interview.Status.CANCELLED)
        with self.assertRaises(InterviewError):
            reschedule_interview(self.interview, _tomorrow())


class InterviewReminderTests(TestCase):
    def setUp(self):
        self.now = timezone.now()

    def _interview(self, hours, email="ana@example.com", **overrides):
        data = {
            "application": _make_application(stage=Stage.INTERVIEW, email=email),
            "scheduled_at": self.now + timedelta(hours=hours),
        }
        data.update(overrides)
        return Interview.objects.create(**data)

    @patch("interviews.services.send_notification", side_effect=_sent)
    def test_only_interviews_inside_window_are_reminded(self, mock_send):
        due = self._interview(5)
        later = self._interview(48, email="b@example.com")
        past = self._interview(-2, email="c@example.com")
        self._interview(3, email="d@example.com", status=Interview.Status.CANCELLED)
        self._interview(3, email="e@example.com", reminder_sent_at=self.now)

        sent, failed = send_due_reminders(24, now=self.now)

        self.assertEqual((sent, failed), (1, 0))
        self.assertEqual(mock_send.call_args.args[0], TemplateKey.INTERVIEW_REMINDER)
        self.assertEqual(mock_send.call_args.args[2], "ana@example.com")
        due.refresh_from_db()
        later.refresh_from_db()
        past.refresh_from_db()
        self.assertIsNotNone(due.reminder_sent_at)
        self.assertIsNone(later.reminder_sent_at)
        self.assertIsNone(past.reminder_sent_at)

    @patch("interviews.services.send_notification", side_effect=_sent)
    def test_rejected_application_is_not_reminded(self, mock_send):
        interview = self._interview(5)
        Application.objects.filter(pk=interview.application_id).update(stage=Stage.REJECTED)

        self.assertEqual(send_due_reminders(24, now=self.now), (0, 0))
        mock_send.assert_not_called()

    @patch("interviews.services.send_notification", side_effect=_failed)
    def test_failed_reminder_is_tried_again(self, mock_send):
        interview = self._interview(5)

        self.assertEqual(send_due_reminders(24, now=self.now), (0, 1))
        interview.refresh_from_db()
        self.assertIsNone(interview.reminder_sent_at)

        mock_send.side_effect = _sent
        self.assertEqual(send_due_reminders(24, now=self.now), (1, 0))


class InterviewViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="raj", password="test-pass-123", first_name="Raj", last_name="Kumar",
        )
        self.client.force_login(self.user)
        self.app = _make_application(stage=Stage.SCREENING)

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_schedule_returns_201_and_moves_stage(self, _mock_send):
        resp = self.client.post(
            reverse("interviews:schedule", args=[self.app.pk]),
            {"scheduled_at": "2030-05-14 10:00", "interviewer_name": "Raj"},
        )
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertTrue(body["stage_changed"])
        self.assertEqual(body["stage"], Stage.INTERVIEW)
        self.assertEqual(body["interview"]["scheduled_by"], "Raj Kumar")
        self.assertNotIn("warning", body)

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_missing_assignee_returns_400(self, _mock_send):
        resp = self.client.post(
            reverse("interviews:schedule", args=[self.app.pk]),
            {"scheduled_at": "2030-05-14 10:00"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("error", resp.json())

    def test_in_person_requires_address(self):
        resp = self.client.post(
            reverse("interviews:schedule", args=[self.app.pk]),
            {"scheduled_at": "2030-05-14 10:00", "location_type": "in_person", "interviewer_name": "Raj"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("address", resp.json()["fields"])

    def test_outcome_on_closed_interview_returns_409(self):
        interview = Interview.objects.create(
            application=self.app, scheduled_at=_tomorrow(), status=Interview.Status.COMPLETED,
        )
        resp = self.client.post(reverse("interviews:outcome", args=[interview.pk]), {"status": "no_show"})
        self.assertEqual(resp.status_code, 409)

    @patch("interviews.services.send_notification", side_effect=_failed)
    def test_manual_reminder_failure_returns_502(self, _mock_send):
        interview = Interview.objects.create(application=self.app, scheduled_at=_tomorrow())
        resp = self.client.post(reverse("interviews:remind", args=[interview.pk]))
        self.assertEqual(resp.status_code, 502)

    def test_list_filters_by_application(self):
        mine = Interview.objects.create(application=self.app, scheduled_at=_tomorrow())
        Interview.objects.create(
            application=_make_application(email="b@example.com"), scheduled_at=_tomorrow(),
        )
        resp = self.client.get(reverse("interviews:list"), {"application": self.app.pk})
        self.assertEqual([i["id"] for i in resp.json()["results"]], [mine.pk])

    def test_login_required(self):
        self.client.logout()
        resp = self.client.get(reverse("interviews:list"))
        self.assertEqual(resp.status_code, 302)
