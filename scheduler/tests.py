from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from applications.models import Application, PendingEffect
from candidates.models import Candidate
from interviews.models import Interview
from jobs.models import JobOpening
from messaging.models import Message
from scheduler import jobs


def _make_job() -> JobOpening:
    return JobOpening.objects.create(title="Backend Engineer", description="Django")


def _make_candidate(email="ana@example.com", resume_text="Python, Django") -> Candidate:
    return Candidate.objects.create(full_name="Ana Pop", email=email, resume_text=resume_text)


def _sent_message(*args, **kwargs):
    return Message(status=Message.Status.SENT)


class RetryPendingEffectsJobTests(TestCase):
    def setUp(self):
        self.application = Application.objects.create(candidate=_make_candidate(), job=_make_job())

    def _pending(self, **overrides):
        data = {
            "application": self.application,
            "kind": PendingEffect.Kind.SEND_NOTIFICATION,
            "payload": {
                "template_key": "interview_invitation",
                "application_id": self.application.pk,
                "recipient_email": "ana@example.com",
                "template_data": {},
            },
            "status": PendingEffect.Status.FAILED,
            "attempts": 1,
        }
        data.update(overrides)
        return PendingEffect.objects.create(**data)

    @patch("applications.effects.send_notification", side_effect=_sent_message)
    def test_failed_effect_is_redelivered(self, mock_send):
        pending = self._pending()

        jobs.retry_pending_effects.__wrapped__()

        pending.refresh_from_db()
        self.assertEqual(pending.status, PendingEffect.Status.DELIVERED)
        self.assertEqual(pending.attempts, 2)
        self.assertIsNotNone(pending.delivered_at)
        mock_send.assert_called_once()

    @patch("applications.effects.send_notification", side_effect=_sent_message)
    def test_exhausted_effect_is_not_retried(self, mock_send):
        pending = self._pending(attempts=5)

        jobs.retry_pending_effects.__wrapped__()

        pending.refresh_from_db()
        self.assertEqual(pending.status, PendingEffect.Status.FAILED)
        mock_send.assert_not_called()

    @patch("applications.effects.send_notification", side_effect=_sent_message)
    def test_delivered_effect_is_left_alone(self, mock_send):
        self._pending(status=PendingEffect.Status.DELIVERED)

        jobs.retry_pending_effects.__wrapped__()

        mock_send.assert_not_called()

    @patch("applications.effects.send_notification", side_effect=_sent_message)
    def test_fresh_pending_effect_is_left_to_its_request(self, mock_send):
        pending = self._pending(status=PendingEffect.Status.PENDING, attempts=0)

        jobs.retry_pending_effects.__wrapped__()

        pending.refresh_from_db()
        self.assertEqual(pending.status, PendingEffect.Status.PENDING)
        self.assertEqual(pending.attempts, 0)
        mock_send.assert_not_called()

    @patch("applications.effects.send_notification", side_effect=_sent_message)
    def test_stale_pending_effect_is_delivered(self, mock_send):
        pending = self._pending(status=PendingEffect.Status.PENDING, attempts=0)
        PendingEffect.objects.filter(pk=pending.pk).update(
            created_at=timezone.now() - timedelta(minutes=10),
        )

        jobs.retry_pending_effects.__wrapped__()

        pending.refresh_from_db()
        self.assertEqual(pending.status, PendingEffect.Status.DELIVERED)
        mock_send.assert_called_once()

    @patch("applications.effects.send_notification", side_effect=RuntimeError("smtp down"))
    def test_retry_failure_records_error_and_keeps_stage(self, _mock_send):
        pending = self._pending()
        stage_before = self.application.stage

        jobs.retry_pending_effects.__wrapped__()

        pending.refresh_from_db()
        self.application.refresh_from_db()
        self.assertEqual(pending.status, PendingEffect.Status.FAILED)
        self.assertEqual(pending.attempts, 2)
        self.assertIn("smtp down", pending.last_error)
        self.assertEqual(self.application.stage, stage_before)


class ScoreUnscoredApplicationsJobTests(TestCase):
    @patch("scheduler.jobs.trigger_scoring", return_value=True)
    def test_scores_only_eligible_applications(self, mock_trigger):
        job = _make_job()
        eligible = Application.objects.create(candidate=_make_candidate(), job=job)
        Application.objects.create(
            candidate=_make_candidate(email="b@example.com"), job=job, ai_score=40,
        )
        Application.objects.create(
            candidate=_make_candidate(email="c@example.com", resume_text=""), job=job,
        )
        Application.objects.create(
            candidate=_make_candidate(email="d@example.com"),
            job=job,
            stage=Application.Stage.REJECTED,
        )

        jobs.score_unscored_applications.__wrapped__()

        scored = [c.args[0].pk for c in mock_trigger.call_args_list]
        self.assertEqual(scored, [eligible.pk])

    @patch("scheduler.jobs.trigger_scoring")
    def test_nothing_to_score(self, mock_trigger):
        jobs.score_unscored_applications.__wrapped__()
        mock_trigger.assert_not_called()


class SendInterviewRemindersJobTests(TestCase):
    @patch("interviews.services.send_notification", side_effect=_sent_message)
    def test_reminds_upcoming_interview_once(self, mock_send):
        application = Application.objects.create(
            candidate=_make_candidate(), job=_make_job(), stage=Application.Stage.INTERVIEW,
        )
        interview = Interview.objects.create(
            application=application, scheduled_at=timezone.now() + timedelta(hours=3),
        )

        jobs.send_interview_reminders.__wrapped__()
        jobs.send_interview_reminders.__wrapped__()

        interview.refresh_from_db()
        self.assertIsNotNone(interview.reminder_sent_at)
        mock_send.assert_called_once()
