from datetime import timedelta
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from applications.models import Application
from applications.stages import Stage
from assignments.models import CandidateAssignment
from assignments.services import (
    AssignmentError,
    InvalidAssignment,
    create_template,
    review_assignment,
    send_assignment,
    submit_assignment,
)
from candidates.models import Candidate
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from messaging.models import Message


def _make_application(stage=Stage.SCREENING) -> Application:
    return Application.objects.create(
        candidate=Candidate.objects.create(full_name="Ana Pop", email="ana@example.com"),
        job=JobOpening.objects.create(title="Backend Engineer"),
        stage=stage,
        assigned_to="Raj",
    )


def _sent(**kwargs):
    return Message(status=Message.Status.SENT)


def _assignment(application, **overrides) -> CandidateAssignment:
    data = {"application": application, "name": "API design"}
    data.update(overrides)
    return CandidateAssignment.objects.create(**data)


@override_settings(PUBLIC_BASE_URL="https://careers.example.com")
@patch("applications.effects.send_notification", side_effect=_sent)
class SendAssignmentTests(TestCase):
    def setUp(self):
        self.app = _make_application()
        self.template = create_template(
            "API design", instructions="Design a REST API for bookings.", deadline_days=5,
        )

    def test_template_assignment_moves_stage_and_mails_link(self, mock_send):
        assignment, outcome = send_assignment(self.app, template=self.template)

        self.app.refresh_from_db()
        self.assertTrue(outcome.changed)
        self.assertEqual(self.app.stage, Stage.ASSIGNMENT_SENT)
        self.assertEqual(assignment.name, "API design")
        self.assertEqual(assignment.instructions, "Design a REST API for bookings.")
        self.assertAlmostEqual(
            assignment.deadline_at, timezone.now() + timedelta(days=5), delta=timedelta(minutes=1),
        )

        payload = mock_send.call_args.kwargs
        self.assertEqual(payload["template_key"], TemplateKey.ASSIGNMENT_INVITATION)
        details = payload["template_data"]["details"]
        self.assertIn("Design a REST API for bookings.", details)
        self.assertIn(
            f"https://careers.example.com/assignments/submit/{assignment.submission_token}/", details,
        )

    def test_explicit_values_override_template(self, mock_send):
        assignment, _ = send_assignment(
            self.app, template=self.template, name="API design (short)", deadline_days=2,
        )
        self.assertEqual(assignment.name, "API design (short)")
        self.assertEqual(assignment.template, self.template)

    def test_second_assignment_keeps_stage(self, mock_send):
        send_assignment(self.app, template=self.template)
        _, outcome = send_assignment(self.app, name="Follow-up task")

        self.assertFalse(outcome.changed)
        self.app.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.ASSIGNMENT_SENT)
        self.assertEqual(CandidateAssignment.objects.count(), 2)
        self.assertEqual(mock_send.call_count, 2)

    def test_name_is_required_without_template(self, mock_send):
        with self.assertRaises(InvalidAssignment):
            send_assignment(self.app)
        self.assertFalse(CandidateAssignment.objects.exists())
        mock_send.assert_not_called()

    def test_hired_application_cannot_get_an_assignment(self, mock_send):
        app = Application.objects.create(
            candidate=Candidate.objects.create(full_name="Bo Li", email="bo@example.com"),
            job=self.app.job,
            stage=Stage.HIRED,
        )
        with self.assertRaises(AssignmentError):
            send_assignment(app, template=self.template)


@patch("applications.effects.send_notification", side_effect=_sent)
class SubmitAssignmentTests(TestCase):
    def test_submission_moves_stage_authored_by_candidate(self, _mock_send):
        app = _make_application(stage=Stage.ASSIGNMENT_SENT)
        assignment = _assignment(app)

        _, outcome = submit_assignment(assignment, link="https://github.com/ana/bookings")

        app.refresh_from_db()
        assignment.refresh_from_db()
        self.assertTrue(outcome.changed)
        self.assertEqual(app.stage, Stage.ASSIGNMENT_SUBMITTED)
        self.assertEqual(assignment.status, CandidateAssignment.Status.SUBMITTED)
        self.assertEqual(app.comments.get().author, "Ana Pop")

    def test_submission_after_stage_moved_on_keeps_stage(self, _mock_send):
        app = _make_application(stage=Stage.INTERVIEW)
        assignment = _assignment(app)

        _, outcome = submit_assignment(assignment, notes="Sent by e-mail")

        self.assertIsNone(outcome)
        app.refresh_from_db()
        self.assertEqual(app.stage, Stage.INTERVIEW)

    def test_empty_submission_is_refused(self, _mock_send):
        assignment = _assignment(_make_application(stage=Stage.ASSIGNMENT_SENT))
        with self.assertRaises(InvalidAssignment):
            submit_assignment(assignment, link=" ", notes="")

    def test_second_submission_is_refused(self, _mock_send):
        assignment = _assignment(_make_application(stage=Stage.ASSIGNMENT_SENT))
        submit_assignment(assignment, notes="Done")
        with self.assertRaises(AssignmentError):
            submit_assignment(assignment, notes="Done again")

    def test_rejected_application_cannot_submit(self, _mock_send):
        assignment = _assignment(_make_application(stage=Stage.REJECTED))
        with self.assertRaises(AssignmentError):
            submit_assignment(assignment, notes="Done")

    def test_late_submission_is_flagged(self, _mock_send):
        assignment = _assignment(
            _make_application(stage=Stage.ASSIGNMENT_SENT),
            deadline_at=timezone.now() - timedelta(hours=1),
        )
        submit_assignment(assignment, notes="Sorry for the delay")
        self.assertTrue(assignment.is_late)


class ReviewAssignmentTests(TestCase):
    def test_review_records_result_without_stage_change(self):
        app = _make_application(stage=Stage.ASSIGNMENT_SUBMITTED)
        assignment = _assignment(app, status=CandidateAssignment.Status.SUBMITTED)

        review_assignment(assignment, passed=True, score=85, notes="Clean design")

        assignment.refresh_from_db()
        app.refresh_from_db()
        self.assertEqual(assignment.status, CandidateAssignment.Status.PASSED)
        self.assertEqual(assignment.score, 85)
        self.assertEqual(assignment.reviewed_by, "System")
        self.assertEqual(app.stage, Stage.ASSIGNMENT_SUBMITTED)

    def test_unsubmitted_assignment_cannot_be_reviewed(self):
        assignment = _assignment(_make_application())
        with self.assertRaises(AssignmentError):
            review_assignment(assignment, passed=False)


class AssignmentViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="raj", password="test-pass-123", first_name="Raj", last_name="Kumar",
        )
        self.app = _make_application()

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_staff_sends_from_template(self, _mock_send):
        self.client.force_login(self.user)
        resp = self.client.post(reverse("assignments:templates"), {"name": "API design"})
        self.assertEqual(resp.status_code, 201)
        template_id = resp.json()["template"]["id"]

        resp = self.client.post(reverse("assignments:send", args=[self.app.pk]), {"template": template_id})
        self.assertEqual(resp.status_code, 201)
        body = resp.json()
        self.assertEqual(body["stage"], Stage.ASSIGNMENT_SENT)
        self.assertEqual(body["assignment"]["sent_by"], "Raj Kumar")

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_candidate_submits_without_login(self, _mock_send):
        Application.objects.filter(pk=self.app.pk).update(stage=Stage.ASSIGNMENT_SENT)
        assignment = _assignment(self.app)
        url = reverse("assignments:submit", args=[assignment.submission_token])

        resp = self.client.get(url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["job_title"], "Backend Engineer")

        resp = self.client.post(url, {"submission_link": "https://github.com/ana/bookings"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "submitted")
        self.app.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.ASSIGNMENT_SUBMITTED)

    def test_empty_public_submission_returns_400(self):
        assignment = _assignment(self.app)
        resp = self.client.post(reverse("assignments:submit", args=[assignment.submission_token]), {})
        self.assertEqual(resp.status_code, 400)

    def test_review_of_unsubmitted_returns_409(self):
        self.client.force_login(self.user)
        assignment = _assignment(self.app)
        resp = self.client.post(reverse("assignments:review", args=[assignment.pk]), {"passed": "on"})
        self.assertEqual(resp.status_code, 409)

    def test_staff_list_requires_login(self):
        resp = self.client.get(reverse("assignments:list"))
        self.assertEqual(resp.status_code, 302)
