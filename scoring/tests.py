import json
from unittest.mock import MagicMock, patch

import anthropic
from django.test import TestCase, override_settings

from applications.models import Application
from candidates.models import Candidate
from jobs.models import JobOpening
from scoring.services import ClaudeService, ClaudeServiceError, _parse_claude_json, trigger_scoring


def _make_application(resume_text="Python developer, 6 years of Django.") -> Application:
    candidate = Candidate.objects.create(
        full_name="Ana Pop",
        email="ana@example.com",
        resume_text=resume_text,
    )
    job = JobOpening.objects.create(title="Backend Engineer", description="Django, PostgreSQL")
    return Application.objects.create(candidate=candidate, job=job)


class ClaudeScoringTests(TestCase):
    @patch.object(ClaudeService, "_send_message")
    def test_score_application_stores_score_and_analysis(self, mock_send_message):
        mock_send_message.return_value = json.dumps(
            {
                "score": 82,
                "summary": "Strong Django background",
                "strengths": ["Django"],
                "concerns": ["No Kubernetes"],
            }
        )
        application = _make_application()

        score = ClaudeService().score_application(application)

        self.assertEqual(score, 82)
        application.refresh_from_db()
        self.assertEqual(application.ai_score, 82)
        self.assertEqual(application.ai_analysis["strengths"], ["Django"])
        self.assertEqual(application.stage, Application.Stage.SHORTLISTING)

        user_message = mock_send_message.call_args.kwargs["user"]
        self.assertIn("Backend Engineer", user_message)
        self.assertIn("6 years of Django", user_message)

    @patch.object(ClaudeService, "_send_message")
    def test_score_is_clamped(self, mock_send_message):
        mock_send_message.return_value = '{"score": 140, "summary": "x"}'
        application = _make_application()
        self.assertEqual(ClaudeService().score_application(application), 100)

    @patch.object(ClaudeService, "_send_message")
    def test_fenced_and_malformed_json_is_repaired(self, mock_send_message):
        mock_send_message.return_value = '```json\n{"score": 55, "summary": "ok",}\n```'
        application = _make_application()
        self.assertEqual(ClaudeService().score_application(application), 55)

    @patch.object(ClaudeService, "_send_message")
    def test_missing_score_raises(self, mock_send_message):
        mock_send_message.return_value = '{"summary": "no score"}'
        application = _make_application()
        with self.assertRaises(ClaudeServiceError):
            ClaudeService().score_application(application)

    @patch.object(ClaudeService, "_send_message")
    def test_missing_resume_raises_without_calling_claude(self, mock_send_message):
        application = _make_application(resume_text="")
        with self.assertRaises(ClaudeServiceError):
            ClaudeService().score_application(application)
        mock_send_message.assert_not_called()

    def test_api_error_is_wrapped(self):
        client = MagicMock()
        client.messages.create.side_effect = anthropic.APIConnectionError(request=MagicMock())
        with self.assertRaises(ClaudeServiceError):
            ClaudeService(client=client)._send_message(model="m", system="s", user="u")

    @override_settings(ANTHROPIC_API_KEY="")
    def test_missing_api_key_raises(self):
        with self.assertRaises(ClaudeServiceError):
            ClaudeService().client

    def test_parse_rejects_non_object(self):
        with self.assertRaises(ClaudeServiceError):
            _parse_claude_json("[1, 2, 3]")


class TriggerScoringTests(TestCase):
    @patch.object(ClaudeService, "score_application", side_effect=ClaudeServiceError("boom"))
    def test_errors_are_swallowed(self, _mock_score):
        application = _make_application()
        self.assertFalse(trigger_scoring(application))

    @patch.object(ClaudeService, "score_application", return_value=70)
    def test_success_returns_true(self, _mock_score):
        application = _make_application()
        self.assertTrue(trigger_scoring(application))
