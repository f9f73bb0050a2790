"""
messaging/tests.py

Covers:
  - MessageTemplate.render() / render_subject() : placeholder substitution
  - resolve_message()                            : DB template vs fallback
  - send_notification()                          : Message log on success/failure
  - seed_message_templates command               : idempotent seeding
"""

from io import StringIO
from unittest.mock import patch

from django.core.management import call_command
from django.test import TestCase, override_settings

from applications.effects import execute_effect
from applications.models import Application, PendingEffect
from candidates.models import Candidate
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from messaging.models import Message, MessageTemplate
from messaging.services import GmailService, NotificationError, resolve_message, send_notification


def _make_application():
    candidate = Candidate.objects.create(full_name="Ana Pop", email="ana@example.com")
    job = JobOpening.objects.create(title="Backend Engineer")
    return Application.objects.create(candidate=candidate, job=job)


def _template_data(application, **overrides):
    data = {
        "candidate_name": "Ana Pop",
        "job_title": "Backend Engineer",
        "stage": "Interview",
        "reason": "",
        "application_pk": application.pk,
    }
    data.update(overrides)
    return data


# ── MessageTemplate ────────────────────────────────────────────────────────────

class MessageTemplateRenderTests(TestCase):
    def setUp(self):
        self.template = MessageTemplate.objects.create(
            template_key=TemplateKey.INTERVIEW_INVITATION,
            subject="Interview for {job_title}",
            body=(
                "Dear {first_name},\n\n"
                "You are invited to interview for {job_title}. "
                "Reference: #{application_pk}."
            ),
        )

    def test_render_substitutes_all_placeholders(self):
        result = self.template.render(
            {"first_name": "Ana", "job_title": "Backend Engineer", "application_pk": 42}
        )
        self.assertIn("Ana", result)
        self.assertIn("Backend Engineer", result)
        self.assertIn("#42", result)
        self.assertNotIn("{first_name}", result)
        self.assertNotIn("{job_title}", result)

    def test_render_missing_values_become_blank(self):
        result = self.template.render({})
        self.assertNotIn("{first_name}", result)
        self.assertNotIn("{application_pk}", result)

    def test_unknown_placeholders_left_untouched(self):
        self.template.body = "Hi {first_name}, see {calendar_link}"
        result = self.template.render({"first_name": "Ana"})
        self.assertEqual(result, "Hi Ana, see {calendar_link}")

    def test_render_subject(self):
        self.assertEqual(
            self.template.render_subject({"job_title": "Backend Engineer"}),
            "Interview for Backend Engineer",
        )

    def test_str_representation(self):
        self.assertEqual(str(self.template), "Interview Invitation")


# ── resolve_message ────────────────────────────────────────────────────────────

class ResolveMessageTests(TestCase):
    def test_active_template_takes_priority(self):
        MessageTemplate.objects.create(
            template_key=TemplateKey.REJECTION,
            subject="Custom {job_title}",
            body="Custom body for {first_name}",
        )
        subject, body = resolve_message(
            TemplateKey.REJECTION, {"job_title": "QA", "first_name": "Ana"}
        )
        self.assertEqual(subject, "Custom QA")
        self.assertEqual(body, "Custom body for Ana")

    def test_inactive_template_falls_back(self):
        MessageTemplate.objects.create(
            template_key=TemplateKey.REJECTION,
            subject="Custom",
            body="Custom",
            is_active=False,
        )
        subject, body = resolve_message(
            TemplateKey.REJECTION, {"job_title": "QA", "first_name": "Ana"}
        )
        self.assertEqual(subject, "Application update: QA")
        self.assertIn("Hi Ana", body)

    def test_every_key_has_a_fallback(self):
        for key in TemplateKey.values:
            subject, body = resolve_message(key, {"job_title": "QA", "first_name": "Ana"})
            self.assertTrue(subject)
            self.assertIn("Ana", body)


# ── send_notification ──────────────────────────────────────────────────────────

@override_settings(COMPANY_NAME="Acme")
class SendNotificationTests(TestCase):
    def setUp(self):
        self.application = _make_application()

    @patch("messaging.services.GmailService.send_email", return_value="gmail-123")
    def test_success_logs_sent_message(self, mock_send):
        message = send_notification(
            TemplateKey.INTERVIEW_INVITATION,
            self.application.pk,
            "ana@example.com",
            _template_data(self.application),
        )
        self.assertEqual(message.status, Message.Status.SENT)
        self.assertEqual(message.external_id, "gmail-123")
        self.assertIsNotNone(message.sent_at)
        self.assertEqual(message.application, self.application)

        to, subject, body = mock_send.call_args.args
        self.assertEqual(to, "ana@example.com")
        self.assertIn("Backend Engineer", subject)
        self.assertIn("Hi Ana,", body)
        self.assertIn("Acme", body)

    @patch("messaging.services.GmailService.send_email", return_value=None)
    def test_delivery_failure_logs_failed_message(self, _mock_send):
        message = send_notification(
            TemplateKey.REJECTION,
            self.application.pk,
            "ana@example.com",
            _template_data(self.application, reason="Position filled"),
        )
        self.assertEqual(message.status, Message.Status.FAILED)
        self.assertIsNone(message.sent_at)
        self.assertTrue(message.error_detail)
        self.assertEqual(Message.objects.count(), 1)

    @patch("messaging.services.GmailService.send_email")
    def test_missing_recipient_raises(self, mock_send):
        with self.assertRaises(NotificationError):
            send_notification(TemplateKey.REJECTION, self.application.pk, "", {})
        mock_send.assert_not_called()
        self.assertFalse(Message.objects.exists())

    @patch("messaging.services.GmailService.send_email")
    def test_unknown_template_key_raises(self, mock_send):
        with self.assertRaises(NotificationError):
            send_notification("cv_request", self.application.pk, "ana@example.com", {})
        mock_send.assert_not_called()

    @override_settings(GOOGLE_CLIENT_ID="", GOOGLE_CLIENT_SECRET="", GOOGLE_REFRESH_TOKEN="")
    def test_unconfigured_gmail_fails_without_raising(self):
        message = send_notification(
            TemplateKey.OFFER_LETTER,
            self.application.pk,
            "ana@example.com",
            _template_data(self.application),
        )
        self.assertEqual(message.status, Message.Status.FAILED)
        self.assertIn("credentials not configured", message.error_detail)

    @patch.object(GmailService, "_build_service")
    def test_gmail_error_is_kept_on_message_and_outbox(self, mock_build):
        send_call = mock_build.return_value.users.return_value.messages.return_value.send
        send_call.return_value.execute.side_effect = RuntimeError("Quota exceeded for user")
        pending = PendingEffect.objects.create(
            application=self.application,
            kind=PendingEffect.Kind.SEND_NOTIFICATION,
            payload={
                "template_key": TemplateKey.REJECTION.value,
                "application_id": self.application.pk,
                "recipient_email": "ana@example.com",
                "template_data": _template_data(self.application),
            },
        )

        self.assertFalse(execute_effect(pending))

        message = Message.objects.get()
        self.assertIn("Quota exceeded for user", message.error_detail)
        pending.refresh_from_db()
        self.assertIn("Quota exceeded for user", pending.last_error)


# ── seed_message_templates ─────────────────────────────────────────────────────

class SeedMessageTemplatesCommandTests(TestCase):
    def test_seeds_one_template_per_key(self):
        call_command("seed_message_templates", stdout=StringIO())
        self.assertEqual(MessageTemplate.objects.count(), len(TemplateKey.values))

    def test_rerun_keeps_customised_templates(self):
        call_command("seed_message_templates", stdout=StringIO())
        MessageTemplate.objects.filter(template_key=TemplateKey.REJECTION).update(body="Custom")
        call_command("seed_message_templates", stdout=StringIO())
        self.assertEqual(
            MessageTemplate.objects.get(template_key=TemplateKey.REJECTION).body, "Custom"
        )

    def test_force_overwrites(self):
        call_command("seed_message_templates", stdout=StringIO())
        MessageTemplate.objects.filter(template_key=TemplateKey.REJECTION).update(body="Custom")
        call_command("seed_message_templates", "--force", stdout=StringIO())
        self.assertNotEqual(
            MessageTemplate.objects.get(template_key=TemplateKey.REJECTION).body, "Custom"
        )
