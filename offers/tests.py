from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse
from django.utils import timezone

from applications.models import Application, Comment
from applications.stages import Stage
from candidates.models import Candidate
from jobs.models import JobOpening
from messaging.keys import TemplateKey
from messaging.models import Message
from offers.models import Offer
from offers.services import OfferError, create_offer, respond_to_offer, send_offer, withdraw_offer


def _make_application(stage=Stage.INTERVIEW) -> Application:
    return Application.objects.create(
        candidate=Candidate.objects.create(full_name="Ana Pop", email="ana@example.com"),
        job=JobOpening.objects.create(title="Backend Engineer"),
        stage=stage,
        assigned_to="Raj",
    )


def _sent(**kwargs):
    return Message(status=Message.Status.SENT)


@override_settings(PUBLIC_BASE_URL="https://careers.example.com/")
@patch("applications.effects.send_notification", side_effect=_sent)
class SendOfferTests(TestCase):
    def setUp(self):
        self.app = _make_application()
        self.offer = create_offer(self.app, salary=Decimal("1800000"), terms="Hybrid, 3 days on site")

    def test_first_offer_moves_stage_and_mails_link(self, mock_send):
        outcome = send_offer(self.offer)

        self.app.refresh_from_db()
        self.offer.refresh_from_db()
        self.assertTrue(outcome.changed)
        self.assertEqual(self.app.stage, Stage.OFFER_SENT)
        self.assertEqual(self.offer.status, Offer.Status.SENT)
        self.assertIsNotNone(self.offer.sent_at)

        payload = mock_send.call_args.kwargs
        self.assertEqual(payload["template_key"], TemplateKey.OFFER_LETTER)
        details = payload["template_data"]["details"]
        self.assertIn("INR 1,800,000.00", details)
        self.assertIn("Hybrid, 3 days on site", details)
        self.assertIn(f"https://careers.example.com/offers/respond/{self.offer.response_token}/", details)

    def test_revised_offer_withdraws_previous_one(self, mock_send):
        send_offer(self.offer)
        revised = create_offer(self.app, salary=Decimal("2000000"))

        outcome = send_offer(revised)

        self.assertFalse(outcome.changed)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, Offer.Status.WITHDRAWN)
        self.assertEqual(mock_send.call_count, 2)
        self.assertEqual(mock_send.call_args.kwargs["template_key"], TemplateKey.OFFER_LETTER)

    def test_sent_offer_cannot_be_sent_again(self, mock_send):
        send_offer(self.offer)
        with self.assertRaises(OfferError):
            send_offer(self.offer)

    def test_offer_after_acceptance_is_refused(self, mock_send):
        Application.objects.filter(pk=self.app.pk).update(stage=Stage.OFFER_ACCEPTED)
        self.offer.application.refresh_from_db()
        with self.assertRaises(OfferError):
            send_offer(self.offer)
        self.offer.refresh_from_db()
        self.assertEqual(self.offer.status, Offer.Status.DRAFT)

    def test_closed_application_cannot_get_an_offer(self, mock_send):
        rejected = Application.objects.create(
            candidate=Candidate.objects.create(full_name="Bo Li", email="bo@example.com"),
            job=self.app.job,
            stage=Stage.REJECTED,
        )
        with self.assertRaises(OfferError):
            create_offer(rejected)


@patch("applications.effects.send_notification", side_effect=_sent)
class RespondToOfferTests(TestCase):
    def setUp(self):
        self.app = _make_application()
        self.offer = create_offer(self.app, salary=Decimal("1800000"))
        with patch("applications.effects.send_notification", side_effect=_sent):
            send_offer(self.offer)

    def test_accept_moves_stage_authored_by_candidate(self, _mock_send):
        respond_to_offer(self.offer, accept=True, notes="Happy to join")

        self.app.refresh_from_db()
        self.offer.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.OFFER_ACCEPTED)
        self.assertEqual(self.offer.status, Offer.Status.ACCEPTED)
        self.assertIsNotNone(self.offer.responded_at)
        latest = self.app.comments.order_by("-created_at", "-id").first()
        self.assertEqual(latest.author, "Ana Pop")
        self.assertIn("Happy to join", latest.text)

    def test_decline_keeps_stage_and_adds_note(self, _mock_send):
        respond_to_offer(self.offer, accept=False, notes="Counter offer elsewhere")

        self.app.refresh_from_db()
        self.offer.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.OFFER_SENT)
        self.assertEqual(self.offer.status, Offer.Status.DECLINED)
        note = self.app.comments.get(kind=Comment.Kind.NOTE)
        self.assertEqual(note.author, "Ana Pop")
        self.assertIn("Counter offer elsewhere", note.text)

    def test_second_response_is_refused(self, _mock_send):
        respond_to_offer(self.offer, accept=False)
        with self.assertRaises(OfferError):
            respond_to_offer(self.offer, accept=True)

    def test_expired_offer_is_refused(self, _mock_send):
        self.offer.expiry_date = timezone.localdate() - timedelta(days=1)
        self.offer.save()
        with self.assertRaises(OfferError):
            respond_to_offer(self.offer, accept=True)
        self.app.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.OFFER_SENT)

    def test_withdrawn_offer_is_refused(self, _mock_send):
        withdraw_offer(self.offer)
        with self.assertRaises(OfferError):
            respond_to_offer(self.offer, accept=True)


class OfferViewTests(TestCase):
    def setUp(self):
        self.user = get_user_model().objects.create_user(
            username="raj", password="test-pass-123", first_name="Raj", last_name="Kumar",
        )
        self.app = _make_application()

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_staff_drafts_and_sends(self, _mock_send):
        self.client.force_login(self.user)
        resp = self.client.post(
            reverse("offers:new", args=[self.app.pk]),
            {"salary": "1800000", "currency": "inr", "terms": "Full time"},
        )
        self.assertEqual(resp.status_code, 201)
        offer = resp.json()["offer"]
        self.assertEqual(offer["status"], "draft")
        self.assertEqual(offer["currency"], "INR")
        self.assertEqual(offer["created_by"], "Raj Kumar")

        resp = self.client.post(reverse("offers:send", args=[offer["id"]]))
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["stage"], Stage.OFFER_SENT)
        self.assertTrue(resp.json()["stage_changed"])

    def test_expiry_after_start_date_is_rejected(self):
        self.client.force_login(self.user)
        resp = self.client.post(
            reverse("offers:new", args=[self.app.pk]),
            {"start_date": "2030-01-01", "expiry_date": "2030-02-01"},
        )
        self.assertEqual(resp.status_code, 400)
        self.assertIn("expiry_date", resp.json()["fields"])

    @patch("applications.effects.send_notification", side_effect=_sent)
    def test_candidate_accepts_without_login(self, _mock_send):
        offer = create_offer(self.app)
        send_offer(offer)
        url = reverse("offers:respond", args=[offer.response_token])

        resp = self.client.get(url)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["job_title"], "Backend Engineer")
        self.assertNotIn("created_by", resp.json())

        resp = self.client.post(url, {"decision": "accept"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["status"], "accepted")
        self.app.refresh_from_db()
        self.assertEqual(self.app.stage, Stage.OFFER_ACCEPTED)

    def test_draft_offer_response_returns_409(self):
        offer = create_offer(self.app)
        resp = self.client.post(
            reverse("offers:respond", args=[offer.response_token]), {"decision": "accept"},
        )
        self.assertEqual(resp.status_code, 409)

    def test_invalid_decision_returns_400(self):
        offer = create_offer(self.app)
        resp = self.client.post(
            reverse("offers:respond", args=[offer.response_token]), {"decision": "maybe"},
        )
        self.assertEqual(resp.status_code, 400)

    def test_staff_list_requires_login(self):
        resp = self.client.get(reverse("offers:list"))
        self.assertEqual(resp.status_code, 302)
