from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.urls import reverse

from config.models import SystemSetting


class SystemSettingTests(TestCase):
    def test_get_default(self):
        self.assertEqual(SystemSetting.get("missing", default="x"), "x")

    def test_set_list_and_get_list(self):
        SystemSetting.set("assignee_required_stages", ["screening", "interview"])
        self.assertEqual(SystemSetting.get("assignee_required_stages"), "screening,interview")
        self.assertEqual(SystemSetting.get_list("assignee_required_stages"), ["screening", "interview"])

    def test_empty_value_is_empty_list(self):
        SystemSetting.set("assignee_required_stages", "")
        self.assertEqual(SystemSetting.get_list("assignee_required_stages"), [])

    def test_missing_list_returns_default(self):
        self.assertIsNone(SystemSetting.get_list("assignee_required_stages"))


@override_settings(PIPELINE_ASSIGNEE_REQUIRED_STAGES=["screening", "interview"])
class SettingsViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.user = User.objects.create_user(username="priya", password="x")
        self.admin = User.objects.create_superuser(username="root", password="x", email="root@example.com")

    def test_settings_show_effective_assignee_stages(self):
        self.client.force_login(self.user)
        data = self.client.get(reverse("config:settings")).json()
        self.assertEqual(data["assignee_required_stages"], ["screening", "interview"])
        self.assertFalse(data["assignee_required_overridden"])

    def test_regular_user_cannot_change_stages(self):
        self.client.force_login(self.user)
        resp = self.client.post(reverse("config:assignee_stages"), {"stages": ["hired"]})
        self.assertEqual(resp.status_code, 403)
        self.assertIsNone(SystemSetting.get("assignee_required_stages"))

    def test_superuser_changes_stages(self):
        self.client.force_login(self.admin)
        resp = self.client.post(reverse("config:assignee_stages"), {"stages": ["offer-sent"]})
        self.assertEqual(resp.status_code, 200)
        data = self.client.get(reverse("config:settings")).json()
        self.assertEqual(data["assignee_required_stages"], ["offer-sent"])
        self.assertTrue(data["assignee_required_overridden"])

    def test_unknown_stage_rejected(self):
        self.client.force_login(self.admin)
        resp = self.client.post(reverse("config:assignee_stages"), {"stages": ["on-hold"]})
        self.assertEqual(resp.status_code, 400)

    def test_terminal_or_initial_stage_rejected(self):
        self.client.force_login(self.admin)
        for stage in ("rejected", "hired", "shortlisting"):
            with self.subTest(stage=stage):
                resp = self.client.post(
                    reverse("config:assignee_stages"), {"stages": ["interview", stage]},
                )
                self.assertEqual(resp.status_code, 400)
                self.assertIn(stage, resp.json()["error"])
        self.assertIsNone(SystemSetting.get("assignee_required_stages"))

    @override_settings(ANTHROPIC_API_KEY="", GOOGLE_REFRESH_TOKEN="")
    def test_status_json(self):
        self.client.force_login(self.user)
        data = self.client.get(reverse("config:status_json")).json()
        self.assertEqual(data["claude"]["status"], "disconnected")
        self.assertEqual(data["gmail"]["status"], "disconnected")
        self.assertEqual(data["outbox"], {"pending": 0, "delivered": 0, "failed": 0})
