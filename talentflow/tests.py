"""
talentflow/tests.py

Covers:
  - text_utils helpers
  - PipelineBoardView : per-stage counts, cache use, job filter
"""

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import SimpleTestCase, TestCase
from django.urls import reverse

from applications.models import Application
from candidates.models import Candidate
from jobs.models import JobOpening
from talentflow.constants import PIPELINE_COUNTS_CACHE_KEY
from talentflow.text_utils import first_name_of, normalize_email, strip_json_fence


class StripJsonFenceTests(SimpleTestCase):
    def test_strips_json_fenced_block(self):
        raw = '```json\n{"key": "value"}\n```'
        self.assertEqual(strip_json_fence(raw), '{"key": "value"}')

    def test_strips_plain_fenced_block(self):
        raw = '```\n{"key": "value"}\n```'
        self.assertEqual(strip_json_fence(raw), '{"key": "value"}')

    def test_no_fence_returns_as_is(self):
        self.assertEqual(strip_json_fence('  {"a": 1} '), '{"a": 1}')

    def test_none_returns_empty(self):
        self.assertEqual(strip_json_fence(None), "")


class NameAndEmailHelperTests(SimpleTestCase):
    def test_first_name_of(self):
        self.assertEqual(first_name_of("Ana Maria Pop"), "Ana")
        self.assertEqual(first_name_of("   "), "")
        self.assertEqual(first_name_of(None), "")

    def test_normalize_email(self):
        self.assertEqual(normalize_email("  Ana@Example.COM "), "ana@example.com")
        self.assertEqual(normalize_email(None), "")


class PipelineBoardViewTests(TestCase):
    def setUp(self):
        cache.delete(PIPELINE_COUNTS_CACHE_KEY)
        user = get_user_model().objects.create_user(username="priya", password="test-pass-123")
        self.client.force_login(user)
        self.job = JobOpening.objects.create(title="Backend Engineer")
        other_job = JobOpening.objects.create(title="Designer")
        for i, (job, stage) in enumerate([
            (self.job, Application.Stage.SHORTLISTING),
            (self.job, Application.Stage.INTERVIEW),
            (other_job, Application.Stage.INTERVIEW),
            (other_job, Application.Stage.REJECTED),
        ]):
            candidate = Candidate.objects.create(full_name=f"C {i}", email=f"c{i}@example.com")
            Application.objects.create(candidate=candidate, job=job, stage=stage)

    def _counts(self, resp):
        return {c["stage"]: c["count"] for c in resp.json()["columns"]}

    def test_counts_every_stage(self):
        resp = self.client.get(reverse("pipeline"))
        counts = self._counts(resp)
        self.assertEqual(len(counts), 9)
        self.assertEqual(counts["interview"], 2)
        self.assertEqual(counts["rejected"], 1)
        self.assertEqual(counts["hired"], 0)
        self.assertEqual(resp.json()["total"], 4)

    def test_unfiltered_board_is_cached(self):
        self.client.get(reverse("pipeline"))
        self.assertIsNotNone(cache.get(PIPELINE_COUNTS_CACHE_KEY))

    def test_job_filter(self):
        resp = self.client.get(reverse("pipeline"), {"job": self.job.pk})
        counts = self._counts(resp)
        self.assertEqual(counts["interview"], 1)
        self.assertEqual(counts["rejected"], 0)
        self.assertEqual(resp.json()["total"], 2)
