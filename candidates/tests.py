"""
candidates/tests.py

Covers:
  - lookup_candidate_by_email : case-insensitive lookup
  - get_or_create_candidate   : de-duplication by e-mail
  - attach_resume             : storage + text extraction, old file cleanup
  - extract_resume_text       : PDF failure handling
"""

import tempfile
from unittest.mock import MagicMock, patch

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from candidates.models import Candidate
from candidates.services import (
    attach_resume,
    extract_resume_text,
    get_or_create_candidate,
    lookup_candidate_by_email,
)


class CandidateLookupTests(TestCase):
    def setUp(self):
        self.candidate = Candidate.objects.create(full_name="Ana Pop", email="ana@example.com")

    def test_lookup_is_case_insensitive(self):
        self.assertEqual(lookup_candidate_by_email("  ANA@Example.com "), self.candidate)

    def test_lookup_blank_returns_none(self):
        self.assertIsNone(lookup_candidate_by_email(""))

    def test_get_or_create_returns_existing_and_fills_phone(self):
        found = get_or_create_candidate(full_name="Someone Else", email="Ana@example.com", phone="+40700000001")
        self.assertEqual(found, self.candidate)
        found.refresh_from_db()
        self.assertEqual(found.full_name, "Ana Pop")
        self.assertEqual(found.phone, "+40700000001")

    def test_get_or_create_creates_new(self):
        created = get_or_create_candidate(
            full_name=" Ion Popescu ", email="ION@example.com", source=Candidate.Source.MANUAL,
        )
        self.assertEqual(created.full_name, "Ion Popescu")
        self.assertEqual(created.email, "ion@example.com")
        self.assertEqual(created.source, Candidate.Source.MANUAL)


class ResumeStorageTests(TestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.override = override_settings(MEDIA_ROOT=self.temp_dir.name)
        self.override.enable()
        self.candidate = Candidate.objects.create(full_name="Ana Pop", email="ana@example.com")

    def tearDown(self):
        self.override.disable()
        self.temp_dir.cleanup()

    def test_attach_resume_stores_file_and_text(self):
        path = attach_resume(self.candidate, SimpleUploadedFile("resume.txt", b"Django developer"))

        self.candidate.refresh_from_db()
        self.assertTrue(path.startswith("resumes/"))
        self.assertEqual(self.candidate.resume_path, path)
        self.assertEqual(self.candidate.resume_text, "Django developer")
        self.assertTrue(default_storage.exists(path))

    def test_replacing_resume_deletes_old_file(self):
        first = attach_resume(self.candidate, SimpleUploadedFile("a.txt", b"first"))
        second = attach_resume(self.candidate, SimpleUploadedFile("b.txt", b"second"))

        self.assertFalse(default_storage.exists(first))
        self.assertTrue(default_storage.exists(second))

    def test_unreadable_pdf_yields_empty_text(self):
        self.assertEqual(extract_resume_text("cv.pdf", b"%PDF-1.4 not really a pdf"), "")

    @patch("candidates.services.pdfplumber.open")
    def test_pdf_text_is_extracted(self, mock_open):
        page_1, page_2 = MagicMock(), MagicMock()
        page_1.extract_text.return_value = "Ana Pop"
        page_2.extract_text.return_value = None
        mock_open.return_value.__enter__.return_value.pages = [page_1, page_2]

        self.assertEqual(extract_resume_text("CV.PDF", b"%PDF"), "Ana Pop")
