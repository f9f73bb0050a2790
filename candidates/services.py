"""
candidates/services.py

Public services:
  lookup_candidate_by_email(email)               → Candidate | None
  get_or_create_candidate(full_name, email, ...) → Candidate
  attach_resume(candidate, uploaded_file)        → stored path

Resumes go through Django's default_storage (the file/object store) and
their text is extracted once with pdfplumber for scoring.
"""

import io
import logging
import uuid

import pdfplumber
from django.core.files.storage import default_storage

from candidates.models import Candidate
from talentflow.constants import RESUME_MAX_PAGES
from talentflow.text_utils import normalize_email

logger = logging.getLogger(__name__)


def lookup_candidate_by_email(email: str) -> Candidate | None:
    """Case-insensitive email lookup."""
    email = normalize_email(email)
    if not email:
        return None
    return Candidate.objects.filter(email__iexact=email).first()


def get_or_create_candidate(
    *,
    full_name: str,
    email: str,
    phone: str = "",
    source: str = Candidate.Source.PUBLIC_FORM,
) -> Candidate:
    """
    Return the existing candidate for `email`, or create one.

    An existing record keeps its name; a missing phone number is filled in.
    """
    existing = lookup_candidate_by_email(email)
    if existing is not None:
        if phone and not existing.phone:
            existing.phone = phone.strip()
            existing.save(update_fields=["phone", "updated_at"])
        return existing

    candidate = Candidate.objects.create(
        full_name=(full_name or "").strip(),
        email=normalize_email(email),
        phone=(phone or "").strip(),
        source=source,
    )
    logger.info("Candidate created: candidate=%s source=%s", candidate.pk, source)
    return candidate


def attach_resume(candidate: Candidate, uploaded_file) -> str:
    """
    Store a resume and record its path and extracted text on the candidate.
    The previous resume file is deleted from storage.
    """
    content = uploaded_file.read()
    uploaded_file.seek(0)

    unique_name = f"resumes/{uuid.uuid4().hex[:8]}_{uploaded_file.name}"
    saved_path = default_storage.save(unique_name, uploaded_file)

    old_path = candidate.resume_path
    candidate.resume_path = saved_path
    candidate.resume_text = extract_resume_text(uploaded_file.name, content)
    candidate.save(update_fields=["resume_path", "resume_text", "updated_at"])

    if old_path and old_path != saved_path:
        try:
            if default_storage.exists(old_path):
                default_storage.delete(old_path)
        except OSError as exc:
            logger.warning("Could not delete old resume %s: %s", old_path, exc)

    logger.info(
        "Resume stored: candidate=%s path=%s text_chars=%s",
        candidate.pk, saved_path, len(candidate.resume_text or ""),
    )
    return saved_path


def extract_resume_text(file_name: str, content: bytes) -> str:
    """
    Plain text of a resume. PDFs are read with pdfplumber (first
    RESUME_MAX_PAGES pages); other files are decoded as UTF-8 text.
    Returns an empty string when nothing can be extracted.
    """
    if file_name.lower().endswith(".pdf"):
        return _extract_pdf_text(content)
    return content.decode("utf-8", errors="ignore").strip()


def _extract_pdf_text(content: bytes) -> str:
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            parts = []
            for page in pdf.pages[:RESUME_MAX_PAGES]:
                text = page.extract_text()
                if text:
                    parts.append(text)
            return "\n".join(parts)
    except Exception as exc:
        logger.warning("pdfplumber extraction failed for resume: %s", exc)
        return ""
