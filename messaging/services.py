"""
messaging/services.py

Notification Dispatcher: templated e-mail via the Gmail API.

Public entry point:
  send_notification(template_key, application_id, recipient_email, template_data)
      — consumes a SendNotification effect; logs a Message row either way
"""

import base64
import logging
import re
from email.mime.text import MIMEText

from django.conf import settings
from django.utils import timezone

from messaging.keys import TemplateKey
from messaging.models import Message, MessageTemplate, render_placeholders
from talentflow.text_utils import first_name_of

logger = logging.getLogger(__name__)


class NotificationError(Exception):
    """Raised when a notification request cannot be attempted at all."""


# ─────────────────────────────────────────────────────────────────────────────
# GmailService
# ─────────────────────────────────────────────────────────────────────────────

class GmailService:
    """
    Send emails via the Gmail API using an OAuth2 refresh token.

    Requires google-api-python-client + google-auth.
    """

    def __init__(self):
        self._service = None
        # Cause of the most recent send failure; None after a success.
        self.last_error = None

    @property
    def service(self):
        if self._service is None:
            self._service = self._build_service()
        return self._service

    @staticmethod
    def _build_service():
        from google.auth.transport.requests import Request
        from google.oauth2.credentials import Credentials
        from googleapiclient.discovery import build

        client_id = settings.GOOGLE_CLIENT_ID
        client_secret = settings.GOOGLE_CLIENT_SECRET
        refresh_token = settings.GOOGLE_REFRESH_TOKEN

        if not all([client_id, client_secret, refresh_token]):
            raise RuntimeError("Gmail API credentials not configured (GOOGLE_CLIENT_ID/SECRET/REFRESH_TOKEN).")

        creds = Credentials(
            token=None,
            refresh_token=refresh_token,
            token_uri="https://oauth2.googleapis.com/token",
            client_id=client_id,
            client_secret=client_secret,
            scopes=["https://www.googleapis.com/auth/gmail.send"],
        )
        creds.refresh(Request())
        return build("gmail", "v1", credentials=creds, cache_discovery=False)

    def _reset_service(self) -> None:
        """Clear cached service to force credential rebuild on next access."""
        self._service = None

    def send_email(self, to: str, subject: str, body: str) -> str | None:
        """
        Send a plain-text email via Gmail API.

        Returns:
            Gmail message ID on success, or None on failure. The failure
            cause is kept in `last_error`.
        """
        self.last_error = None
        try:
            svc = self.service
        except Exception as exc:
            logger.error("Gmail service init failed: %s", exc)
            self.last_error = f"Gmail service init failed: {exc}"
            return None

        mime = MIMEText(body, "plain", "utf-8")
        mime["To"] = to
        mime["Subject"] = subject

        raw = base64.urlsafe_b64encode(mime.as_bytes()).decode("ascii")

        for attempt in range(2):
            try:
                result = svc.users().messages().send(
                    userId="me",
                    body={"raw": raw},
                ).execute()
                msg_id = result.get("id")
                logger.info("Gmail sent to %s: id=%s", to, msg_id)
                return msg_id
            except Exception as exc:
                if attempt == 0 and "401" in str(exc):
                    logger.warning("Gmail auth error, rebuilding service: %s", exc)
                    self._reset_service()
                    try:
                        svc = self.service
                    except Exception as rebuild_exc:
                        logger.error("Gmail service rebuild failed after 401")
                        self.last_error = f"Gmail service rebuild failed after 401: {rebuild_exc}"
                        return None
                    continue
                logger.error("Gmail send failed to %s: %s", to, exc)
                self.last_error = f"Gmail send failed: {exc}"
                return None
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Message resolution
# ─────────────────────────────────────────────────────────────────────────────

# Hardcoded fallbacks — used only when no active MessageTemplate exists for a key.
_FALLBACK_SUBJECTS: dict[str, str] = {
    TemplateKey.APPLICATION_RECEIVED:  "Application received: {job_title}",
    TemplateKey.SCREENING_INVITATION:  "Screening call: {job_title}",
    TemplateKey.ASSIGNMENT_INVITATION: "Your assignment for {job_title}",
    TemplateKey.INTERVIEW_INVITATION:  "Interview invitation: {job_title}",
    TemplateKey.INTERVIEW_REMINDER:    "Reminder: your interview for {job_title}",
    TemplateKey.OFFER_LETTER:          "Your offer from {company_name}",
    TemplateKey.REJECTION:             "Application update: {job_title}",
}

_FALLBACK_BODIES: dict[str, str] = {
    TemplateKey.APPLICATION_RECEIVED: (
        "Hi {first_name},\n\n"
        "Thank you for applying for the {job_title} position. We have received "
        "your application and our team will review it shortly.\n\n"
        "Your application reference is #{application_pk}.\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.SCREENING_INVITATION: (
        "Hi {first_name},\n\n"
        "Your application for {job_title} has moved to a screening call. "
        "A member of our team will contact you to schedule it.\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.ASSIGNMENT_INVITATION: (
        "Hi {first_name},\n\n"
        "As the next step for the {job_title} position we would like you to "
        "complete a short assignment.\n\n"
        "{details}\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.INTERVIEW_INVITATION: (
        "Hi {first_name},\n\n"
        "Great news! You have been selected for an interview for the {job_title} "
        "position.\n\n"
        "{details}\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.INTERVIEW_REMINDER: (
        "Hi {first_name},\n\n"
        "This is a reminder of your upcoming interview for the {job_title} "
        "position.\n\n"
        "{details}\n\n"
        "We look forward to speaking with you.\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.OFFER_LETTER: (
        "Hi {first_name},\n\n"
        "Congratulations! We are delighted to extend you an offer for the "
        "{job_title} position.\n\n"
        "{details}\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
    TemplateKey.REJECTION: (
        "Hi {first_name},\n\n"
        "Thank you for your interest in the {job_title} position and for the "
        "time you invested in the process. After careful consideration we have "
        "decided not to move forward with your application.\n\n"
        "We wish you every success in your search.\n\n"
        "Best regards,\nThe {company_name} Recruitment Team"
    ),
}


def resolve_message(template_key: str, context: dict) -> tuple[str, str]:
    """
    Return (subject, body) for a template key.

    Priority:
      1. Active MessageTemplate from the database (user-customised)
      2. Hardcoded fallback
    """
    tpl = MessageTemplate.objects.filter(template_key=template_key, is_active=True).first()
    if tpl:
        return tpl.render_subject(context), tpl.render(context)

    logger.debug("No active MessageTemplate for %s — using hardcoded fallback", template_key)
    subject = render_placeholders(_FALLBACK_SUBJECTS.get(template_key, "{job_title}"), context)
    body = render_placeholders(_FALLBACK_BODIES.get(template_key, ""), context)
    return subject, body


# ─────────────────────────────────────────────────────────────────────────────
# Dispatcher
# ─────────────────────────────────────────────────────────────────────────────

def send_notification(
    template_key: str,
    application_id: int,
    recipient_email: str,
    template_data: dict | None = None,
) -> Message:
    """
    Render and send one notification e-mail and log it as a Message.

    Delivery failures do not raise: the returned Message has status FAILED
    and an error_detail, so the caller decides whether to retry.

    Raises:
        NotificationError if there is no recipient or the key is unknown.
    """
    if not recipient_email:
        raise NotificationError(f"No recipient e-mail for application {application_id}.")
    if template_key not in TemplateKey.values:
        raise NotificationError(f"Unknown notification template '{template_key}'.")

    context = dict(template_data or {})
    context.setdefault("first_name", first_name_of(context.get("candidate_name", "")))
    context.setdefault("company_name", settings.COMPANY_NAME)

    subject, body = resolve_message(template_key, context)
    # An empty {details} block leaves a run of blank lines behind.
    body = re.sub(r"\n{3,}", "\n\n", body)
    gmail = GmailService()
    external_id = gmail.send_email(recipient_email, subject, body)
    error_detail = None
    if not external_id:
        error_detail = (gmail.last_error or "Gmail send failed")[:500]

    message = Message.objects.create(
        application_id=application_id,
        template_key=template_key,
        recipient=recipient_email,
        status=Message.Status.SENT if external_id else Message.Status.FAILED,
        external_id=external_id,
        subject=subject,
        body=body,
        sent_at=timezone.now() if external_id else None,
        error_detail=error_detail,
    )
    logger.info(
        "Notification %s: application=%s template=%s message=%s",
        message.status, application_id, template_key, message.pk,
    )
    return message
