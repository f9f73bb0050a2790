from django.db import models


class TemplateKey(models.TextChoices):
    """Outbound notification types, one template per key."""

    APPLICATION_RECEIVED = "application_received", "Application Received"
    SCREENING_INVITATION = "screening_invitation", "Screening Invitation"
    ASSIGNMENT_INVITATION = "assignment_invitation", "Assignment Invitation"
    INTERVIEW_INVITATION = "interview_invitation", "Interview Invitation"
    INTERVIEW_REMINDER = "interview_reminder", "Interview Reminder"
    OFFER_LETTER = "offer_letter", "Offer Letter"
    REJECTION = "rejection", "Rejection"
