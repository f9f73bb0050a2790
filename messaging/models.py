from django.db import models

from messaging.keys import TemplateKey


class MessageTemplate(models.Model):
    """
    Editable subject/body for every outbound notification type. Used by
    messaging.services as the primary source of message text; falls back to
    hardcoded defaults if no active template exists for a key.

    Available placeholders (subject and body):
      {candidate_name}   — candidate's full name
      {first_name}       — candidate's first name
      {job_title}        — job opening title
      {stage}            — stage label, e.g. "Interview"
      {reason}           — reason recorded with the stage change
      {application_pk}   — application reference number
      {details}          — record-specific details (interview time, offer terms,
                           assignment instructions and links)
      {company_name}     — settings.COMPANY_NAME
    """

    TemplateKey = TemplateKey

    template_key = models.CharField(max_length=30, choices=TemplateKey.choices, unique=True)
    subject = models.CharField(max_length=255)
    body = models.TextField()

    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["template_key"]
        verbose_name = "Message Template"
        verbose_name_plural = "Message Templates"

    def __str__(self) -> str:
        return self.get_template_key_display()

    PLACEHOLDERS = (
        "candidate_name",
        "first_name",
        "job_title",
        "stage",
        "reason",
        "application_pk",
        "details",
        "company_name",
    )

    def render(self, context: dict) -> str:
        """Return body with all known placeholders substituted."""
        return render_placeholders(self.body, context)

    def render_subject(self, context: dict) -> str:
        return render_placeholders(self.subject, context)


def render_placeholders(text: str, context: dict) -> str:
    """
    Substitute {name} placeholders from `context`. Unknown placeholders and
    stray braces are left untouched, unlike str.format.
    """
    result = text or ""
    for name in MessageTemplate.PLACEHOLDERS:
        value = context.get(name)
        result = result.replace("{" + name + "}", "" if value is None else str(value))
    return result


class Message(models.Model):
    """
    Every outbound e-mail sent (or attempted) to a candidate. Full audit
    trail of notifications across the pipeline.
    """

    class Status(models.TextChoices):
        SENT = "sent", "Sent"
        FAILED = "failed", "Failed"

    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.CASCADE,
        related_name="messages",
    )
    template_key = models.CharField(max_length=30, choices=TemplateKey.choices)
    recipient = models.CharField(max_length=254)
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        db_index=True,
    )

    # Gmail message ID when the send succeeded
    external_id = models.CharField(max_length=255, null=True, blank=True)

    subject = models.CharField(max_length=255)
    body = models.TextField()
    sent_at = models.DateTimeField(null=True, blank=True)
    error_detail = models.CharField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name = "Message"
        verbose_name_plural = "Messages"

    def __str__(self) -> str:
        return f"{self.template_key} [{self.status}] → {self.recipient}"
