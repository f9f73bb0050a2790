import uuid

from django.db import models


class Offer(models.Model):
    """
    Written offer for an application. Sending it moves the application to
    Offer Sent; the candidate answers through a tokenised public link.
    """

    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        SENT = "sent", "Sent"
        ACCEPTED = "accepted", "Accepted"
        DECLINED = "declined", "Declined"
        WITHDRAWN = "withdrawn", "Withdrawn"

    application = models.ForeignKey(
        "applications.Application",
        on_delete=models.CASCADE,
        related_name="offers",
    )
    salary = models.DecimalField(max_digits=12, decimal_places=2, null=True, blank=True)
    currency = models.CharField(max_length=3, default="INR")
    start_date = models.DateField(null=True, blank=True)
    expiry_date = models.DateField(null=True, blank=True)
    terms = models.TextField(blank=True, default="")

    status = models.CharField(
        max_length=15,
        choices=Status.choices,
        default=Status.DRAFT,
        db_index=True,
    )
    response_token = models.UUIDField(default=uuid.uuid4, unique=True, editable=False)

    created_by = models.CharField(max_length=150, blank=True, default="")
    sent_by = models.CharField(max_length=150, blank=True, default="")
    sent_at = models.DateTimeField(null=True, blank=True)
    responded_at = models.DateTimeField(null=True, blank=True)
    response_notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Offer (App#{self.application_id}) [{self.status}]"

    def is_expired(self, today) -> bool:
        return self.expiry_date is not None and today > self.expiry_date

    def details_text(self, response_url: str = "") -> str:
        """Plain-text block for the {details} placeholder of the offer e-mail."""
        lines = []
        if self.salary is not None:
            lines.append(f"Salary: {self.currency} {self.salary:,.2f}")
        if self.start_date:
            lines.append(f"Start date: {self.start_date:%d %B %Y}")
        if self.expiry_date:
            lines.append(f"Please respond by: {self.expiry_date:%d %B %Y}")
        if self.terms:
            lines.append("")
            lines.append(self.terms)
        if response_url:
            lines.append("")
            lines.append(f"View and respond to your offer: {response_url}")
        return "\n".join(lines).strip()
