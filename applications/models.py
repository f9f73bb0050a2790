from django.db import models
from django.utils import timezone

from applications.stages import INITIAL_STAGE, Stage
from applications.transitions import ApplicationState, CommentEntry, CommentKind


class Application(models.Model):
    """
    Core pipeline entity. Links a Candidate to a JobOpening and owns the
    hiring stage. A candidate may apply to several jobs, once per job.

    `stage` is written only by applications.services through the stage
    engine in applications.transitions; never assign it directly.
    """

    Stage = Stage

    candidate = models.ForeignKey(
        "candidates.Candidate",
        on_delete=models.CASCADE,
        related_name="applications",
    )
    job = models.ForeignKey(
        "jobs.JobOpening",
        on_delete=models.CASCADE,
        related_name="applications",
    )
    stage = models.CharField(
        max_length=30,
        choices=Stage.choices,
        default=INITIAL_STAGE,
        db_index=True,
    )
    stage_entered_at = models.DateTimeField(default=timezone.now)

    # Advisory scoring (null until the scoring job has run)
    ai_score = models.PositiveSmallIntegerField(null=True, blank=True)
    ai_analysis = models.JSONField(null=True, blank=True)

    is_hot_applicant = models.BooleanField(default=False, db_index=True)

    # Staff member responsible for the next action
    assigned_to = models.CharField(max_length=150, null=True, blank=True, db_index=True)

    # Populated only on entry into REJECTED
    rejection_reason = models.TextField(null=True, blank=True)
    rejection_date = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Application"
        verbose_name_plural = "Applications"
        unique_together = [("candidate", "job")]

    def __str__(self) -> str:
        return f"{self.candidate} → {self.job} [{self.stage}]"

    # ── Derived values ────────────────────────────────────────────────────────

    @property
    def days_in_stage(self) -> int:
        return (timezone.now() - self.stage_entered_at).days

    @property
    def total_days(self) -> int:
        return (timezone.now() - self.created_at).days

    # ── Engine bridge ─────────────────────────────────────────────────────────

    def to_state(self, *, with_comments: bool = False) -> ApplicationState:
        """
        Snapshot for the stage engine. Comments are only loaded on request;
        the services persist the appended entry themselves.
        """
        comments = ()
        if with_comments:
            comments = tuple(c.to_entry() for c in self.comments.order_by("created_at", "id"))
        return ApplicationState(
            id=self.pk,
            stage=self.stage,
            candidate_name=self.candidate.full_name,
            candidate_email=self.candidate.email,
            job_title=self.job.title,
            assigned_to=self.assigned_to,
            rejection_reason=self.rejection_reason,
            rejection_date=self.rejection_date,
            stage_entered_at=self.stage_entered_at,
            comments=comments,
        )


class Comment(models.Model):
    """
    Append-only timeline entry. Every stage change writes exactly one row;
    reassignments and free-text notes are recorded here too, distinguished
    by `kind`.
    """

    Kind = CommentKind

    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name="comments",
    )
    kind = models.CharField(max_length=20, choices=CommentKind.choices, db_index=True)
    text = models.TextField()
    author = models.CharField(max_length=150)
    stage = models.CharField(max_length=30, choices=Stage.choices)
    from_stage = models.CharField(max_length=30, choices=Stage.choices, blank=True, default="")
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Comment"
        verbose_name_plural = "Comments"

    def __str__(self) -> str:
        return f"App#{self.application_id} [{self.kind}] {self.author}: {self.text[:40]}"

    @classmethod
    def from_entry(cls, application: Application, entry: CommentEntry) -> "Comment":
        return cls(
            application=application,
            kind=entry.kind,
            text=entry.text,
            author=entry.author,
            stage=entry.stage,
            from_stage=entry.from_stage,
            created_at=entry.timestamp,
        )

    def to_entry(self) -> CommentEntry:
        return CommentEntry(
            kind=self.kind,
            text=self.text,
            author=self.author,
            stage=self.stage,
            from_stage=self.from_stage,
            timestamp=self.created_at,
        )


class PendingEffect(models.Model):
    """
    Outbox row for one effect descriptor returned by the stage engine.
    Written in the same transaction as the stage change; delivered after
    commit and retried by scheduler.jobs.retry_pending_effects.
    """

    class Kind(models.TextChoices):
        SEND_NOTIFICATION = "send_notification", "Send Notification"
        CREATE_TASK = "create_task", "Create Task"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        DELIVERED = "delivered", "Delivered"
        FAILED = "failed", "Failed"

    application = models.ForeignKey(
        Application,
        on_delete=models.CASCADE,
        related_name="pending_effects",
    )
    kind = models.CharField(max_length=30, choices=Kind.choices)
    payload = models.JSONField()
    status = models.CharField(
        max_length=10,
        choices=Status.choices,
        default=Status.PENDING,
        db_index=True,
    )
    attempts = models.PositiveSmallIntegerField(default=0)
    last_error = models.CharField(max_length=500, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name = "Pending Effect"
        verbose_name_plural = "Pending Effects"

    def __str__(self) -> str:
        return f"App#{self.application_id}: {self.kind} [{self.status}]"
