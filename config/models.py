"""
config/models.py

Lightweight DB-backed configuration.

SystemSetting — key/value store for settings staff can change at runtime
without a redeploy.
"""

from django.db import models


class SystemSetting(models.Model):
    """
    Key/value store for runtime-configurable settings.

    Known keys:
      assignee_required_stages  — comma-separated stage values, e.g.
                                  "screening,interview"; overrides
                                  settings.PIPELINE_ASSIGNEE_REQUIRED_STAGES
    """

    key = models.CharField(max_length=100, unique=True)
    value = models.TextField(blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "System Setting"
        verbose_name_plural = "System Settings"

    def __str__(self):
        return f"{self.key} = {self.value}"

    # ── Convenience helpers ───────────────────────────────────────────────────

    @classmethod
    def get(cls, key: str, default=None) -> str | None:
        try:
            return cls.objects.get(key=key).value
        except cls.DoesNotExist:
            return default

    @classmethod
    def set(cls, key: str, value) -> None:
        if isinstance(value, (list, tuple, set, frozenset)):
            value = ",".join(str(v) for v in value)
        cls.objects.update_or_create(key=key, defaults={"value": str(value)})

    @classmethod
    def get_list(cls, key: str, default: list[str] | None = None) -> list[str] | None:
        """Comma-separated value as a list; an empty value is an empty list."""
        val = cls.get(key)
        if val is None:
            return default
        return [item.strip() for item in val.split(",") if item.strip()]
