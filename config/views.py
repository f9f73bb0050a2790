"""
config/views.py

Settings API: pipeline configuration and service status.

  GET  /settings/                  — effective pipeline configuration
  POST /settings/assignee-stages/  — replace the assignee-required stage list
                                     (super admins only)
  GET  /settings/status.json       — integration + outbox + scheduler status
"""

import logging

from django.conf import settings
from django.contrib.auth.decorators import login_required
from django.db.models import Count
from django.http import JsonResponse
from django.views.decorators.http import require_POST

from applications.models import PendingEffect
from applications.services import ASSIGNEE_REQUIRED_SETTING, can_require_assignee, load_policy
from applications.stages import PIPELINE_ORDER, parse_stage
from config.models import SystemSetting

logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Pipeline settings
# ─────────────────────────────────────────────────────────────────────────────


@login_required
def settings_view(request):
    policy = load_policy()
    return JsonResponse(
        {
            "stages": [{"value": s.value, "label": s.label} for s in PIPELINE_ORDER],
            "assignee_required_stages": [
                s.value for s in PIPELINE_ORDER if s in policy.assignee_required
            ],
            "assignee_required_overridden": SystemSetting.get(ASSIGNEE_REQUIRED_SETTING) is not None,
            "company_name": settings.COMPANY_NAME,
        }
    )


@login_required
@require_POST
def update_assignee_stages(request):
    if not request.user.is_superuser:
        return JsonResponse({"error": "Only a super admin can change pipeline settings."}, status=403)

    values = [v.strip() for v in request.POST.getlist("stages") if v.strip()]
    unknown = [v for v in values if parse_stage(v) is None]
    if unknown:
        return JsonResponse({"error": f"Unknown stage(s): {', '.join(unknown)}"}, status=400)

    not_allowed = [v for v in values if not can_require_assignee(parse_stage(v))]
    if not_allowed:
        return JsonResponse(
            {"error": f"These stages cannot require an assignee: {', '.join(not_allowed)}"},
            status=400,
        )

    SystemSetting.set(ASSIGNEE_REQUIRED_SETTING, values)
    logger.info("Assignee-required stages set to %s by %s", values, request.user.get_username())
    return JsonResponse({"assignee_required_stages": values})


# ─────────────────────────────────────────────────────────────────────────────
# Live status API
# ─────────────────────────────────────────────────────────────────────────────


@login_required
def status_json(request):
    """Return a JSON snapshot of integration settings, the outbox and the scheduler."""
    return JsonResponse(
        {
            "gmail": _check_gmail(),
            "claude": _check_claude(),
            "outbox": _check_outbox(),
            "scheduler": _check_scheduler(),
        }
    )


# ── Private checkers ──────────────────────────────────────────────────────────


def _check_gmail() -> dict:
    configured = all(
        [settings.GOOGLE_CLIENT_ID, settings.GOOGLE_CLIENT_SECRET, settings.GOOGLE_REFRESH_TOKEN]
    )
    if not configured:
        return {"status": "disconnected", "detail": "GOOGLE_CLIENT_ID/SECRET/REFRESH_TOKEN not set."}
    return {"status": "configured"}


def _check_claude() -> dict:
    if not settings.ANTHROPIC_API_KEY:
        return {"status": "disconnected", "detail": "ANTHROPIC_API_KEY not set."}
    return {"status": "configured", "model": settings.ANTHROPIC_MODEL}


def _check_outbox() -> dict:
    counts = dict(
        PendingEffect.objects.values_list("status").annotate(n=Count("id")).order_by()
    )
    return {status: counts.get(status, 0) for status in PendingEffect.Status.values}


def _check_scheduler() -> dict:
    jobs_info = []
    try:
        from django_apscheduler.models import DjangoJob

        for job in DjangoJob.objects.all().order_by("id"):
            last_exec = job.djangojobexecution_set.order_by("-run_time").first()
            jobs_info.append(
                {
                    "id": job.id,
                    "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                    "last_run_time": last_exec.run_time.isoformat() if last_exec else None,
                    "last_status": last_exec.status if last_exec else None,
                }
            )
    except Exception as exc:
        logger.warning("Could not fetch scheduler jobs: %s", exc)
        return {"status": "error", "detail": str(exc), "jobs": []}

    return {"status": "ok", "jobs": jobs_info}
