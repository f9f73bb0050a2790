"""
talentflow/views.py

Pipeline board: application counts per stage, for the kanban header.
"""

from django.contrib.auth.mixins import LoginRequiredMixin
from django.core.cache import cache
from django.db.models import Count
from django.http import JsonResponse
from django.views import View

from applications.models import Application
from applications.stages import PIPELINE_ORDER, Stage
from talentflow.constants import PIPELINE_COUNTS_CACHE_KEY, PIPELINE_COUNTS_CACHE_TTL


def stage_counts(job_id=None) -> dict[str, int]:
    qs = Application.objects.all()
    if job_id:
        qs = qs.filter(job_id=job_id)
    raw = dict(qs.values_list("stage").annotate(n=Count("id")).order_by())
    return {stage.value: raw.get(stage.value, 0) for stage in (*PIPELINE_ORDER, Stage.REJECTED)}


class PipelineBoardView(LoginRequiredMixin, View):
    """
    GET /pipeline/?job=<pk>

    The unfiltered board is cached under PIPELINE_COUNTS_CACHE_KEY and
    invalidated on every stage change; per-job boards are computed live.
    """

    def get(self, request):
        job_id = request.GET.get("job")
        if job_id:
            counts = stage_counts(job_id)
        else:
            counts = cache.get(PIPELINE_COUNTS_CACHE_KEY)
            if counts is None:
                counts = stage_counts()
                cache.set(PIPELINE_COUNTS_CACHE_KEY, counts, PIPELINE_COUNTS_CACHE_TTL)

        columns = [
            {"stage": stage.value, "label": stage.label, "count": counts.get(stage.value, 0)}
            for stage in (*PIPELINE_ORDER, Stage.REJECTED)
        ]
        return JsonResponse({"columns": columns, "total": sum(counts.values())})
