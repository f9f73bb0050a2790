"""
talentflow/urls.py

Root URL configuration.
"""

from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path

from talentflow.views import PipelineBoardView

urlpatterns = [
    # ── Admin ──────────────────────────────────────────────────────────────────
    path("admin/", admin.site.urls),

    # ── Pipeline board ─────────────────────────────────────────────────────────
    path("pipeline/", PipelineBoardView.as_view(), name="pipeline"),

    # ── App routes ─────────────────────────────────────────────────────────────
    path("applications/", include("applications.urls", namespace="applications")),
    path("tasks/", include("tasks.urls", namespace="tasks")),
    path("interviews/", include("interviews.urls", namespace="interviews")),
    path("assignments/", include("assignments.urls", namespace="assignments")),
    path("offers/", include("offers.urls", namespace="offers")),

    # ── Settings ───────────────────────────────────────────────────────────────
    path("settings/", include("config.urls", namespace="config")),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
