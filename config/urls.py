"""
config/urls.py

URL patterns for the Settings section.
"""

from django.urls import path

from config import views

app_name = "config"

urlpatterns = [
    path("", views.settings_view, name="settings"),
    path("assignee-stages/", views.update_assignee_stages, name="assignee_stages"),
    path("status.json", views.status_json, name="status_json"),
]
