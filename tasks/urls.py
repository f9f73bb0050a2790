"""
tasks/urls.py
"""

from django.urls import path

from tasks import views

app_name = "tasks"

urlpatterns = [
    path("", views.TaskListView.as_view(), name="list"),
    path("<int:pk>/status/", views.TaskStatusView.as_view(), name="update_status"),
]
