"""
assignments/urls.py
"""

from django.urls import path

from assignments import views

app_name = "assignments"

urlpatterns = [
    path("", views.AssignmentListView.as_view(), name="list"),
    path("templates/", views.TemplateListView.as_view(), name="templates"),
    path("send/<int:app_pk>/", views.SendAssignmentView.as_view(), name="send"),
    path("submit/<uuid:token>/", views.PublicSubmissionView.as_view(), name="submit"),
    path("<int:pk>/submit/", views.StaffSubmissionView.as_view(), name="staff_submit"),
    path("<int:pk>/review/", views.ReviewAssignmentView.as_view(), name="review"),
]
