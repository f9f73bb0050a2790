"""
applications/urls.py
"""

from django.urls import path

from applications import views

app_name = "applications"

urlpatterns = [
    path("", views.ApplicationListView.as_view(), name="list"),
    path("apply/", views.PublicApplyView.as_view(), name="apply"),
    path("new/", views.ManualApplicationView.as_view(), name="new"),
    path("<int:pk>/", views.ApplicationDetailView.as_view(), name="detail"),
    path("<int:pk>/transition/", views.TransitionView.as_view(), name="transition"),
    path("<int:pk>/revert/", views.RevertView.as_view(), name="revert"),
    path("<int:pk>/reject/", views.RejectView.as_view(), name="reject"),
    path("<int:pk>/reassign/", views.ReassignView.as_view(), name="reassign"),
    path("<int:pk>/notes/", views.AddNoteView.as_view(), name="add_note"),
    path("<int:pk>/toggle-hot/", views.ToggleHotApplicantView.as_view(), name="toggle_hot"),
]
