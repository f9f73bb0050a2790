"""
interviews/urls.py
"""

from django.urls import path

from interviews import views

app_name = "interviews"

urlpatterns = [
    path("", views.InterviewListView.as_view(), name="list"),
    path("schedule/<int:app_pk>/", views.ScheduleInterviewView.as_view(), name="schedule"),
    path("<int:pk>/", views.InterviewDetailView.as_view(), name="detail"),
    path("<int:pk>/reschedule/", views.RescheduleInterviewView.as_view(), name="reschedule"),
    path("<int:pk>/outcome/", views.InterviewOutcomeView.as_view(), name="outcome"),
    path("<int:pk>/remind/", views.SendReminderView.as_view(), name="remind"),
]
