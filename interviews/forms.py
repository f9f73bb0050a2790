from django import forms

from interviews.models import Interview
from interviews.services import OUTCOME_STATUSES


class ScheduleInterviewForm(forms.Form):
    scheduled_at = forms.DateTimeField()
    title = forms.CharField(required=False, max_length=200)
    duration_minutes = forms.IntegerField(required=False, min_value=15, max_value=480)
    location_type = forms.ChoiceField(
        required=False,
        choices=Interview.LocationType.choices,
    )
    meeting_link = forms.URLField(required=False)
    address = forms.CharField(required=False, max_length=300)
    interviewer_name = forms.CharField(required=False, max_length=150)
    notes = forms.CharField(required=False)

    def clean(self):
        cleaned = super().clean()
        if cleaned.get("location_type") == Interview.LocationType.IN_PERSON and not cleaned.get("address"):
            self.add_error("address", "An address is required for an in-person interview.")
        return cleaned


class RescheduleInterviewForm(forms.Form):
    scheduled_at = forms.DateTimeField()


class InterviewOutcomeForm(forms.Form):
    status = forms.ChoiceField(
        choices=[(s.value, s.label) for s in OUTCOME_STATUSES],
    )
    feedback = forms.CharField(required=False)
    rating = forms.IntegerField(required=False, min_value=1, max_value=5)
