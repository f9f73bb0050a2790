from django import forms

from assignments.models import AssignmentTemplate


class AssignmentTemplateForm(forms.Form):
    name = forms.CharField(max_length=200)
    instructions = forms.CharField(required=False)
    link = forms.URLField(required=False)
    deadline_days = forms.IntegerField(required=False, min_value=1, max_value=60)


class SendAssignmentForm(forms.Form):
    """Either a template or an ad-hoc name; explicit fields override the template."""
    template = forms.ModelChoiceField(
        queryset=AssignmentTemplate.objects.filter(is_active=True),
        required=False,
    )
    name = forms.CharField(required=False, max_length=200)
    instructions = forms.CharField(required=False)
    link = forms.URLField(required=False)
    deadline_days = forms.IntegerField(required=False, min_value=1, max_value=60)


class SubmissionForm(forms.Form):
    submission_link = forms.URLField(required=False)
    notes = forms.CharField(required=False, max_length=5000)


class ReviewForm(forms.Form):
    passed = forms.BooleanField(required=False)
    score = forms.IntegerField(required=False, min_value=0, max_value=100)
    notes = forms.CharField(required=False)
