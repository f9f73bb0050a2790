"""
applications/forms.py

Forms for the application endpoints: stage actions (transition, revert,
reject, reassign), notes, and the public / staff application intake.
"""

from django import forms
from django.core.validators import FileExtensionValidator

from jobs.models import JobOpening
from talentflow.constants import MAX_RESUME_SIZE_MB


class TransitionForm(forms.Form):
    """Forward move. `stage` is validated by the stage engine, not here."""
    stage = forms.CharField(max_length=30)
    reason = forms.CharField(required=False)
    assignee = forms.CharField(required=False, max_length=150)


class RevertForm(forms.Form):
    stage = forms.CharField(max_length=30)
    reason = forms.CharField(required=False)
    assignee = forms.CharField(required=False, max_length=150)


class RejectForm(forms.Form):
    reason = forms.CharField(required=False)


class ReassignForm(forms.Form):
    """Blank `assignee` clears the current assignment."""
    assignee = forms.CharField(required=False, max_length=150)
    reason = forms.CharField(required=False)


class AddNoteForm(forms.Form):
    """Add a note to the application's timeline."""
    note = forms.CharField()


class _ResumeFieldMixin:
    def clean_resume(self):
        f = self.cleaned_data.get("resume")
        if f and f.size > MAX_RESUME_SIZE_MB * 1024 * 1024:
            raise forms.ValidationError(
                f"Resume file is too large ({f.size // (1024 * 1024)} MB). "
                f"Maximum allowed size is {MAX_RESUME_SIZE_MB} MB."
            )
        return f


class PublicApplicationForm(_ResumeFieldMixin, forms.Form):
    """Anonymous apply form for an open job."""
    job = forms.ModelChoiceField(queryset=JobOpening.objects.all())
    full_name = forms.CharField(max_length=300)
    email = forms.EmailField()
    phone = forms.CharField(required=False, max_length=50)
    resume = forms.FileField(
        required=False,
        validators=[FileExtensionValidator(allowed_extensions=["pdf"])],
    )


class ManualApplicationForm(_ResumeFieldMixin, forms.Form):
    """Staff adds a candidate to any job, whatever its status."""
    job = forms.ModelChoiceField(queryset=JobOpening.objects.all())
    full_name = forms.CharField(max_length=300)
    email = forms.EmailField()
    phone = forms.CharField(required=False, max_length=50)
    resume = forms.FileField(
        required=False,
        validators=[FileExtensionValidator(allowed_extensions=["pdf"])],
    )
