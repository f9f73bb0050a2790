from django import forms

from tasks.models import TaskAssignment


class TaskStatusForm(forms.Form):
    status = forms.ChoiceField(choices=TaskAssignment.Status.choices)
