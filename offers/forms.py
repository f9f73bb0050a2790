from django import forms


class OfferForm(forms.Form):
    salary = forms.DecimalField(required=False, max_digits=12, decimal_places=2, min_value=0)
    currency = forms.CharField(required=False, min_length=3, max_length=3)
    start_date = forms.DateField(required=False)
    expiry_date = forms.DateField(required=False)
    terms = forms.CharField(required=False)

    def clean(self):
        cleaned = super().clean()
        start, expiry = cleaned.get("start_date"), cleaned.get("expiry_date")
        if start and expiry and expiry > start:
            self.add_error("expiry_date", "The response deadline must not be after the start date.")
        return cleaned


class OfferResponseForm(forms.Form):
    """Candidate's answer on the public offer page."""
    decision = forms.ChoiceField(choices=[("accept", "Accept"), ("decline", "Decline")])
    notes = forms.CharField(required=False, max_length=2000)
