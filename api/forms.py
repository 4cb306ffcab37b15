from django import forms

from .auth import generate_api_key
from .models import ApiKey


class ApiKeyForm(forms.ModelForm):
    permissions = forms.MultipleChoiceField(
        choices=ApiKey.PERMISSION_CHOICES,
        widget=forms.CheckboxSelectMultiple,
        initial=[ApiKey.PERMISSION_READ],
        help_text="'Admin' grants every other permission.",
    )
    generate_new_key = forms.BooleanField(
        required=False,
        initial=False,
        help_text="Check to issue a new secret on save. The old secret stops working immediately.",
        label="Generate new key",
    )

    class Meta:
        model = ApiKey
        fields = ["name", "permissions", "is_active", "expires_at"]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        # Set by save() when a secret was issued; shown to the admin once.
        self.raw_key = None

    def save(self, commit=True):
        obj = super().save(commit=False)
        if self.cleaned_data.get("generate_new_key") or not obj.key_hash:
            self.raw_key, obj.key_hash, obj.key_prefix = generate_api_key()
        if commit:
            obj.save()
        return obj
