from django.contrib import admin, messages

from .forms import ApiKeyForm
from .models import ApiKey


@admin.register(ApiKey)
class ApiKeyAdmin(admin.ModelAdmin):
    form = ApiKeyForm
    list_display = ("name", "key_prefix", "permissions", "is_active", "expires_at", "last_used_at", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "key_prefix")
    readonly_fields = ("key_prefix", "last_used_at", "created_at")

    def save_model(self, request, obj, form, change):
        super().save_model(request, obj, form, change)
        if form.raw_key:
            messages.warning(
                request,
                f"New API key for {obj.name}: {form.raw_key} (copy it now, it will not be shown again)",
            )
