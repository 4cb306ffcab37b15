from django import forms
from django.contrib import admin, messages
from django.db import transaction

from StorefrontAdmin.errors import ApiError

from . import services
from .models import PricingRegion, Product, ProductRegionPrice, StoreSettings


class PricingRegionAdminForm(forms.ModelForm):
    class Meta:
        model = PricingRegion
        fields = ["code", "name", "currency", "countries", "is_default", "sort_order"]

    def clean(self):
        cleaned = super().clean()
        exclude_id = self.instance.pk
        try:
            if cleaned.get("code"):
                cleaned["code"] = services.normalize_code(cleaned["code"])
                services.ensure_code_available(cleaned["code"], exclude_id=exclude_id)
            if cleaned.get("currency"):
                cleaned["currency"] = services.normalize_code(cleaned["currency"])
                services.check_currency(cleaned["currency"])
            cleaned["countries"] = services.normalize_countries(cleaned.get("countries") or [])
            services.ensure_countries_unassigned(cleaned["countries"], exclude_id=exclude_id)
        except ApiError as exc:
            raise forms.ValidationError(exc.message)
        return cleaned


class ProductRegionPriceInline(admin.TabularInline):
    model = ProductRegionPrice
    extra = 0


@admin.register(PricingRegion)
class PricingRegionAdmin(admin.ModelAdmin):
    form = PricingRegionAdminForm
    list_display = ("code", "name", "currency", "is_default", "sort_order")
    list_filter = ("is_default", "currency")
    search_fields = ("code", "name")
    ordering = ("sort_order", "id")

    def save_model(self, request, obj, form, change):
        with transaction.atomic():
            if obj.is_default:
                services.clear_default(exclude_id=obj.pk)
            super().save_model(request, obj, form, change)

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.is_default:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        services.delete_region(obj.pk)

    def delete_queryset(self, request, queryset):
        for region in queryset:
            try:
                services.delete_region(region.pk)
            except ApiError as exc:
                messages.error(request, f"{region.code}: {exc.message}")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("name", "sku", "price", "compare_at_price", "is_active", "featured")
    list_filter = ("is_active", "featured")
    search_fields = ("name", "sku", "slug")
    prepopulated_fields = {"slug": ("name",)}
    inlines = [ProductRegionPriceInline]


@admin.register(StoreSettings)
class StoreSettingsAdmin(admin.ModelAdmin):
    list_display = ("store_name", "store_url", "currency", "paypal_enabled", "updated_at")

    def has_add_permission(self, request):
        return not StoreSettings.objects.exists()
