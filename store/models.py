from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


class StoreSettings(models.Model):
    """Singleton store record. Use store.services.get_store_settings() to load it."""
    store_name = models.CharField(max_length=200)
    store_url = models.URLField(blank=True)
    currency = models.CharField(max_length=3, default='USD')
    paypal_enabled = models.BooleanField(default=False)
    paypal_client_id = models.CharField(max_length=200, blank=True, help_text="Public PayPal client id (never the secret)")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'store settings'
        verbose_name_plural = 'store settings'

    def __str__(self):
        return self.store_name

    @property
    def stripe_enabled(self):
        return bool(settings.STRIPE_SECRET_KEY)


class PricingRegion(models.Model):
    code = models.CharField(max_length=10, unique=True, help_text="Short label, stored upper-case (e.g. 'EU').")
    name = models.CharField(max_length=100)
    currency = models.CharField(max_length=3)
    countries = models.JSONField(default=list, blank=True, help_text="ISO alpha-2 country codes. Leave empty for a catch-all default region.")
    is_default = models.BooleanField(default=False)
    sort_order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['sort_order', 'id']
        constraints = [
            models.UniqueConstraint(
                fields=['is_default'],
                condition=Q(is_default=True),
                name='unique_default_pricing_region',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.code}, {self.currency})"


class Product(models.Model):
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    sku = models.CharField(max_length=64, unique=True, null=True, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    compare_at_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    is_active = models.BooleanField(default=True)
    featured = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-featured', '-created_at']

    def __str__(self):
        return self.name


class ProductRegionPrice(models.Model):
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='regional_prices')
    region = models.ForeignKey(PricingRegion, on_delete=models.CASCADE, related_name='prices')
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(0)])
    compare_at_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=['product', 'region'], name='unique_product_region_price'),
        ]

    def __str__(self):
        return f"{self.product} @ {self.region.code}: {self.price}"
