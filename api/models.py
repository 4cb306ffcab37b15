from django.db import models
from django.utils import timezone


class ApiKey(models.Model):
    PERMISSION_READ = 'read'
    PERMISSION_WRITE = 'write'
    PERMISSION_CHECKOUT = 'checkout'
    PERMISSION_WEBHOOKS = 'webhooks'
    PERMISSION_ADMIN = 'admin'
    PERMISSION_CHOICES = [
        (PERMISSION_READ, 'Read'),
        (PERMISSION_WRITE, 'Write'),
        (PERMISSION_CHECKOUT, 'Checkout'),
        (PERMISSION_WEBHOOKS, 'Webhooks'),
        (PERMISSION_ADMIN, 'Admin (all permissions)'),
    ]
    PERMISSIONS = frozenset(code for code, _ in PERMISSION_CHOICES)

    name = models.CharField(max_length=100)
    key_hash = models.CharField(max_length=64, unique=True, help_text='SHA-256 digest of the raw key; the raw key is never stored')
    key_prefix = models.CharField(max_length=16, help_text='Leading characters of the raw key, shown so holders can recognise it')
    permissions = models.JSONField(default=list, blank=True)
    is_active = models.BooleanField(default=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    last_used_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ['-created_at', '-id']
        verbose_name = 'API key'

    def __str__(self):
        return f"{self.name} ({self.key_prefix}…)"

    def is_expired(self, now=None):
        now = now or timezone.now()
        return self.expires_at is not None and self.expires_at < now
