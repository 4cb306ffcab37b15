from django.core.management.base import BaseCommand

from StorefrontAdmin.errors import ApiError
from store.models import PricingRegion
from store.services import create_region

DEFAULT_REGIONS = [
    {'code': 'US', 'name': 'United States', 'currency': 'USD', 'countries': ['US'], 'sort_order': 1},
    {'code': 'UK', 'name': 'United Kingdom', 'currency': 'GBP', 'countries': ['GB'], 'sort_order': 2},
    {
        'code': 'EU',
        'name': 'Europe',
        'currency': 'EUR',
        'countries': [
            'DE', 'FR', 'IT', 'ES', 'NL', 'BE', 'AT', 'PT', 'IE', 'FI',
            'SE', 'DK', 'PL', 'CZ', 'GR', 'HU', 'RO', 'BG', 'HR', 'SK',
            'SI', 'EE', 'LV', 'LT', 'LU', 'MT', 'CY',
        ],
        'sort_order': 3,
    },
    {'code': 'CA', 'name': 'Canada', 'currency': 'CAD', 'countries': ['CA'], 'sort_order': 4},
    {'code': 'AU', 'name': 'Australia & New Zealand', 'currency': 'AUD', 'countries': ['AU', 'NZ'], 'sort_order': 5},
    {'code': 'CH', 'name': 'Switzerland & Liechtenstein', 'currency': 'CHF', 'countries': ['CH', 'LI'], 'sort_order': 6},
    # Empty country list: catch-all for every country not listed above.
    {'code': 'ROW', 'name': 'Rest of World', 'currency': 'USD', 'countries': [], 'is_default': True, 'sort_order': 99},
]


class Command(BaseCommand):
    help = 'Seeds the standard pricing regions (existing regions are left untouched)'

    def handle(self, *args, **options):
        self.stdout.write('Seeding pricing regions...')
        created = 0
        for region in DEFAULT_REGIONS:
            if PricingRegion.objects.filter(code__iexact=region['code']).exists():
                self.stdout.write(f"  - Region already exists: {region['name']} ({region['code']})")
                continue
            if region.get('is_default') and PricingRegion.objects.filter(is_default=True).exists():
                # Keep whatever default the store already chose.
                region = dict(region, is_default=False)
            try:
                create_region(**region)
            except ApiError as exc:
                self.stdout.write(self.style.WARNING(f"  ! Skipped {region['code']}: {exc.message}"))
                continue
            created += 1
            self.stdout.write(f"  Created region: {region['name']} ({region['code']})")
        self.stdout.write(self.style.SUCCESS(f'Seeded {created} pricing region(s).'))
