import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.db.models import Count

from StorefrontAdmin.errors import ConflictError, NotFoundError, ValidationError

from .models import PricingRegion, Product, ProductRegionPrice, StoreSettings

logger = logging.getLogger("store.services")


# ---------------------------------------------------------------------------
# Store settings
# ---------------------------------------------------------------------------

def get_store_settings() -> StoreSettings:
    """Load the store settings record, creating it with defaults on first use."""
    store = StoreSettings.objects.order_by('id').first()
    if store is None:
        store = StoreSettings.objects.create(
            store_name=settings.STORE_DEFAULT_NAME,
            currency=settings.STORE_DEFAULT_CURRENCY,
        )
        logger.info("Created default store settings (%s)", store.store_name)
    return store


# ---------------------------------------------------------------------------
# Region resolution
# ---------------------------------------------------------------------------

def find_default_region() -> Optional[PricingRegion]:
    return PricingRegion.objects.filter(is_default=True).order_by('sort_order', 'id').first()


def resolve_region(country_code: Optional[str] = None) -> Optional[PricingRegion]:
    """Pick the pricing region for a country.

    Exact membership in a region's country list wins (first region by
    sort order); anything else falls back to the default region. Returns None
    only when no default region is configured.
    """
    code = (country_code or '').strip().upper()
    if code:
        for region in PricingRegion.objects.order_by('sort_order', 'id'):
            if code in (region.countries or []):
                return region

    default = find_default_region()
    if default is None:
        logger.warning("No default pricing region configured; country=%r resolves to no region", code or None)
    return default


# ---------------------------------------------------------------------------
# Region administration
# ---------------------------------------------------------------------------

def normalize_code(value) -> str:
    return str(value or '').strip().upper()


def normalize_countries(countries) -> list:
    if countries is None:
        return []
    if isinstance(countries, str) or not isinstance(countries, (list, tuple)):
        raise ValidationError("Countries must be a list of country codes")
    cleaned = []
    for country in countries:
        code = normalize_code(country)
        if len(code) != 2 or not code.isalpha():
            raise ValidationError(f"Invalid country code: {country}")
        if code not in cleaned:
            cleaned.append(code)
    return cleaned


def _max_length(field):
    return PricingRegion._meta.get_field(field).max_length


def check_code(code):
    if len(code) > _max_length('code'):
        raise ValidationError(f"Code must be at most {_max_length('code')} characters")


def check_name(name):
    if len(name) > _max_length('name'):
        raise ValidationError(f"Name must be at most {_max_length('name')} characters")


def check_currency(currency):
    if len(currency) != 3 or not currency.isalpha():
        raise ValidationError("Currency must be a 3-letter ISO 4217 code")


def _flag(value, field) -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field} must be true or false")
    return value


def _sort_order(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError("Sort order must be an integer")


def ensure_code_available(code, exclude_id=None):
    clashes = PricingRegion.objects.filter(code__iexact=code)
    if exclude_id is not None:
        clashes = clashes.exclude(pk=exclude_id)
    if clashes.exists():
        raise ConflictError("A region with this code already exists")


def ensure_countries_unassigned(countries, exclude_id=None):
    if not countries:
        return
    wanted = set(countries)
    others = PricingRegion.objects.all()
    if exclude_id is not None:
        others = others.exclude(pk=exclude_id)
    for other in others:
        overlap = wanted.intersection(other.countries or [])
        if overlap:
            raise ConflictError(
                f"Countries already assigned to region {other.code}: {', '.join(sorted(overlap))}"
            )


def clear_default(exclude_id=None):
    # Must run inside the caller's transaction so no reader sees two defaults.
    holders = PricingRegion.objects.select_for_update().filter(is_default=True)
    if exclude_id is not None:
        holders = holders.exclude(pk=exclude_id)
    previous = [region.code for region in holders]
    if previous:
        PricingRegion.objects.filter(code__in=previous).update(is_default=False)
        logger.info("Cleared default flag from region(s) %s", ", ".join(previous))


def list_regions():
    return PricingRegion.objects.annotate(price_count=Count('prices')).order_by('sort_order', 'id')


def get_region(region_id) -> PricingRegion:
    region = list_regions().filter(pk=region_id).first()
    if region is None:
        raise NotFoundError("Pricing region not found")
    return region


@transaction.atomic
def create_region(*, code=None, name=None, currency=None, countries=None, is_default=False, sort_order=0) -> PricingRegion:
    code = normalize_code(code)
    currency = normalize_code(currency)
    name = (name or '').strip()
    if not code or not name or not currency:
        raise ValidationError("Code, name, and currency are required")
    check_code(code)
    check_name(name)
    check_currency(currency)

    countries = normalize_countries(countries)
    ensure_code_available(code)
    ensure_countries_unassigned(countries)

    is_default = _flag(is_default, "isDefault")
    if is_default:
        clear_default()

    region = PricingRegion.objects.create(
        code=code,
        name=name,
        currency=currency,
        countries=countries,
        is_default=is_default,
        sort_order=_sort_order(sort_order if sort_order is not None else 0),
    )
    logger.info("Created pricing region %s (%s)%s", region.code, region.currency, " [default]" if is_default else "")
    return region


@transaction.atomic
def update_region(region_id, *, code=None, name=None, currency=None, countries=None, is_default=None, sort_order=None) -> PricingRegion:
    """Apply a partial update. Arguments left as None keep their current value."""
    region = PricingRegion.objects.select_for_update().filter(pk=region_id).first()
    if region is None:
        raise NotFoundError("Pricing region not found")

    if code is not None and normalize_code(code) != region.code:
        code = normalize_code(code)
        if not code:
            raise ValidationError("Code cannot be blank")
        check_code(code)
        ensure_code_available(code, exclude_id=region.pk)
        region.code = code
    if name is not None:
        if not str(name).strip():
            raise ValidationError("Name cannot be blank")
        check_name(str(name).strip())
        region.name = str(name).strip()
    if currency is not None:
        if not normalize_code(currency):
            raise ValidationError("Currency cannot be blank")
        check_currency(normalize_code(currency))
        region.currency = normalize_code(currency)
    if countries is not None:
        region.countries = normalize_countries(countries)
        ensure_countries_unassigned(region.countries, exclude_id=region.pk)
    if sort_order is not None:
        region.sort_order = _sort_order(sort_order)

    if is_default is not None:
        is_default = _flag(is_default, "isDefault")
        if is_default and not region.is_default:
            clear_default(exclude_id=region.pk)
            logger.info("Region %s is now the default pricing region", region.code)
        elif not is_default and region.is_default:
            logger.warning("Default flag removed from region %s; no default region remains", region.code)
        region.is_default = is_default

    region.save()
    return region


@transaction.atomic
def delete_region(region_id) -> None:
    region = PricingRegion.objects.select_for_update().filter(pk=region_id).first()
    if region is None:
        raise NotFoundError("Pricing region not found")
    if region.is_default:
        raise ConflictError("Cannot delete the default pricing region")

    removed, _ = ProductRegionPrice.objects.filter(region=region).delete()
    region.delete()
    logger.info("Deleted pricing region %s and %d regional price(s)", region.code, removed)


# ---------------------------------------------------------------------------
# Regional product prices
# ---------------------------------------------------------------------------

def _to_decimal(value, field) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite() or amount < 0:
        raise ValidationError(f"{field} must be a non-negative number")
    return amount


def get_product(product_id) -> Product:
    product = Product.objects.filter(pk=product_id).first()
    if product is None:
        raise NotFoundError("Product not found")
    return product


def get_product_prices(product_id):
    """Return (product, rows) with one row per region; the row's override is None when unset."""
    product = get_product(product_id)
    overrides = {
        price.region_id: price
        for price in ProductRegionPrice.objects.filter(product=product)
    }
    rows = [
        (region, overrides.get(region.pk))
        for region in PricingRegion.objects.order_by('sort_order', 'id')
    ]
    return product, rows


@transaction.atomic
def set_product_prices(product_id, prices) -> list:
    """Bulk upsert regional overrides for a product.

    Each entry is ``{"regionId", "price", "compareAtPrice"}``. A null price
    removes the override so the base price applies again. Unknown regions are
    reported per entry rather than failing the whole batch.
    """
    product = get_product(product_id)
    if not isinstance(prices, list):
        raise ValidationError("Prices array is required")

    results = []
    for entry in prices:
        if not isinstance(entry, dict):
            raise ValidationError("Each price entry must be an object")
        region_id = entry.get('regionId')
        region = PricingRegion.objects.filter(pk=region_id).first() if region_id is not None else None
        if region is None:
            results.append({'regionId': region_id, 'success': False, 'error': 'Region not found'})
            continue

        price = _to_decimal(entry.get('price'), 'price')
        if price is None:
            ProductRegionPrice.objects.filter(product=product, region=region).delete()
            results.append({'regionId': region.pk, 'success': True, 'action': 'deleted'})
            continue

        ProductRegionPrice.objects.update_or_create(
            product=product,
            region=region,
            defaults={
                'price': price,
                'compare_at_price': _to_decimal(entry.get('compareAtPrice'), 'compareAtPrice'),
            },
        )
        results.append({'regionId': region.pk, 'success': True, 'action': 'updated'})
    return results


def regional_prices_for(products, region) -> dict:
    """Map product id -> ProductRegionPrice for the given region."""
    if region is None:
        return {}
    return {
        price.product_id: price
        for price in ProductRegionPrice.objects.filter(region=region, product__in=products)
    }


def effective_price(product, override=None):
    """Return (price, compare_at_price), preferring the regional override."""
    if override is not None:
        return override.price, override.compare_at_price
    return product.price, product.compare_at_price


def regional_price(product, region):
    override = None
    if region is not None:
        override = ProductRegionPrice.objects.filter(product=product, region=region).first()
    return effective_price(product, override)
