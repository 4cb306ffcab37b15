import logging

from django.conf import settings
from django.http import JsonResponse
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from StorefrontAdmin.decorators import json_view, read_json, staff_required_json
from StorefrontAdmin.errors import NotFoundError, ValidationError
from store.models import Product
from store.services import effective_price, get_store_settings, regional_prices_for, resolve_region

from .auth import clean_permissions, create_api_key, require_api_key
from .models import ApiKey

logger = logging.getLogger("api.views")


def _iso(value):
    return value.isoformat() if value else None


def _money(value):
    return float(value) if value is not None else None


def _parse_expires_at(value):
    if value in (None, ""):
        return None
    dt = parse_datetime(str(value))
    if dt is None:
        raise ValidationError("expiresAt must be an ISO 8601 datetime")
    if timezone.is_naive(dt):
        dt = timezone.make_aware(dt, timezone.get_current_timezone())
    return dt


def serialize_api_key(api_key):
    # Never include key_hash: the prefix is the only identifying part shown.
    return {
        'id': api_key.id,
        'name': api_key.name,
        'keyPrefix': api_key.key_prefix,
        'permissions': list(api_key.permissions or []),
        'isActive': api_key.is_active,
        'expiresAt': _iso(api_key.expires_at),
        'lastUsedAt': _iso(api_key.last_used_at),
        'createdAt': _iso(api_key.created_at),
    }


def serialize_region_block(region):
    if region is None:
        return None
    return {'code': region.code, 'name': region.name, 'currency': region.currency}


# ---------------------------------------------------------------------------
# Key management (staff session)
# ---------------------------------------------------------------------------

@require_http_methods(["GET", "POST"])
@json_view
@staff_required_json
def api_key_collection(request):
    if request.method == 'GET':
        return JsonResponse([serialize_api_key(k) for k in ApiKey.objects.all()], safe=False)

    payload = read_json(request)
    api_key, raw_key = create_api_key(
        payload.get('name'),
        permissions=payload.get('permissions'),
        expires_at=_parse_expires_at(payload.get('expiresAt')),
    )
    return JsonResponse({
        'id': api_key.id,
        'name': api_key.name,
        'rawKey': raw_key,
        'keyPrefix': api_key.key_prefix,
        'permissions': api_key.permissions,
    }, status=201)


@require_http_methods(["PATCH", "DELETE"])
@json_view
@staff_required_json
def api_key_detail(request, pk):
    api_key = ApiKey.objects.filter(pk=pk).first()
    if api_key is None:
        raise NotFoundError("API key not found")

    if request.method == 'DELETE':
        api_key.delete()
        logger.info("Deleted API key %s (%s) by %s", pk, api_key.key_prefix, request.user.pk)
        return JsonResponse({'success': True})

    toggled = False
    payload = read_json(request)
    if 'name' in payload:
        name = (payload.get('name') or '').strip()
        if not name:
            raise ValidationError("Name is required")
        api_key.name = name
    if 'permissions' in payload:
        api_key.permissions = clean_permissions(payload.get('permissions'))
    if 'isActive' in payload:
        is_active = payload.get('isActive')
        if not isinstance(is_active, bool):
            raise ValidationError("isActive must be true or false")
        toggled = is_active != api_key.is_active
        api_key.is_active = is_active
    if 'expiresAt' in payload:
        api_key.expires_at = _parse_expires_at(payload.get('expiresAt'))
    api_key.save()
    if toggled:
        logger.info("API key %s %s by %s", api_key.pk, "reactivated" if api_key.is_active else "deactivated", request.user.pk)
    return JsonResponse(serialize_api_key(api_key))


# ---------------------------------------------------------------------------
# External facade (Bearer API key)
# ---------------------------------------------------------------------------

@csrf_exempt
@require_http_methods(["GET", "OPTIONS"])
@require_api_key(ApiKey.PERMISSION_READ)
def external_config(request):
    store = get_store_settings()
    region = resolve_region(request.GET.get('country'))
    return JsonResponse({
        'success': True,
        'config': {
            'storeName': store.store_name,
            'storeUrl': store.store_url,
            'currency': region.currency if region else store.currency,
            'stripe': {
                'enabled': store.stripe_enabled,
                'publishableKey': settings.STRIPE_PUBLISHABLE_KEY or None,
            },
            'paypal': {
                'enabled': store.paypal_enabled,
                'clientId': store.paypal_client_id or None,
            },
        },
        'region': serialize_region_block(region),
    })


@csrf_exempt
@require_http_methods(["GET", "OPTIONS"])
@require_api_key(ApiKey.PERMISSION_READ)
def external_products(request):
    region = resolve_region(request.GET.get('country'))
    currency = region.currency if region else get_store_settings().currency

    products = Product.objects.filter(is_active=True)
    if request.GET.get('sku'):
        products = products.filter(sku=request.GET['sku'])
    if request.GET.get('slug'):
        products = products.filter(slug=request.GET['slug'])
    if request.GET.get('featured') == 'true':
        products = products.filter(featured=True)
    products = list(products)

    overrides = regional_prices_for(products, region)
    items = []
    for product in products:
        price, compare_at = effective_price(product, overrides.get(product.pk))
        items.append({
            'id': product.id,
            'name': product.name,
            'slug': product.slug,
            'sku': product.sku,
            'description': product.description,
            'price': _money(price),
            'compareAtPrice': _money(compare_at),
            'currency': currency,
            'regionCode': region.code if region else None,
            'featured': product.featured,
        })

    return JsonResponse({
        'success': True,
        'products': items,
        'count': len(items),
        'region': serialize_region_block(region),
    })
