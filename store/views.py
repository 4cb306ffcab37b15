from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from StorefrontAdmin.decorators import ensure_staff, json_view, read_json

from . import services


def _money(value):
    return float(value) if value is not None else None


def serialize_region(region):
    data = {
        'id': region.id,
        'code': region.code,
        'name': region.name,
        'currency': region.currency,
        'countries': list(region.countries or []),
        'isDefault': region.is_default,
        'sortOrder': region.sort_order,
        'createdAt': region.created_at.isoformat() if region.created_at else None,
        'updatedAt': region.updated_at.isoformat() if region.updated_at else None,
    }
    price_count = getattr(region, 'price_count', None)
    if price_count is None:
        price_count = region.prices.count()
    data['priceCount'] = price_count
    return data


def _region_fields(payload):
    return {
        'code': payload.get('code'),
        'name': payload.get('name'),
        'currency': payload.get('currency'),
        'countries': payload.get('countries'),
        'is_default': payload.get('isDefault'),
        'sort_order': payload.get('sortOrder'),
    }


@require_http_methods(["GET", "POST"])
@json_view
def region_collection(request):
    if request.method == 'GET':
        return JsonResponse({'regions': [serialize_region(r) for r in services.list_regions()]})

    ensure_staff(request)
    fields = _region_fields(read_json(request))
    if fields['is_default'] is None:
        fields['is_default'] = False
    if fields['sort_order'] is None:
        fields['sort_order'] = 0
    region = services.create_region(**fields)
    return JsonResponse({'region': serialize_region(region)}, status=201)


@require_http_methods(["GET", "PUT", "DELETE"])
@json_view
def region_detail(request, pk):
    if request.method == 'GET':
        return JsonResponse({'region': serialize_region(services.get_region(pk))})

    ensure_staff(request)
    if request.method == 'DELETE':
        services.delete_region(pk)
        return JsonResponse({'success': True})

    region = services.update_region(pk, **_region_fields(read_json(request)))
    return JsonResponse({'region': serialize_region(region)})


@require_http_methods(["GET", "PUT"])
@json_view
def product_prices(request, pk):
    if request.method == 'PUT':
        ensure_staff(request)
        results = services.set_product_prices(pk, read_json(request).get('prices'))
        return JsonResponse({'success': True, 'results': results})

    product, rows = services.get_product_prices(pk)
    return JsonResponse({
        'product': {
            'id': product.id,
            'name': product.name,
            'basePrice': _money(product.price),
            'baseCompareAtPrice': _money(product.compare_at_price),
        },
        'regionalPrices': [
            {
                'regionId': region.id,
                'regionCode': region.code,
                'regionName': region.name,
                'currency': region.currency,
                'isDefault': region.is_default,
                'price': _money(override.price) if override else None,
                'compareAtPrice': _money(override.compare_at_price) if override else None,
            }
            for region, override in rows
        ],
    })
