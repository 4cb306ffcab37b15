import hashlib
import logging
import secrets
from concurrent.futures import ThreadPoolExecutor
from functools import wraps
from typing import Iterable, Optional, Tuple

from django.conf import settings
from django.db import connections
from django.http import JsonResponse
from django.utils import timezone

from StorefrontAdmin.decorators import json_view
from StorefrontAdmin.errors import AuthError, ForbiddenError, ValidationError

from .models import ApiKey

logger = logging.getLogger("api.auth")

DISPLAY_PREFIX_LENGTH = 12

# Workers for the best-effort last_used_at stamp. Callers never wait on them.
_touch_executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="apikey-touch")


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key() -> Tuple[str, str, str]:
    """Return (raw_key, key_hash, key_prefix) for a fresh key.

    The raw key is the configured tag followed by 64 hex characters. Only the
    hash and the display prefix are ever stored.
    """
    raw_key = f"{settings.API_KEY_PREFIX}{secrets.token_hex(32)}"
    return raw_key, hash_api_key(raw_key), raw_key[:DISPLAY_PREFIX_LENGTH]


def clean_permissions(permissions) -> list:
    if permissions is None:
        return [ApiKey.PERMISSION_READ]
    if isinstance(permissions, str) or not isinstance(permissions, (list, tuple, set)):
        raise ValidationError("Permissions must be a list")
    cleaned = []
    for perm in permissions:
        if not isinstance(perm, str):
            raise ValidationError("Permissions must be a list of strings")
        if perm not in ApiKey.PERMISSIONS:
            raise ValidationError(f"Unknown permission: {perm}")
        if perm not in cleaned:
            cleaned.append(perm)
    return cleaned


def create_api_key(name: str, permissions=None, expires_at=None) -> Tuple[ApiKey, str]:
    """Persist a new key and return it with the raw secret.

    The raw secret is only available here; it cannot be recovered later.
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("Name is required")
    raw_key, key_hash, key_prefix = generate_api_key()
    api_key = ApiKey.objects.create(
        name=name,
        key_hash=key_hash,
        key_prefix=key_prefix,
        permissions=clean_permissions(permissions),
        is_active=True,
        expires_at=expires_at,
    )
    logger.info("Created API key %s (%s) with permissions %s", api_key.pk, key_prefix, api_key.permissions)
    return api_key, raw_key


def extract_bearer_token(authorization: Optional[str]) -> str:
    if not authorization or not authorization.strip():
        raise AuthError("Missing Authorization header", code=AuthError.MISSING_HEADER)
    scheme, _, token = authorization.strip().partition(" ")
    token = token.strip()
    if scheme != "Bearer" or not token:
        raise AuthError("Invalid Authorization format. Use: Bearer <api_key>", code=AuthError.MALFORMED_SCHEME)
    return token


def validate_api_key(authorization: Optional[str]) -> ApiKey:
    """Resolve an Authorization header to an active, unexpired ApiKey.

    Raises AuthError with one of MISSING_HEADER, MALFORMED_SCHEME,
    INVALID_KEY, DEACTIVATED or EXPIRED.
    """
    token = extract_bearer_token(authorization)
    try:
        api_key = ApiKey.objects.get(key_hash=hash_api_key(token))
    except ApiKey.DoesNotExist:
        raise AuthError("Invalid API key", code=AuthError.INVALID_KEY)

    if not api_key.is_active:
        raise AuthError("API key is deactivated", code=AuthError.DEACTIVATED)
    if api_key.is_expired():
        raise AuthError("API key has expired", code=AuthError.EXPIRED)

    schedule_last_used_touch(api_key.pk)
    return api_key


def has_permission(permissions: Iterable[str], required: str) -> bool:
    permissions = set(permissions or ())
    return required in permissions or ApiKey.PERMISSION_ADMIN in permissions


def touch_last_used(key_id) -> None:
    try:
        ApiKey.objects.filter(pk=key_id).update(last_used_at=timezone.now())
    except Exception:
        # Best-effort: a failed stamp must never fail the request.
        logger.warning("Could not record last use of API key %s", key_id, exc_info=True)


def _touch_in_worker(key_id) -> None:
    try:
        touch_last_used(key_id)
    finally:
        connections.close_all()


def schedule_last_used_touch(key_id) -> None:
    if not getattr(settings, "API_KEY_TOUCH_ASYNC", True):
        touch_last_used(key_id)
        return
    try:
        _touch_executor.submit(_touch_in_worker, key_id)
    except RuntimeError:
        logger.warning("Touch executor unavailable; skipping last-used stamp for key %s", key_id)


def authenticate_request(request, permission_required: Optional[str] = None) -> ApiKey:
    try:
        api_key = validate_api_key(request.headers.get("Authorization"))
    except AuthError as exc:
        logger.info("API key rejected on %s: %s", request.path, exc.code)
        raise
    if permission_required and not has_permission(api_key.permissions, permission_required):
        raise ForbiddenError(f"Missing required permission: {permission_required}")
    return api_key


def cors_headers(origin: Optional[str] = None) -> dict:
    headers = {
        "Access-Control-Allow-Origin": origin or "*",
        "Access-Control-Allow-Methods": "GET, POST, PUT, DELETE, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }
    if origin:
        headers["Vary"] = "Origin"
    return headers


def require_api_key(permission_required: Optional[str] = ApiKey.PERMISSION_READ):
    """Gate a view behind a Bearer API key with the given permission.

    OPTIONS preflight is answered without authentication. Every response,
    errors included, carries CORS headers for the calling origin.
    """
    def decorator(view_func):
        @json_view
        def _authenticated(request, *args, **kwargs):
            request.api_key = authenticate_request(request, permission_required)
            return view_func(request, *args, **kwargs)

        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if request.method == "OPTIONS":
                response = JsonResponse({})
            else:
                response = _authenticated(request, *args, **kwargs)
            for header, value in cors_headers(request.headers.get("Origin")).items():
                response[header] = value
            return response
        return _wrapped
    return decorator
