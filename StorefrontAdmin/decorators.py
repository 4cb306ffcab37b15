import json
import logging
from functools import wraps

from django.http import Http404, JsonResponse

from .errors import ApiError, AuthError, ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger("StorefrontAdmin.requests")


def error_response(exc: ApiError) -> JsonResponse:
    return JsonResponse(exc.as_dict(), status=exc.status)


def server_error_response() -> JsonResponse:
    return JsonResponse(
        {
            "error": "Internal Server Error",
            "message": "An unexpected error occurred.",
            "code": "INTERNAL_ERROR",
        },
        status=500,
    )


def json_view(view_func):
    """Turn ApiError subclasses into JSON error responses.

    Anything unexpected is logged with its traceback and answered with a
    generic 500 so no internals reach the client.
    """
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        try:
            return view_func(request, *args, **kwargs)
        except ApiError as exc:
            return error_response(exc)
        except Http404:
            return error_response(NotFoundError())
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.path)
            return server_error_response()
    return _wrapped


def ensure_authenticated(request):
    user = getattr(request, "user", None)
    if user is None or not user.is_authenticated:
        raise AuthError("Authentication required. Please log in.", code=AuthError.AUTH_REQUIRED)
    return user


def ensure_staff(request):
    user = ensure_authenticated(request)
    if not user.is_staff:
        raise ForbiddenError("Admin access required.")
    return user


def login_required_json(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        ensure_authenticated(request)
        return view_func(request, *args, **kwargs)
    return _wrapped


def staff_required_json(view_func):
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        ensure_staff(request)
        return view_func(request, *args, **kwargs)
    return _wrapped


def read_json(request) -> dict:
    if not request.body:
        return {}
    try:
        payload = json.loads(request.body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        raise ValidationError("Invalid JSON body")
    if not isinstance(payload, dict):
        raise ValidationError("JSON body must be an object")
    return payload
