from django.conf import settings
from django.contrib.auth.views import redirect_to_login


def exempt_prefixes():
    # allauth and the admin handle their own login pages; /api/ answers 401 JSON.
    return ('/accounts/', '/admin/', '/api/', settings.STATIC_URL)


class LoginRequiredMiddleware:
    """Send anonymous browser requests to the allauth login page."""
    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        if request.user.is_authenticated or request.path.startswith(exempt_prefixes()):
            return self.get_response(request)
        return redirect_to_login(request.get_full_path(), settings.LOGIN_URL)
