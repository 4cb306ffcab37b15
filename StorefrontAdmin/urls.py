from django.contrib import admin
from django.shortcuts import redirect
from django.urls import include, path


def home(request):
    return redirect("admin:index")


urlpatterns = [
    path("", home, name="home"),
    path("admin/", admin.site.urls),
    path("accounts/", include("allauth.urls")),
    path("api/settings/", include("api.manage_urls")),
    path("api/external/", include("api.urls")),
    path("api/", include("store.urls")),
    path("api/", include("messaging.urls")),
]
