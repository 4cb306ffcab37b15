from django.urls import path

from . import views

urlpatterns = [
    path("config", views.external_config, name="api_external_config"),
    path("products", views.external_products, name="api_external_products"),
]
