from django.urls import path

from . import views

urlpatterns = [
    path("pricing-regions", views.region_collection, name="pricing_region_list"),
    path("pricing-regions/<int:pk>", views.region_detail, name="pricing_region_detail"),
    path("products/<int:pk>/prices", views.product_prices, name="product_regional_prices"),
]
