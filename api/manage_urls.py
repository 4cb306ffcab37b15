from django.urls import path

from . import views

urlpatterns = [
    path("api-keys", views.api_key_collection, name="api_key_list"),
    path("api-keys/<int:pk>", views.api_key_detail, name="api_key_detail"),
]
