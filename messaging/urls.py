from django.urls import path

from . import views

urlpatterns = [
    path("messages", views.messages_collection, name="messages"),
    path("messages/read", views.messages_mark_read, name="messages_mark_read"),
    path("messages/unread", views.messages_unread, name="messages_unread"),
]
