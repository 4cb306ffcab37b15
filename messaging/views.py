from django.http import JsonResponse
from django.views.decorators.http import require_http_methods

from StorefrontAdmin.decorators import ensure_authenticated, ensure_staff, json_view, read_json

from . import services


def serialize_message(message):
    return {
        "id": message.id,
        "intakeId": message.intake_id,
        "content": message.content,
        "senderType": message.sender_type,
        "senderName": message.sender_name,
        "senderEmail": message.sender_email,
        "createdAt": message.created_at.isoformat(),
        "readAt": message.read_at.isoformat() if message.read_at else None,
    }


@require_http_methods(["GET", "POST"])
@json_view
def messages_collection(request):
    user = ensure_authenticated(request)

    if request.method == "GET":
        intake = services.get_intake_for_user(request.GET.get("intakeId"), user)
        return JsonResponse({"messages": [serialize_message(m) for m in services.list_messages(intake.pk)]})

    payload = read_json(request)
    message = services.send_message_as(user, payload.get("intakeId"), payload)
    return JsonResponse({"message": serialize_message(message)}, status=201)


@require_http_methods(["PATCH"])
@json_view
def messages_mark_read(request):
    ensure_staff(request)
    updated = services.mark_read(read_json(request).get("intakeId"))
    return JsonResponse({"ok": True, "updated": updated})


@require_http_methods(["GET"])
@json_view
def messages_unread(request):
    ensure_staff(request)
    return JsonResponse({"count": services.unread_count(request.GET.get("intakeId"))})
