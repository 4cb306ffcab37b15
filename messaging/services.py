import logging
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from StorefrontAdmin.errors import ForbiddenError, NotFoundError, ValidationError

from .models import ProjectIntake, ProjectMessage

logger = logging.getLogger("messaging.services")

SENDER_TYPES = {choice for choice, _ in ProjectMessage.SENDER_CHOICES}


def get_intake(intake_id) -> ProjectIntake:
    if intake_id in (None, ""):
        raise ValidationError("intakeId required")
    try:
        intake = ProjectIntake.objects.filter(pk=int(intake_id)).first()
    except (TypeError, ValueError):
        raise ValidationError("Invalid intake id")
    if intake is None:
        raise NotFoundError("Project not found")
    return intake


def get_intake_for_user(intake_id, user) -> ProjectIntake:
    """Staff may open any thread; a client only their own. Others get a 404."""
    intake = get_intake(intake_id)
    if user.is_staff or intake.is_client(user):
        return intake
    raise NotFoundError("Project not found")


def list_messages(intake_id):
    """Return the whole thread, oldest first."""
    intake = get_intake(intake_id)
    return list(intake.messages.order_by("created_at", "id"))


@transaction.atomic
def send_message(intake_id, content, sender_type, sender_name="", sender_email="") -> ProjectMessage:
    content = (content or "").strip() if isinstance(content, str) else content
    if intake_id in (None, "") or not content or not sender_type or not sender_email:
        raise ValidationError("Missing fields")
    if not isinstance(content, str):
        raise ValidationError("Content must be text")
    if sender_type not in SENDER_TYPES:
        raise ValidationError(f"Unknown sender type: {sender_type}")
    limit = settings.MESSAGING_MAX_CONTENT_LENGTH
    if limit and len(content) > limit:
        raise ValidationError(f"Message is too long (max {limit} characters)")

    intake = get_intake(intake_id)
    message = ProjectMessage.objects.create(
        intake=intake,
        content=content,
        sender_type=sender_type,
        sender_name=(sender_name or "").strip(),
        sender_email=str(sender_email).strip(),
        read_at=None,
    )
    logger.info("New %s message %s on intake %s", sender_type, message.pk, intake.pk)
    return message


def send_message_as(user, intake_id, payload) -> ProjectMessage:
    """Send on behalf of a logged-in user, applying the thread access rules."""
    intake = get_intake_for_user(intake_id, user)
    sender_type = payload.get("senderType")
    if not user.is_staff and sender_type not in (None, ProjectMessage.SENDER_CLIENT):
        raise ForbiddenError("Clients may only send client messages.")
    if not user.is_staff:
        sender_type = ProjectMessage.SENDER_CLIENT
    return send_message(
        intake.pk,
        payload.get("content"),
        sender_type,
        sender_name=payload.get("senderName") or user.get_full_name(),
        sender_email=payload.get("senderEmail") or user.email,
    )


def mark_read(intake_id) -> int:
    """Stamp every unread client message in the thread. Returns how many changed."""
    intake = get_intake(intake_id)
    updated = ProjectMessage.objects.filter(
        intake=intake,
        sender_type=ProjectMessage.SENDER_CLIENT,
        read_at__isnull=True,
    ).update(read_at=timezone.now())
    if updated:
        logger.info("Marked %d message(s) read on intake %s", updated, intake.pk)
    return updated


def unread_count(intake_id: Optional[int] = None) -> int:
    messages = ProjectMessage.objects.filter(
        sender_type=ProjectMessage.SENDER_CLIENT,
        read_at__isnull=True,
    )
    if intake_id not in (None, ""):
        messages = messages.filter(intake=get_intake(intake_id))
    return messages.count()
