from django.conf import settings
from django.db import models
from django.utils import timezone


class ProjectIntake(models.Model):
    NEW = "NEW"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    STATUS_CHOICES = [
        (NEW, "New"),
        (IN_PROGRESS, "In progress"),
        (COMPLETED, "Completed"),
        (CANCELLED, "Cancelled"),
    ]

    project_name = models.CharField(max_length=200)
    client_name = models.CharField(max_length=120, blank=True)
    client_email = models.EmailField()
    client = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="project_intakes",
    )
    status = models.CharField(max_length=16, choices=STATUS_CHOICES, default=NEW)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ["-created_at", "-id"]

    def __str__(self):
        return f"{self.project_name} ({self.client_email})"

    def is_client(self, user) -> bool:
        if user is None or not user.is_authenticated:
            return False
        if self.client_id is not None and self.client_id == user.pk:
            return True
        email = (getattr(user, "email", "") or "").strip().lower()
        return bool(email) and email == (self.client_email or "").strip().lower()


class ProjectMessage(models.Model):
    SENDER_CLIENT = "CLIENT"
    SENDER_ADMIN = "ADMIN"
    SENDER_CHOICES = [
        (SENDER_CLIENT, "Client"),
        (SENDER_ADMIN, "Admin"),
    ]

    intake = models.ForeignKey(ProjectIntake, on_delete=models.CASCADE, related_name="messages")
    content = models.TextField()
    sender_type = models.CharField(max_length=10, choices=SENDER_CHOICES)
    sender_name = models.CharField(max_length=120, blank=True)
    sender_email = models.EmailField()
    created_at = models.DateTimeField(default=timezone.now, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["sender_type", "read_at"], name="msg_sender_read_idx"),
        ]

    def __str__(self):
        return f"{self.get_sender_type_display()} message on {self.intake_id} at {self.created_at:%Y-%m-%d %H:%M}"

    @property
    def is_unread(self):
        return self.sender_type == self.SENDER_CLIENT and self.read_at is None
