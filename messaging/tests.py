import json
from datetime import timedelta

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from django.utils import timezone

from StorefrontAdmin.errors import NotFoundError, ValidationError

from . import services
from .models import ProjectIntake, ProjectMessage


class MessagingServiceTests(TestCase):
    def setUp(self):
        self.intake = ProjectIntake.objects.create(project_name="Website", client_name="Ada", client_email="ada@example.com")
        self.other = ProjectIntake.objects.create(project_name="Logo", client_email="bob@example.com")

    def send_client(self, intake, content="Hello"):
        return services.send_message(intake.pk, content, ProjectMessage.SENDER_CLIENT, "Ada", "ada@example.com")

    def test_send_creates_unread_message(self):
        message = self.send_client(self.intake)
        self.assertIsNone(message.read_at)
        self.assertEqual(message.intake, self.intake)

    def test_missing_fields(self):
        for args in [
            (self.intake.pk, "", "CLIENT", "Ada", "ada@example.com"),
            (self.intake.pk, "Hi", "", "Ada", "ada@example.com"),
            (self.intake.pk, "Hi", "CLIENT", "Ada", ""),
            (None, "Hi", "CLIENT", "Ada", "ada@example.com"),
        ]:
            with self.assertRaises(ValidationError) as ctx:
                services.send_message(*args)
            self.assertEqual(ctx.exception.message, "Missing fields")
        self.assertFalse(ProjectMessage.objects.exists())

    def test_unknown_sender_type(self):
        with self.assertRaises(ValidationError):
            services.send_message(self.intake.pk, "Hi", "BOT", "", "bot@example.com")

    @override_settings(MESSAGING_MAX_CONTENT_LENGTH=5)
    def test_content_length_limit(self):
        with self.assertRaises(ValidationError):
            self.send_client(self.intake, "too long")

    def test_missing_intake(self):
        with self.assertRaises(NotFoundError):
            services.send_message(9999, "Hi", "CLIENT", "", "ada@example.com")
        with self.assertRaises(NotFoundError):
            services.list_messages(9999)

    def test_thread_is_ordered_by_created_at_then_id(self):
        now = timezone.now()
        late = ProjectMessage.objects.create(intake=self.intake, content="late", sender_type="ADMIN", sender_email="s@example.com", created_at=now)
        early = ProjectMessage.objects.create(intake=self.intake, content="early", sender_type="CLIENT", sender_email="a@example.com", created_at=now - timedelta(minutes=5))
        tie = ProjectMessage.objects.create(intake=self.intake, content="tie", sender_type="CLIENT", sender_email="a@example.com", created_at=now)
        self.assertEqual(services.list_messages(self.intake.pk), [early, late, tie])

    def test_unread_counts_and_mark_read(self):
        self.send_client(self.intake, "one")
        self.send_client(self.intake, "two")
        services.send_message(self.intake.pk, "reply", ProjectMessage.SENDER_ADMIN, "Staff", "staff@example.com")
        self.send_client(self.other, "elsewhere")

        self.assertEqual(services.unread_count(), 3)
        self.assertEqual(services.unread_count(self.intake.pk), 2)

        self.assertEqual(services.mark_read(self.intake.pk), 2)
        self.assertEqual(services.unread_count(), 1)
        self.assertEqual(services.unread_count(self.other.pk), 1)

        # Idempotent: nothing left to stamp.
        self.assertEqual(services.mark_read(self.intake.pk), 0)

    def test_mark_read_leaves_admin_messages_and_timestamps_alone(self):
        first = self.send_client(self.intake)
        reply = services.send_message(self.intake.pk, "reply", ProjectMessage.SENDER_ADMIN, "Staff", "staff@example.com")
        services.mark_read(self.intake.pk)
        first.refresh_from_db()
        stamped = first.read_at
        self.assertIsNotNone(stamped)
        reply.refresh_from_db()
        self.assertIsNone(reply.read_at)

        services.mark_read(self.intake.pk)
        first.refresh_from_db()
        self.assertEqual(first.read_at, stamped)


class MessagingViewTests(TestCase):
    def setUp(self):
        User = get_user_model()
        self.staff = User.objects.create_user(username="staff", email="staff@example.com", password="pw", is_staff=True)
        self.ada = User.objects.create_user(username="ada", email="Ada@example.com", password="pw", first_name="Ada")
        self.mallory = User.objects.create_user(username="mallory", email="mallory@example.com", password="pw")
        self.intake = ProjectIntake.objects.create(project_name="Website", client_email="ada@example.com")

    def post_message(self, payload):
        return self.client.post("/api/messages", data=json.dumps(payload), content_type="application/json")

    def test_anonymous_is_rejected(self):
        response = self.client.get(f"/api/messages?intakeId={self.intake.pk}")
        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "AUTH_REQUIRED")

    def test_client_sends_and_lists_own_thread(self):
        self.client.force_login(self.ada)
        response = self.post_message({"intakeId": self.intake.pk, "content": "Hi there"})
        self.assertEqual(response.status_code, 201)
        message = response.json()["message"]
        self.assertEqual(message["senderType"], "CLIENT")
        self.assertEqual(message["senderEmail"], "Ada@example.com")
        self.assertIsNone(message["readAt"])

        listing = self.client.get(f"/api/messages?intakeId={self.intake.pk}").json()["messages"]
        self.assertEqual([m["content"] for m in listing], ["Hi there"])

    def test_client_cannot_send_as_admin(self):
        self.client.force_login(self.ada)
        response = self.post_message({"intakeId": self.intake.pk, "content": "Hi", "senderType": "ADMIN"})
        self.assertEqual(response.status_code, 403)
        self.assertFalse(ProjectMessage.objects.exists())

    def test_other_clients_get_404(self):
        self.client.force_login(self.mallory)
        response = self.client.get(f"/api/messages?intakeId={self.intake.pk}")
        self.assertEqual(response.status_code, 404)
        response = self.post_message({"intakeId": self.intake.pk, "content": "Hi"})
        self.assertEqual(response.status_code, 404)

    def test_staff_flow(self):
        ProjectMessage.objects.create(intake=self.intake, content="Question", sender_type="CLIENT", sender_email="ada@example.com")
        self.client.force_login(self.staff)

        self.assertEqual(self.client.get("/api/messages/unread").json(), {"count": 1})
        self.assertEqual(self.client.get(f"/api/messages/unread?intakeId={self.intake.pk}").json(), {"count": 1})

        response = self.post_message({
            "intakeId": self.intake.pk,
            "content": "Answer",
            "senderType": "ADMIN",
            "senderName": "Support",
            "senderEmail": "support@example.com",
        })
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["message"]["senderType"], "ADMIN")

        response = self.client.patch("/api/messages/read", data=json.dumps({"intakeId": self.intake.pk}), content_type="application/json")
        self.assertEqual(response.json(), {"ok": True, "updated": 1})
        self.assertEqual(self.client.get("/api/messages/unread").json(), {"count": 0})

    def test_unread_and_mark_read_are_staff_only(self):
        self.client.force_login(self.ada)
        self.assertEqual(self.client.get("/api/messages/unread").status_code, 403)
        response = self.client.patch("/api/messages/read", data=json.dumps({"intakeId": self.intake.pk}), content_type="application/json")
        self.assertEqual(response.status_code, 403)

    def test_missing_fields_from_staff(self):
        self.client.force_login(self.staff)
        response = self.post_message({"intakeId": self.intake.pk, "content": "Hi"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["error"], "Missing fields")

    def test_missing_intake_id_is_a_bad_request(self):
        self.client.force_login(self.staff)
        responses = [
            self.client.get("/api/messages"),
            self.post_message({"content": "Hi", "senderType": "ADMIN", "senderEmail": "s@example.com"}),
            self.client.patch("/api/messages/read", data=json.dumps({}), content_type="application/json"),
        ]
        for response in responses:
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.json(), {"error": "intakeId required", "code": "VALIDATION_ERROR"})

    def test_unknown_intake_id_is_not_found(self):
        self.client.force_login(self.staff)
        self.assertEqual(self.client.get("/api/messages?intakeId=9999").status_code, 404)
