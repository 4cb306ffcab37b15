import json

from django.contrib.auth import get_user_model
from django.http import Http404, JsonResponse
from django.test import RequestFactory, TestCase, override_settings

from StorefrontAdmin.adapter import AccountAdapter, claim_intakes
from StorefrontAdmin.decorators import json_view, read_json
from StorefrontAdmin.errors import ConflictError, ValidationError


class LoginRequiredMiddlewareTests(TestCase):
    def test_anonymous_page_redirects_to_login(self):
        response = self.client.get("/")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response["Location"].startswith("/accounts/login/?next=/"))

    def test_api_paths_are_not_redirected(self):
        response = self.client.get("/api/messages/unread")
        self.assertEqual(response.status_code, 401)

    def test_admin_keeps_its_own_login(self):
        response = self.client.get("/admin/")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response["Location"].startswith("/admin/login/"))

    def test_unknown_page_still_redirects(self):
        response = self.client.get("/nowhere/?a=1")
        self.assertEqual(response.status_code, 302)
        self.assertTrue(response["Location"].startswith("/accounts/login/?next="))

    def test_authenticated_user_passes(self):
        user = get_user_model().objects.create_user(username="staff", password="pw", is_staff=True)
        self.client.force_login(user)
        response = self.client.get("/")
        self.assertEqual(response.status_code, 302)
        self.assertEqual(response["Location"], "/admin/")


class JsonViewTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()

    def test_api_error_becomes_json(self):
        @json_view
        def view(request):
            raise ConflictError("Already there")

        response = view(self.factory.get("/"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(json.loads(response.content), {"error": "Already there", "code": "CONFLICT"})

    def test_http404_becomes_not_found(self):
        @json_view
        def view(request):
            raise Http404

        self.assertEqual(view(self.factory.get("/")).status_code, 404)

    def test_unexpected_error_is_hidden(self):
        @json_view
        def view(request):
            raise RuntimeError("secret details")

        with self.assertLogs("StorefrontAdmin.requests", level="ERROR"):
            response = view(self.factory.get("/"))
        self.assertEqual(response.status_code, 500)
        self.assertNotIn("secret details", response.content.decode())
        self.assertEqual(json.loads(response.content)["code"], "INTERNAL_ERROR")

    def test_success_passes_through(self):
        @json_view
        def view(request):
            return JsonResponse({"ok": True})

        self.assertEqual(view(self.factory.get("/")).status_code, 200)

    def test_read_json(self):
        request = self.factory.post("/", data="[1, 2]", content_type="application/json")
        with self.assertRaises(ValidationError):
            read_json(request)
        self.assertEqual(read_json(self.factory.post("/", data="", content_type="application/json")), {})


class AccountAdapterTests(TestCase):
    def setUp(self):
        self.adapter = AccountAdapter()

    def test_login_code_is_six_digits(self):
        code = self.adapter.generate_login_code()
        self.assertEqual(len(code), 6)
        self.assertTrue(code.isdigit())

    @override_settings(ACCOUNT_ALLOW_REGISTRATION=False)
    def test_signup_can_be_closed(self):
        self.assertFalse(self.adapter.is_open_for_signup(RequestFactory().get("/")))

    def test_subject_is_not_prefixed(self):
        self.assertEqual(self.adapter.format_email_subject("Your code"), "Your code")

    def test_staff_login_redirects_to_admin(self):
        request = RequestFactory().get("/")
        request.user = get_user_model().objects.create_user(username="staff", password="pw", is_staff=True)
        self.assertEqual(self.adapter.get_login_redirect_url(request), "/admin/")

    def test_claim_intakes_links_by_email(self):
        from messaging.models import ProjectIntake

        intake = ProjectIntake.objects.create(project_name="Website", client_email="Ada@Example.com")
        user = get_user_model().objects.create_user(username="ada", email="ada@example.com", password="pw")
        self.assertEqual(claim_intakes(user), 1)
        intake.refresh_from_db()
        self.assertEqual(intake.client, user)
        self.assertEqual(claim_intakes(user), 0)
