from datetime import timedelta
from unittest import mock

from django.test import RequestFactory, TestCase, override_settings
from django.utils import timezone

from api import auth
from api.auth import (
    authenticate_request,
    create_api_key,
    generate_api_key,
    has_permission,
    hash_api_key,
    validate_api_key,
)
from api.models import ApiKey
from StorefrontAdmin.errors import AuthError, ForbiddenError, ValidationError


class GenerateApiKeyTests(TestCase):
    def test_format_hash_and_prefix(self):
        raw, key_hash, prefix = generate_api_key()
        self.assertTrue(raw.startswith("sfk_"))
        self.assertEqual(len(raw), len("sfk_") + 64)
        self.assertEqual(key_hash, hash_api_key(raw))
        self.assertEqual(len(key_hash), 64)
        self.assertEqual(prefix, raw[:12])

    def test_keys_are_unique(self):
        self.assertNotEqual(generate_api_key()[0], generate_api_key()[0])

    def test_raw_key_is_never_stored(self):
        api_key, raw = create_api_key("Storefront")
        stored = ApiKey.objects.get(pk=api_key.pk)
        self.assertNotEqual(stored.key_hash, raw)
        self.assertNotIn(raw, [stored.key_hash, stored.key_prefix, stored.name])
        self.assertEqual(stored.permissions, ["read"])

    def test_create_requires_name(self):
        with self.assertRaises(ValidationError):
            create_api_key("   ")

    def test_create_rejects_unknown_permission(self):
        with self.assertRaises(ValidationError) as ctx:
            create_api_key("Storefront", permissions=["read", "launch"])
        self.assertIn("launch", ctx.exception.message)
        self.assertFalse(ApiKey.objects.exists())

    def test_create_deduplicates_permissions(self):
        api_key, _ = create_api_key("Storefront", permissions=["read", "write", "read"])
        self.assertEqual(api_key.permissions, ["read", "write"])


class ValidateApiKeyTests(TestCase):
    def setUp(self):
        self.api_key, self.raw = create_api_key("Storefront", permissions=["read"])

    def assertRejected(self, header, code, message=None):
        with self.assertRaises(AuthError) as ctx:
            validate_api_key(header)
        self.assertEqual(ctx.exception.code, code)
        self.assertEqual(ctx.exception.status, 401)
        if message:
            self.assertEqual(ctx.exception.message, message)

    def test_valid_key_resolves(self):
        self.assertEqual(validate_api_key(f"Bearer {self.raw}"), self.api_key)

    def test_missing_header(self):
        self.assertRejected(None, AuthError.MISSING_HEADER, "Missing Authorization header")
        self.assertRejected("", AuthError.MISSING_HEADER)

    def test_malformed_scheme(self):
        self.assertRejected(self.raw, AuthError.MALFORMED_SCHEME)
        self.assertRejected(f"Token {self.raw}", AuthError.MALFORMED_SCHEME)
        self.assertRejected("Bearer ", AuthError.MALFORMED_SCHEME)

    def test_unknown_key(self):
        self.assertRejected(f"Bearer {self.raw}x", AuthError.INVALID_KEY, "Invalid API key")

    def test_deactivated_key(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(is_active=False)
        self.assertRejected(f"Bearer {self.raw}", AuthError.DEACTIVATED, "API key is deactivated")

    def test_expired_key(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(expires_at=timezone.now() - timedelta(seconds=1))
        self.assertRejected(f"Bearer {self.raw}", AuthError.EXPIRED, "API key has expired")

    def test_future_expiry_is_accepted(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(expires_at=timezone.now() + timedelta(days=1))
        self.assertEqual(validate_api_key(f"Bearer {self.raw}").pk, self.api_key.pk)

    def test_success_stamps_last_used(self):
        self.assertIsNone(self.api_key.last_used_at)
        before = timezone.now()
        validate_api_key(f"Bearer {self.raw}")
        self.api_key.refresh_from_db()
        self.assertIsNotNone(self.api_key.last_used_at)
        self.assertGreaterEqual(self.api_key.last_used_at, before)

    def test_failure_does_not_stamp(self):
        ApiKey.objects.filter(pk=self.api_key.pk).update(is_active=False)
        with self.assertRaises(AuthError):
            validate_api_key(f"Bearer {self.raw}")
        self.api_key.refresh_from_db()
        self.assertIsNone(self.api_key.last_used_at)

    def test_touch_failure_does_not_fail_validation(self):
        with mock.patch.object(auth.ApiKey.objects, "filter", side_effect=RuntimeError("db down")):
            auth.touch_last_used(self.api_key.pk)

    @override_settings(API_KEY_TOUCH_ASYNC=True)
    def test_async_touch_is_submitted_to_executor(self):
        with mock.patch.object(auth._touch_executor, "submit") as submit:
            validate_api_key(f"Bearer {self.raw}")
        submit.assert_called_once_with(auth._touch_in_worker, self.api_key.pk)


class HasPermissionTests(TestCase):
    def test_exact_permission(self):
        self.assertTrue(has_permission(["read"], "read"))
        self.assertFalse(has_permission(["read"], "write"))

    def test_admin_grants_everything(self):
        for perm in ["read", "write", "checkout", "webhooks", "admin"]:
            self.assertTrue(has_permission(["admin"], perm))

    def test_empty_permissions(self):
        self.assertFalse(has_permission([], "read"))
        self.assertFalse(has_permission(None, "read"))


class AuthenticateRequestTests(TestCase):
    def setUp(self):
        self.factory = RequestFactory()
        self.api_key, self.raw = create_api_key("Writer", permissions=["write"])

    def test_missing_permission_is_forbidden(self):
        request = self.factory.get("/api/external/config", HTTP_AUTHORIZATION=f"Bearer {self.raw}")
        with self.assertRaises(ForbiddenError) as ctx:
            authenticate_request(request, "read")
        self.assertEqual(ctx.exception.message, "Missing required permission: read")
        self.assertEqual(ctx.exception.code, "INSUFFICIENT_PERMISSIONS")

    def test_granted_permission_returns_key(self):
        request = self.factory.get("/api/external/config", HTTP_AUTHORIZATION=f"Bearer {self.raw}")
        self.assertEqual(authenticate_request(request, "write"), self.api_key)


class CleanPermissionsTests(TestCase):
    def test_non_string_entries_rejected(self):
        for permissions in [[["read"]], [{"read": True}], [1]]:
            with self.assertRaises(ValidationError):
                auth.clean_permissions(permissions)

    def test_default_is_read(self):
        self.assertEqual(auth.clean_permissions(None), ["read"])
