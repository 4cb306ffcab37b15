import logging

from allauth.account.adapter import DefaultAccountAdapter
from django.conf import settings
from django.urls import reverse
from django.utils.crypto import get_random_string

logger = logging.getLogger("StorefrontAdmin.accounts")


class AccountAdapter(DefaultAccountAdapter):
    def is_open_for_signup(self, request):
        """
        Clients may register for an account unless registration has been
        switched off. Staff accounts are only ever created by an admin.
        """
        return getattr(settings, "ACCOUNT_ALLOW_REGISTRATION", True)

    def save_user(self, request, user, form, commit=True):
        """
        Attach any project intakes submitted under the new account's email so
        the client can read their message threads straight away.
        """
        user = super().save_user(request, user, form, commit=commit)
        if commit and user.email:
            claim_intakes(user)
        return user

    def get_login_redirect_url(self, request):
        if request.user.is_staff:
            return reverse("admin:index")
        return super().get_login_redirect_url(request)

    def generate_login_code(self) -> str:
        return get_random_string(length=6, allowed_chars="0123456789")

    def send_mail(self, template_prefix, email, context):
        """
        Suppresses the 'unknown_account' email so login-by-code requests for
        addresses we don't know about don't reveal anything.
        """
        if template_prefix == "account/email/unknown_account":
            return
        super().send_mail(template_prefix, email, context)

    def format_email_subject(self, subject):
        return subject


def claim_intakes(user) -> int:
    from messaging.models import ProjectIntake

    claimed = ProjectIntake.objects.filter(client__isnull=True, client_email__iexact=user.email).update(client=user)
    if claimed:
        logger.info("Linked %d project intake(s) to user %s", claimed, user.pk)
    return claimed
