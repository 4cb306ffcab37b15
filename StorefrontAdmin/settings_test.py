from .settings import *  # noqa: F401,F403

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]
EMAIL_BACKEND = "django.core.mail.backends.locmem.EmailBackend"

# Run the last-used stamp inline so tests see it without a worker thread.
API_KEY_TOUCH_ASYNC = False

STRIPE_SECRET_KEY = ""
STRIPE_PUBLISHABLE_KEY = ""
