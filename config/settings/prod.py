"""Production settings.

Sensitive values must come from environment variables. The service refuses
to start without the payment gateway secrets.
"""

from .base import *  # noqa: F401,F403
from .base import get_env

DEBUG = False

SECRET_KEY = get_env('DJANGO_SECRET_KEY', required=True)

ALLOWED_HOSTS = get_env('DJANGO_ALLOWED_HOSTS', '').split(',')

CSRF_COOKIE_SECURE = True
SESSION_COOKIE_SECURE = True
SECURE_PROXY_SSL_HEADER = ('HTTP_X_FORWARDED_PROTO', 'https')

STRIPE_SECRET_KEY = get_env('STRIPE_SECRET_KEY', required=True)
STRIPE_WEBHOOK_SECRET = get_env('STRIPE_WEBHOOK_SECRET', required=True)
