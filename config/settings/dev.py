"""Development settings.

Extends the base settings with debug mode and console email. Do not use
these settings in production!
"""

from .base import *  # noqa: F401,F403

DEBUG = True

ALLOWED_HOSTS = ['*']

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
