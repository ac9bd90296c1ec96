"""Test settings: in-memory database, eager Celery, fake Stripe secrets."""

from .base import *  # noqa: F401,F403

DEBUG = False

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']

CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True
CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = 'cache+memory://'

STRIPE_SECRET_KEY = 'sk_test_dummy'
STRIPE_WEBHOOK_SECRET = 'whsec_test_secret'
STRIPE_PRICE_IDS = {
    'local_player': 'price_local',
    'sand_regular': 'price_regular',
    'founders': 'price_founders',
}
PAYMENTS_WEBHOOK_DEDUP = True
