"""
Development settings (SQLite, eager Celery, console email).

Usage:
    export DJANGO_SETTINGS_MODULE=physio_backend.settings_dev
    python manage.py runserver

Also used by the test suite (see pyproject.toml). SQLite ignores
``select_for_update``; booking serialization is only exercised on Postgres.
"""

from copy import deepcopy

from .settings import *

DEBUG = True

ALLOWED_HOSTS = ['localhost', '127.0.0.1', '[::1]', 'testserver', '*']

# ---------------------------------------------------------
# DATABASES
# ---------------------------------------------------------

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': BASE_DIR / 'physio_dev.sqlite3',
        'OPTIONS': {'timeout': 20},
    },
}

# ---------------------------------------------------------
# API: session auth and the browsable renderer on top of JWT
# ---------------------------------------------------------

REST_FRAMEWORK = deepcopy(REST_FRAMEWORK)
REST_FRAMEWORK['DEFAULT_AUTHENTICATION_CLASSES'] = (
    'rest_framework_simplejwt.authentication.JWTAuthentication',
    'rest_framework.authentication.SessionAuthentication',
)
REST_FRAMEWORK['DEFAULT_RENDERER_CLASSES'] = (
    'rest_framework.renderers.JSONRenderer',
    'rest_framework.renderers.BrowsableAPIRenderer',
)

SIMPLE_JWT = {**SIMPLE_JWT, 'ACCESS_TOKEN_LIFETIME': timedelta(hours=8)}

# ---------------------------------------------------------
# LOGGING: booking, ledger and dispatch at DEBUG
# ---------------------------------------------------------

LOGGING = deepcopy(LOGGING)
LOGGING['loggers']['physio_backend']['level'] = os.getenv('PHYSIO_LOG_LEVEL', 'DEBUG')
LOGGING['loggers']['django.db.backends'] = {
    'handlers': ['console'],
    'level': os.getenv('PHYSIO_SQL_LOG_LEVEL', 'WARNING'),
    'propagate': False,
}

# ---------------------------------------------------------
# CELERY: appointment events run in-process
# ---------------------------------------------------------

CELERY_BROKER_URL = 'memory://'
CELERY_RESULT_BACKEND = None
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# ---------------------------------------------------------
# INTEGRATIONS: no outbound mail, short HTTP timeout
# ---------------------------------------------------------

EMAIL_BACKEND = 'django.core.mail.backends.console.EmailBackend'
INTEGRATION_HTTP_TIMEOUT = 5.0

PASSWORD_HASHERS = ['django.contrib.auth.hashers.MD5PasswordHasher']
