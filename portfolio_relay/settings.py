"""
Django settings for the Portfolio Contact Relay.

For more information on this file, see
https://docs.djangoproject.com/en/5.2/topics/settings/

For the full list of settings and their values, see
https://docs.djangoproject.com/en/5.2/ref/settings/
"""

import os
from pathlib import Path
from urllib.parse import urlparse
from dotenv import load_dotenv

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent

# Load environment variables from .env file
env_file = os.path.join(BASE_DIR, '.env.development')
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    load_dotenv()  # Try default .env


# Deployment environment ('production' enables the origin allow-list)
ENVIRONMENT = os.getenv('ENVIRONMENT', 'development')
IS_PRODUCTION = ENVIRONMENT == 'production'

# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv('SECRET_KEY')
if not SECRET_KEY:
    if IS_PRODUCTION:
        raise ValueError(
            "SECRET_KEY environment variable is not set. "
            "Please add SECRET_KEY to your .env file. "
            "You can generate one with: "
            "python -c 'from django.core.management.utils import get_random_secret_key; print(get_random_secret_key())'"
        )
    SECRET_KEY = 'django-insecure-development-only-key'

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv('DEBUG', 'False' if IS_PRODUCTION else 'True') == 'True'

ALLOWED_HOSTS = os.getenv('ALLOWED_HOSTS', 'localhost,127.0.0.1,testserver').split(',')

# Canonical site URL (Netlify-style URL variable); empty disables the origin check
SITE_URL = os.getenv('URL', '').rstrip('/')
SITE_NAME = os.getenv('SITE_NAME', urlparse(SITE_URL).netloc or 'portfolio')


# =============================================================================
# REDIS & CACHING
# =============================================================================

REDIS_URL = os.getenv('REDIS_URL', 'redis://localhost:6379/1')

# Cache configuration - uses Redis when the rate table must be shared across workers
if os.getenv('REDIS_ENABLED', 'False') == 'True':
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.redis.RedisCache',
            'LOCATION': REDIS_URL,
            'KEY_PREFIX': 'relay',
            'TIMEOUT': 300,  # 5 minutes default
        }
    }
else:
    # Development: use local memory cache
    CACHES = {
        'default': {
            'BACKEND': 'django.core.cache.backends.locmem.LocMemCache',
            'LOCATION': 'unique-snowflake',
        }
    }


# Application definition

INSTALLED_APPS = [
    'django.contrib.auth',
    'django.contrib.contenttypes',

    # Third-party apps
    'rest_framework',
    'corsheaders',

    # Local apps
    'contact',
]

MIDDLEWARE = [
    'django.middleware.security.SecurityMiddleware',
    'corsheaders.middleware.CorsMiddleware',  # CORS before CommonMiddleware
    'django.middleware.common.CommonMiddleware',
    'django.middleware.clickjacking.XFrameOptionsMiddleware',
]

ROOT_URLCONF = 'portfolio_relay.urls'

TEMPLATES = [
    {
        'BACKEND': 'django.template.backends.django.DjangoTemplates',
        'DIRS': [],
        'APP_DIRS': True,
        'OPTIONS': {
            'context_processors': [],
        },
    },
]

WSGI_APPLICATION = 'portfolio_relay.wsgi.application'


# Database
# Nothing is persisted; an in-memory database keeps the auth app importable.

DATABASES = {
    'default': {
        'ENGINE': 'django.db.backends.sqlite3',
        'NAME': ':memory:',
    }
}


# Internationalization
# https://docs.djangoproject.com/en/5.2/topics/i18n/

LANGUAGE_CODE = 'en-us'

TIME_ZONE = 'UTC'

USE_I18N = True

USE_TZ = True

# Default primary key field type
# https://docs.djangoproject.com/en/5.2/ref/settings/#default-auto-field

DEFAULT_AUTO_FIELD = 'django.db.models.BigAutoField'


# =============================================================================
# REST FRAMEWORK SETTINGS
# =============================================================================

REST_FRAMEWORK = {
    'DEFAULT_AUTHENTICATION_CLASSES': (),
    'DEFAULT_PERMISSION_CLASSES': (
        'rest_framework.permissions.AllowAny',
    ),
    'DEFAULT_RENDERER_CLASSES': (
        'rest_framework.renderers.JSONRenderer',
    ),
    'UNAUTHENTICATED_USER': None,
}


# =============================================================================
# CORS SETTINGS
# =============================================================================

# Local development origins (Netlify dev server, common dev servers)
CONTACT_DEV_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        'CONTACT_DEV_ORIGINS',
        'http://localhost:8888,http://localhost:3000,http://127.0.0.1:8888'
    ).split(',')
    if origin.strip()
]

if DEBUG:
    # Development: Allow all origins for easier testing
    CORS_ALLOW_ALL_ORIGINS = True
else:
    # Production: same allow-list the relay enforces
    CORS_ALLOWED_ORIGINS = [SITE_URL] + CONTACT_DEV_ORIGINS if SITE_URL else CONTACT_DEV_ORIGINS

CORS_ALLOW_METHODS = [
    'OPTIONS',
    'POST',
]
CORS_ALLOW_HEADERS = [
    'accept',
    'content-type',
    'origin',
    'user-agent',
    'x-requested-with',
]


# =============================================================================
# EMAIL PROVIDER SETTINGS (Resend)
# =============================================================================

# Get an API key from: https://resend.com/api-keys
RESEND_API_KEY = os.getenv('RESEND_API_KEY', '')
RESEND_API_URL = os.getenv('RESEND_API_URL', 'https://api.resend.com/emails')

# Destination inbox and sender identity for relayed messages
CONTACT_TO_EMAIL = os.getenv('TO_EMAIL', '')
CONTACT_FROM_EMAIL = os.getenv('FROM_EMAIL', 'Portfolio Contact <onboarding@resend.dev>')


# =============================================================================
# RECAPTCHA SETTINGS (Google reCAPTCHA v3)
# =============================================================================

# Verification is skipped entirely when the secret is empty
RECAPTCHA_SECRET_KEY = os.getenv('RECAPTCHA_SECRET_KEY', '')
RECAPTCHA_SITE_KEY = os.getenv('RECAPTCHA_SITE_KEY', '')
RECAPTCHA_MIN_SCORE = float(os.getenv('RECAPTCHA_MIN_SCORE', 0.5))


# =============================================================================
# CONTACT RELAY SETTINGS
# =============================================================================

# Minimum seconds between form load and submit
CONTACT_MIN_FILL_SECONDS = float(os.getenv('CONTACT_MIN_FILL_SECONDS', 3))

# Per-address rate limiting
CONTACT_RATE_LIMIT_MAX = int(os.getenv('CONTACT_RATE_LIMIT_MAX', 3))
CONTACT_RATE_LIMIT_WINDOW_SECONDS = int(os.getenv('CONTACT_RATE_LIMIT_WINDOW_SECONDS', 3600))

# 'memory' (per-process) or 'cache' (Django cache, Redis when REDIS_ENABLED)
CONTACT_RATE_STORE = os.getenv('CONTACT_RATE_STORE', 'memory')

# Timeout in seconds for the reCAPTCHA and Resend calls
OUTBOUND_REQUEST_TIMEOUT = float(os.getenv('OUTBOUND_REQUEST_TIMEOUT', 10))

# Default endpoint for the send_contact_message command
CONTACT_RELAY_URL = os.getenv('CONTACT_RELAY_URL', 'http://localhost:8000/api/send-email')


# =============================================================================
# LOGGING SETTINGS
# =============================================================================

LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
LOG_TO_FILE = os.getenv('LOG_TO_FILE', 'False') == 'True'
LOG_FILE_PATH = os.getenv('LOG_FILE_PATH', 'logs/relay.log')

LOGGING = {
    'version': 1,
    'disable_existing_loggers': False,
    'formatters': {
        'verbose': {
            'format': '{levelname} {asctime} {module} {process:d} {thread:d} {message}',
            'style': '{',
        },
        'simple': {
            'format': '{levelname} {message}',
            'style': '{',
        },
    },
    'handlers': {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': 'verbose',
        },
        'file': {
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': LOG_FILE_PATH,
            'maxBytes': 1024 * 1024 * 10,  # 10MB
            'backupCount': 5,
            'formatter': 'verbose',
        } if LOG_TO_FILE else {
            'class': 'logging.NullHandler',
        },
    },
    'root': {
        'handlers': ['console', 'file'] if LOG_TO_FILE else ['console'],
        'level': LOG_LEVEL,
    },
    'loggers': {
        'django': {
            'handlers': ['console', 'file'] if LOG_TO_FILE else ['console'],
            'level': os.getenv('DJANGO_LOG_LEVEL', 'INFO'),
            'propagate': False,
        },
    },
}


# =============================================================================
# SECURITY SETTINGS (Production)
# =============================================================================

if not DEBUG:
    SECURE_SSL_REDIRECT = os.getenv('SECURE_SSL_REDIRECT', 'True') == 'True'
    SECURE_CONTENT_TYPE_NOSNIFF = True
    X_FRAME_OPTIONS = 'DENY'
    SECURE_HSTS_SECONDS = int(os.getenv('SECURE_HSTS_SECONDS', 31536000))
    SECURE_HSTS_INCLUDE_SUBDOMAINS = os.getenv('SECURE_HSTS_INCLUDE_SUBDOMAINS', 'True') == 'True'
