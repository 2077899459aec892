"""
Shared pytest fixtures for the contact relay tests.
"""
import time

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient

from contact.rate_limiting import get_rate_store


@pytest.fixture(autouse=True)
def clear_rate_limits():
    """Clear the rate table before and after each test to prevent pollution."""
    get_rate_store().clear()
    cache.clear()
    yield
    get_rate_store().clear()
    cache.clear()


@pytest.fixture
def api_client():
    """API client for making requests."""
    return APIClient()


@pytest.fixture
def relay_settings(settings):
    """Fully configured relay with reCAPTCHA off and the origin check skipped."""
    settings.RESEND_API_KEY = 're_test_key'
    settings.CONTACT_TO_EMAIL = 'owner@example.com'
    settings.CONTACT_FROM_EMAIL = 'Portfolio Contact <onboarding@resend.dev>'
    settings.RECAPTCHA_SECRET_KEY = ''
    settings.IS_PRODUCTION = False
    settings.SITE_URL = ''
    settings.SITE_NAME = 'portfolio.example.com'
    settings.CONTACT_RATE_STORE = 'memory'
    settings.CONTACT_RATE_LIMIT_MAX = 3
    settings.CONTACT_RATE_LIMIT_WINDOW_SECONDS = 3600
    settings.CONTACT_MIN_FILL_SECONDS = 3
    return settings


def build_payload(seconds_ago=10, **overrides):
    """A contact form body whose form was loaded ``seconds_ago`` seconds ago."""
    data = {
        'name': 'Ada Lovelace',
        'email': 'ada@example.com',
        'subject': 'Project inquiry',
        'message': 'I would love to talk about a collaboration.',
        '_gotcha': '',
        '_timestamp': str(int(time.time() * 1000) - int(seconds_ago * 1000)),
    }
    data.update(overrides)
    return data


@pytest.fixture
def make_payload():
    """Factory for contact form bodies."""
    return build_payload


@pytest.fixture
def valid_payload():
    return build_payload()
