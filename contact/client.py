"""
Contact Form Submission Client

Python counterpart of the portfolio's browser form script: validates the
fields locally, optionally attaches a reCAPTCHA token, posts once to the
relay and turns the reply into the message shown to the visitor.

Usage:
    client = SubmissionClient('https://example.com/api/send-email')
    client.fill(name='Ada', email='ada@example.com', subject='Hi', message='Hello!')
    result = client.submit()
    print(result.message)
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import requests

from .sanitization import is_valid_email

logger = logging.getLogger(__name__)

# Site key shipped in the form template before a real key is configured
PLACEHOLDER_SITE_KEY = '6LcXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXXX'
RECAPTCHA_ACTION = 'contact'

FILL_ALL_FIELDS_MESSAGE = 'Please fill in all fields.'
INVALID_EMAIL_MESSAGE = 'Please enter a valid email address.'
GENERIC_FAILURE_MESSAGE = 'Something went wrong. Please try again later.'

VISIBLE_FIELDS = ('name', 'email', 'subject', 'message')


@dataclass
class ClientResult:
    """What the form renders after a submit attempt."""
    status: str
    message: str
    request_sent: bool = False

    @property
    def ok(self) -> bool:
        return self.status == 'success'


class SubmissionClient:
    """
    One contact form instance.

    Args:
        endpoint: Relay URL (``/api/send-email``)
        site_key: reCAPTCHA site key; empty or placeholder disables tokens
        token_provider: Callable ``(site_key, action) -> token``; any error it
            raises is logged and the submission continues without a token
        session: Optional requests.Session
        timeout: Request timeout in seconds
    """

    def __init__(
        self,
        endpoint: str,
        site_key: str = '',
        token_provider: Optional[Callable[[str, str], str]] = None,
        session: Optional[requests.Session] = None,
        timeout: float = 10,
        clock=time.time,
    ):
        self.endpoint = endpoint
        self.site_key = site_key
        self.token_provider = token_provider
        self.session = session or requests.Session()
        self.timeout = timeout
        self.clock = clock

        self.fields: Dict[str, str] = {}
        self.honeypot = ''
        self.loaded_at = ''
        self.submit_enabled = True
        self.reset_form()
        self.arm_timestamp()

    def arm_timestamp(self):
        """Record the form load time (epoch ms) sent as ``_timestamp``."""
        self.loaded_at = str(int(self.clock() * 1000))

    def reset_form(self):
        self.fields = {name: '' for name in VISIBLE_FIELDS}
        self.honeypot = ''

    def fill(self, **values):
        for name, value in values.items():
            if name == '_gotcha':
                self.honeypot = value
            elif name in VISIBLE_FIELDS:
                self.fields[name] = value
            else:
                raise KeyError(f'Unknown form field: {name}')

    def submit(self) -> ClientResult:
        """Run one submission. The submit control is re-enabled whatever happens."""
        self.submit_enabled = False
        try:
            return self._submit()
        finally:
            self.submit_enabled = True

    def _submit(self) -> ClientResult:
        form_data = {name: (self.fields.get(name) or '').strip() for name in VISIBLE_FIELDS}
        form_data['_gotcha'] = self.honeypot or ''
        form_data['_timestamp'] = self.loaded_at or str(int(self.clock() * 1000))

        if not all(form_data[name] for name in VISIBLE_FIELDS):
            return ClientResult('error', FILL_ALL_FIELDS_MESSAGE)

        if not is_valid_email(form_data['email']):
            return ClientResult('error', INVALID_EMAIL_MESSAGE)

        token = self._get_recaptcha_token()
        if token:
            form_data['recaptchaToken'] = token

        try:
            response = self.session.post(self.endpoint, json=form_data, timeout=self.timeout)
            data = response.json()
        except (requests.exceptions.RequestException, ValueError) as e:
            logger.error(f"Contact form error: {e}")
            return ClientResult('error', GENERIC_FAILURE_MESSAGE, request_sent=True)

        if not isinstance(data, dict):
            return ClientResult('error', GENERIC_FAILURE_MESSAGE, request_sent=True)

        if data.get('status') == 'success':
            self.reset_form()
            self.arm_timestamp()
            return ClientResult('success', data.get('message') or '', request_sent=True)

        return ClientResult('error', data.get('message') or GENERIC_FAILURE_MESSAGE, request_sent=True)

    def _get_recaptcha_token(self) -> Optional[str]:
        if not self.token_provider or not self.site_key or self.site_key == PLACEHOLDER_SITE_KEY:
            return None
        try:
            return self.token_provider(self.site_key, RECAPTCHA_ACTION)
        except Exception as e:
            logger.warning(f"reCAPTCHA not available: {e}")
            return None
