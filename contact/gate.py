"""
Contact Relay Gate

Decides whether a contact form submission is forwarded by email. Checks run
in a fixed order and the first failing check determines the response:

    method -> configuration -> origin -> body -> honeypot -> timing
    -> reCAPTCHA -> required fields -> email format -> rate limit
    -> sanitize -> dispatch

Each step takes the RelayContext and either returns (continue) or raises a
RelayError that becomes the Outcome.
"""
import json
import logging
import re
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from django.conf import settings
from django.core.exceptions import RequestDataTooBig

from portfolio_relay.recaptcha_service import RecaptchaService, RecaptchaVerificationError
from portfolio_relay.resend_service import ResendError, ResendService

from .emails import build_contact_email
from .exceptions import (
    AntiAbuseRejection,
    AuthorizationError,
    ClientInputError,
    ConfigurationError,
    HoneypotTriggered,
    MethodNotAllowed,
    RateLimitExceeded,
    RelayError,
    UpstreamError,
)
from .rate_limiting import RateLimiter, get_client_ip, get_rate_limiter
from .sanitization import (
    MAX_MESSAGE_LENGTH,
    MAX_NAME_LENGTH,
    MAX_SUBJECT_LENGTH,
    is_valid_email,
    sanitize_text,
)
from .serializers import Submission, SubmissionSerializer

logger = logging.getLogger(__name__)

SUCCESS_MESSAGE = "Message sent successfully! I'll get back to you soon."

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


@dataclass
class Outcome:
    """The only thing returned to the client."""
    status: str
    message: str
    status_code: int = 200
    retry_after: Optional[int] = None

    @classmethod
    def success(cls, message: str, status_code: int = 200) -> 'Outcome':
        return cls('success', message, status_code)

    @classmethod
    def from_error(cls, error: RelayError) -> 'Outcome':
        return cls(
            'error',
            error.message,
            error.status_code,
            retry_after=getattr(error, 'retry_after', None),
        )

    @property
    def ok(self) -> bool:
        return self.status == 'success'

    def as_dict(self):
        return {'status': self.status, 'message': self.message}


@dataclass
class RelayContext:
    """State accumulated while one request walks the chain."""
    request: object
    now_ms: int
    client_ip: str
    submission: Optional[Submission] = None
    clean_name: str = ''
    clean_subject: str = ''
    clean_message: str = ''
    email_id: Optional[str] = None


def parse_epoch_ms(value) -> Optional[int]:
    """
    Read the leading integer of a client timestamp.

    Returns None for missing, unparseable or zero values.
    """
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if not match:
        return None
    return int(match.group(1)) or None


class RelayGate:
    """
    Spam-filtering and rate-limiting gate in front of the email provider.

    Collaborators can be injected for tests; anything not given is built from
    settings on every request so configuration changes apply immediately.
    """

    steps = (
        'check_method',
        'check_configuration',
        'check_origin',
        'parse_body',
        'check_honeypot',
        'check_timing',
        'verify_recaptcha',
        'check_required_fields',
        'check_email_format',
        'check_rate_limit',
        'sanitize',
        'dispatch',
    )

    def __init__(
        self,
        rate_limiter: Optional[RateLimiter] = None,
        email_service: Optional[ResendService] = None,
        recaptcha_service: Optional[RecaptchaService] = None,
        clock=time.time,
    ):
        self.rate_limiter = rate_limiter
        self.email_service = email_service
        self.recaptcha_service = recaptcha_service
        self.clock = clock

    def handle(self, request) -> Outcome:
        """Run every check against one HTTP request and return its Outcome."""
        context = RelayContext(
            request=request,
            now_ms=int(self.clock() * 1000),
            client_ip=get_client_ip(request),
        )

        try:
            for step in self.steps:
                getattr(self, step)(context)
        except HoneypotTriggered as e:
            # Look like a normal success to the sender
            return Outcome.success(e.message)
        except RelayError as e:
            return Outcome.from_error(e)

        return Outcome.success(SUCCESS_MESSAGE)

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    def check_method(self, context):
        if context.request.method != 'POST':
            raise MethodNotAllowed()

    def check_configuration(self, context):
        if not settings.RESEND_API_KEY or not settings.CONTACT_TO_EMAIL:
            logger.error("Contact relay is missing email provider credentials or destination address")
            raise ConfigurationError()

    def check_origin(self, context):
        """Production only; an unset SITE_URL disables the allow-list."""
        if not settings.IS_PRODUCTION or not settings.SITE_URL:
            return

        headers = context.request.headers
        origin = headers.get('Origin', '')
        referer = headers.get('Referer', '')
        allowed_origins = [settings.SITE_URL] + list(settings.CONTACT_DEV_ORIGINS)

        for allowed in allowed_origins:
            if allowed and (origin.startswith(allowed) or referer.startswith(allowed)):
                return

        logger.warning(f"Blocked request from unauthorized origin: {origin or referer or '-'}")
        raise AuthorizationError()

    def parse_body(self, context):
        try:
            payload = json.loads(context.request.body)
        except RequestDataTooBig:
            logger.warning(f"Rejected oversized contact payload (ip={context.client_ip})")
            raise ClientInputError()
        except ValueError:
            raise ClientInputError()

        if not isinstance(payload, dict):
            raise ClientInputError()

        serializer = SubmissionSerializer(data=payload)
        if not serializer.is_valid():
            logger.info(f"Rejected malformed contact payload: {serializer.errors}")
            raise ClientInputError()

        context.submission = serializer.to_submission()

    def check_honeypot(self, context):
        if context.submission.honeypot.strip():
            logger.warning(f"Honeypot triggered, likely bot submission (ip={context.client_ip})")
            raise HoneypotTriggered()

    def check_timing(self, context):
        loaded_at = parse_epoch_ms(context.submission.timestamp)
        if loaded_at is None:
            # Falls back to "now": the check passes through
            logger.warning("Contact submission without a usable form timestamp")
            return

        elapsed = (context.now_ms - loaded_at) / 1000
        if elapsed < settings.CONTACT_MIN_FILL_SECONDS:
            logger.warning(f"Form submitted too quickly: {elapsed} seconds")
            raise AntiAbuseRejection('Please take your time filling out the form.')

    def verify_recaptcha(self, context):
        service = self.recaptcha_service or RecaptchaService()
        token = context.submission.recaptcha_token
        if not service.enabled or not token:
            return

        try:
            result = service.verify_token(token, user_ip=context.client_ip)
        except RecaptchaVerificationError as e:
            # Fail open: an outage at Google must not block real visitors
            logger.error(f"reCAPTCHA verification error, continuing without it: {e}")
            return

        if not result.passes(service.min_score):
            logger.warning(f"reCAPTCHA failed: success={result.success} score={result.score}")
            raise AntiAbuseRejection('Security verification failed. Please try again.')

    def check_required_fields(self, context):
        submission = context.submission
        values = (submission.name, submission.email, submission.subject, submission.message)
        if not all(value.strip() for value in values):
            raise ClientInputError('All fields are required.')

    def check_email_format(self, context):
        if not is_valid_email(context.submission.email):
            raise ClientInputError('Invalid email address.')

    def check_rate_limit(self, context):
        limiter = self.rate_limiter or get_rate_limiter()
        email = context.submission.email
        allowed, retry_after = limiter.check_and_increment(email, context.now_ms)
        if not allowed:
            logger.warning(f"Rate limit exceeded for: {email.lower()}")
            raise RateLimitExceeded(retry_after=retry_after)

    def sanitize(self, context):
        submission = context.submission
        context.clean_name = sanitize_text(submission.name, MAX_NAME_LENGTH)
        context.clean_subject = sanitize_text(submission.subject, MAX_SUBJECT_LENGTH)
        context.clean_message = sanitize_text(submission.message, MAX_MESSAGE_LENGTH)

    def dispatch(self, context):
        submission = context.submission
        timestamp = datetime.fromtimestamp(context.now_ms / 1000, tz=timezone.utc)

        email = build_contact_email(
            name=context.clean_name,
            email=submission.email,
            subject=context.clean_subject,
            message=context.clean_message,
            timestamp=timestamp.isoformat(timespec='milliseconds'),
            client_ip=context.client_ip,
        )

        service = self.email_service or ResendService()
        try:
            context.email_id = service.send_email(
                to=settings.CONTACT_TO_EMAIL,
                subject=email.subject,
                text=email.text,
                html=email.html,
                reply_to=submission.email,
            )
        except ResendError as e:
            logger.error(f"Error sending contact email: {e}")
            raise UpstreamError()

        logger.info(f"Email sent successfully from {submission.email} at {timestamp.isoformat()}")


# Shared instance used by the view
relay_gate = RelayGate()
