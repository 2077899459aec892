"""
Google reCAPTCHA v3 Verification Service

Verifies reCAPTCHA tokens from the contact form against Google's siteverify API.
reCAPTCHA v3 never shows a challenge; it returns a score between 0.0 (bot)
and 1.0 (human) that the caller compares against a threshold.

Documentation: https://developers.google.com/recaptcha/docs/v3
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class RecaptchaVerificationError(Exception):
    """Raised when the verification request itself fails (network, status, body)."""
    pass


@dataclass
class RecaptchaResult:
    """Parsed siteverify response."""
    success: bool
    score: Optional[float] = None
    action: Optional[str] = None
    error_codes: List[str] = field(default_factory=list)

    def passes(self, min_score: float) -> bool:
        """A missing score is not held against the token."""
        if not self.success:
            return False
        return self.score is None or self.score >= min_score


class RecaptchaService:
    """
    Service for verifying Google reCAPTCHA v3 tokens.

    Usage:
        service = RecaptchaService()
        if service.enabled:
            result = service.verify_token(token, user_ip='192.168.1.1')
            is_human = result.passes(service.min_score)
    """

    VERIFY_URL = 'https://www.google.com/recaptcha/api/siteverify'

    def __init__(self, secret_key: Optional[str] = None, timeout: Optional[float] = None):
        self.secret_key = secret_key if secret_key is not None else getattr(settings, 'RECAPTCHA_SECRET_KEY', '')
        self.min_score = getattr(settings, 'RECAPTCHA_MIN_SCORE', 0.5)
        self.timeout = timeout or getattr(settings, 'OUTBOUND_REQUEST_TIMEOUT', 10)

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    def verify_token(self, token: str, user_ip: str = None) -> RecaptchaResult:
        """
        Verify a reCAPTCHA token.

        Args:
            token: The token returned by grecaptcha.execute() on the client
            user_ip: Optional user IP address forwarded as ``remoteip``

        Returns:
            RecaptchaResult with the success flag and score

        Raises:
            RecaptchaVerificationError: If the verification request fails
        """
        payload = {
            'secret': self.secret_key,
            'response': token,
        }

        if user_ip and user_ip != 'unknown':
            payload['remoteip'] = user_ip

        try:
            response = requests.post(
                self.VERIFY_URL,
                data=payload,
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error("reCAPTCHA verification timeout")
            raise RecaptchaVerificationError("reCAPTCHA verification timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"reCAPTCHA verification network error: {e}")
            raise RecaptchaVerificationError(str(e)) from e

        if response.status_code != 200:
            logger.error(
                f"reCAPTCHA API returned status {response.status_code}: {response.text[:200]}"
            )
            raise RecaptchaVerificationError(
                f"reCAPTCHA API error: {response.status_code}"
            )

        try:
            data = response.json()
        except ValueError as e:
            raise RecaptchaVerificationError("reCAPTCHA API returned a non-JSON body") from e

        if not isinstance(data, dict):
            logger.error(f"reCAPTCHA API returned an unexpected body: {str(data)[:200]}")
            raise RecaptchaVerificationError("reCAPTCHA API returned an unexpected body")

        score = data.get('score')
        result = RecaptchaResult(
            success=bool(data.get('success')),
            score=float(score) if isinstance(score, (int, float)) else None,
            action=data.get('action'),
            error_codes=data.get('error-codes', []),
        )

        if result.success:
            logger.info(f"reCAPTCHA token verified (score={result.score})")
        else:
            logger.warning(f"reCAPTCHA verification failed: {result.error_codes}")

        return result
