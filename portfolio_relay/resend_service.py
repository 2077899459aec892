"""
Resend Email Service

Sends transactional email through the Resend HTTP API.

Official Resend API Documentation:
https://resend.com/docs/api-reference/emails/send-email
"""
import logging
from typing import Dict, List, Optional, Union

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


class ResendError(Exception):
    """Raised when Resend rejects a message or cannot be reached."""
    def __init__(self, message: str, status_code: int = None, details: dict = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or {}


class ResendService:
    """
    Service for sending email via the Resend API.

    Usage:
        service = ResendService()
        email_id = service.send_email(
            to='me@example.com',
            subject='Hello',
            text='Plain body',
            html='<p>HTML body</p>',
            reply_to='visitor@example.com',
        )
    """

    def __init__(self, api_key: Optional[str] = None, timeout: Optional[float] = None):
        """Initialize with credentials from settings unless given explicitly."""
        self.api_key = api_key if api_key is not None else getattr(settings, 'RESEND_API_KEY', '')
        self.api_url = getattr(settings, 'RESEND_API_URL', 'https://api.resend.com/emails')
        self.from_email = getattr(settings, 'CONTACT_FROM_EMAIL', 'Portfolio Contact <onboarding@resend.dev>')
        self.timeout = timeout or getattr(settings, 'OUTBOUND_REQUEST_TIMEOUT', 10)

    def send_email(
        self,
        to: Union[str, List[str]],
        subject: str,
        text: str,
        html: str,
        reply_to: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send one email.

        Args:
            to: Recipient address or list of addresses
            subject: Subject line
            text: Plain-text body
            html: HTML body
            reply_to: Optional Reply-To address

        Returns:
            The Resend email id, when the API returns one

        Raises:
            ResendError: On a non-2xx response or a transport failure
        """
        payload: Dict = {
            'from': self.from_email,
            'to': [to] if isinstance(to, str) else list(to),
            'subject': subject,
            'text': text,
            'html': html,
        }
        if reply_to:
            payload['reply_to'] = reply_to

        try:
            response = requests.post(
                self.api_url,
                json=payload,
                headers={
                    'Authorization': f'Bearer {self.api_key}',
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout
            )
        except requests.exceptions.Timeout as e:
            logger.error("Timeout sending email via Resend")
            raise ResendError("Resend request timed out") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error sending email via Resend: {e}")
            raise ResendError(str(e)) from e

        if not response.ok:
            try:
                error_data = response.json()
            except ValueError:
                error_data = {'body': response.text[:500]}

            logger.error(
                f"Resend API error. Status: {response.status_code}, Error: {error_data}"
            )
            raise ResendError(
                error_data.get('message', 'Resend API error') if isinstance(error_data, dict) else 'Resend API error',
                status_code=response.status_code,
                details=error_data if isinstance(error_data, dict) else {},
            )

        try:
            data = response.json()
        except ValueError:
            data = {}

        return data.get('id') if isinstance(data, dict) else None
