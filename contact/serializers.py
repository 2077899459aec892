"""
Contact Relay Serializers

Coerces the untrusted JSON body into a Submission. Nothing here rejects
blank values: the gate decides, in order, which check fails first.
"""
from dataclasses import dataclass
from typing import Optional

from rest_framework import serializers


@dataclass
class Submission:
    """One visitor message as received by the relay."""
    name: str = ''
    email: str = ''
    subject: str = ''
    message: str = ''
    honeypot: str = ''
    timestamp: str = ''
    recaptcha_token: Optional[str] = None


class SubmissionSerializer(serializers.Serializer):
    """
    Public contact form payload.

    Field names follow the browser form: ``_gotcha`` is the honeypot and
    ``_timestamp`` the form load time in epoch milliseconds.
    """

    name = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    email = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    subject = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)
    message = serializers.CharField(required=False, allow_blank=True, allow_null=True, trim_whitespace=False)

    # Honeypot field for spam prevention (should be empty)
    _gotcha = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        help_text="Honeypot field - should be empty"
    )

    _timestamp = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        help_text="Form load time, epoch milliseconds"
    )

    recaptchaToken = serializers.CharField(required=False, allow_blank=True, allow_null=True)

    def to_submission(self) -> Submission:
        data = self.validated_data
        return Submission(
            name=data.get('name') or '',
            email=data.get('email') or '',
            subject=data.get('subject') or '',
            message=data.get('message') or '',
            honeypot=data.get('_gotcha') or '',
            timestamp=data.get('_timestamp') or '',
            recaptcha_token=data.get('recaptchaToken') or None,
        )
