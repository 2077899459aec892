"""
Input Sanitization for Contact Submissions

A denylist cleaner applied to visitor-supplied text before it is placed in
the outgoing email, plus the email shape check shared with the client.
"""
import re

# Simple local@domain.tld shape; the same pattern the browser form uses
EMAIL_PATTERN = re.compile(r'[^\s@]+@[^\s@]+\.[^\s@]+')

MAX_NAME_LENGTH = 1000
MAX_SUBJECT_LENGTH = 1000
MAX_MESSAGE_LENGTH = 5000

DANGEROUS_PATTERNS = [
    re.compile(r'[<>]'),
    re.compile(r'javascript:', re.IGNORECASE),
    re.compile(r'on\w+\s*=', re.IGNORECASE),  # onclick=, onerror=, etc.
    re.compile(r'data:', re.IGNORECASE),
]


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_PATTERN.fullmatch(email) is not None


def strip_dangerous(text: str) -> str:
    """
    Remove angle brackets, script URI schemes and inline event handlers.

    Patterns are removed repeatedly until none remain, so fragments that
    reassemble after one removal (``javajavascript:script:``) are caught too.
    """
    previous = None
    while text != previous:
        previous = text
        for pattern in DANGEROUS_PATTERNS:
            text = pattern.sub('', text)
    return text


def sanitize_text(text: str, max_length: int = MAX_NAME_LENGTH) -> str:
    """
    Sanitize text input and cap its length.

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length after cleaning

    Returns:
        Sanitized text; calling this again on the result returns it unchanged
    """
    if not text:
        return ''

    text = strip_dangerous(text).strip()

    if len(text) > max_length:
        text = text[:max_length].rstrip()

    return text
