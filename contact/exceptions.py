"""
Contact Relay Errors

Every rejection raised inside the relay gate carries the HTTP status and the
user-facing message that end up in the JSON response. Messages are kept
deliberately generic.
"""


class RelayError(Exception):
    """Base class for gate rejections."""
    status_code = 400
    default_message = 'Invalid request.'

    def __init__(self, message: str = None, status_code: int = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class MethodNotAllowed(RelayError):
    status_code = 405
    default_message = 'Method not allowed'


class ClientInputError(RelayError):
    """Missing or malformed fields."""
    status_code = 400
    default_message = 'Invalid request body'


class AntiAbuseRejection(RelayError):
    """Timing, verification or rate-limit rejection."""
    status_code = 400
    default_message = 'Security verification failed. Please try again.'


class RateLimitExceeded(AntiAbuseRejection):
    status_code = 429
    default_message = 'Too many messages. Please try again later.'

    def __init__(self, retry_after: int = 0, message: str = None):
        super().__init__(message)
        self.retry_after = retry_after


class AuthorizationError(RelayError):
    """Request did not come from an allowed origin."""
    status_code = 403
    default_message = 'Forbidden'


class ConfigurationError(RelayError):
    """Provider credentials or destination missing. Never names the setting."""
    status_code = 500
    default_message = 'Server configuration error'


class UpstreamError(RelayError):
    """The email provider failed."""
    status_code = 500
    default_message = 'Failed to send message. Please try again later.'


class HoneypotTriggered(RelayError):
    """Automated submission; answered with a success outcome."""
    status_code = 200
    default_message = 'Message sent successfully!'
