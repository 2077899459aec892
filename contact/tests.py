"""
Tests for the Contact Relay endpoint
"""
from unittest.mock import patch

import pytest
from rest_framework import status

from contact.gate import Outcome
from contact.rate_limiting import get_rate_store
from contact.views import ContactRelayView
from portfolio_relay.recaptcha_service import RecaptchaService, RecaptchaVerificationError
from portfolio_relay.resend_service import ResendError, ResendService

URL = '/api/send-email'


@pytest.fixture
def mock_send():
    with patch.object(ResendService, 'send_email', return_value='email_123') as send:
        yield send


def post_json(api_client, data, **extra):
    return api_client.post(URL, data, format='json', **extra)


class TestContactRelaySubmission:
    """Test public contact form submission."""

    def test_valid_submission_is_sent(self, api_client, relay_settings, valid_payload, mock_send):
        """Valid input, no reCAPTCHA, first message from this address."""
        response = post_json(api_client, valid_payload)

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {
            'status': 'success',
            'message': "Message sent successfully! I'll get back to you soon.",
        }
        assert mock_send.call_count == 1
        assert get_rate_store().get('ada@example.com').count == 1

    def test_email_payload(self, api_client, relay_settings, valid_payload, mock_send):
        """The provider receives destination, reply-to and both bodies."""
        post_json(api_client, valid_payload, HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1')

        kwargs = mock_send.call_args.kwargs
        assert kwargs['to'] == 'owner@example.com'
        assert kwargs['reply_to'] == 'ada@example.com'
        assert kwargs['subject'] == 'Portfolio Contact: Project inquiry'
        assert 'I would love to talk about a collaboration.' in kwargs['text']
        assert '203.0.113.7' in kwargs['text']
        assert 'Ada Lovelace' in kwargs['html']

    def test_missing_subject(self, api_client, relay_settings, make_payload, mock_send):
        """Missing field: 400, nothing sent, rate table untouched."""
        payload = make_payload()
        del payload['subject']

        response = post_json(api_client, payload)

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'status': 'error', 'message': 'All fields are required.'}
        mock_send.assert_not_called()
        assert get_rate_store().get('ada@example.com') is None

    def test_blank_field_counts_as_missing(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(name='   '))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'All fields are required.'

    def test_invalid_email(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(email='invalid-email'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Invalid email address.'
        mock_send.assert_not_called()

    def test_malformed_json(self, api_client, relay_settings, mock_send):
        response = api_client.post(URL, data='{not json', content_type='application/json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data == {'status': 'error', 'message': 'Invalid request body'}

    def test_json_array_body(self, api_client, relay_settings, mock_send):
        response = api_client.post(URL, data='[1, 2]', content_type='application/json')

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Invalid request body'

    def test_object_in_text_field(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(name={'first': 'Ada'}))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Invalid request body'

    def test_oversized_body(self, api_client, relay_settings, make_payload, mock_send):
        relay_settings.DATA_UPLOAD_MAX_MEMORY_SIZE = 1024

        response = post_json(api_client, make_payload(message='x' * 4096))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response['Content-Type'] == 'application/json'
        assert response.json() == {'status': 'error', 'message': 'Invalid request body'}
        mock_send.assert_not_called()

    def test_non_json_accept_header(self, api_client, relay_settings, valid_payload, mock_send):
        response = post_json(api_client, valid_payload, HTTP_ACCEPT='text/html')

        assert response.status_code == status.HTTP_200_OK
        assert response['Content-Type'] == 'application/json'
        assert response.json()['status'] == 'success'

    def test_sanitized_before_sending(self, api_client, relay_settings, make_payload, mock_send):
        payload = make_payload(
            name='<b>Ada</b>',
            message='Hi <script>alert(1)</script> <a href="javascript:void(0)" onclick=x()>link</a>',
        )

        response = post_json(api_client, payload)

        assert response.status_code == status.HTTP_200_OK
        html = mock_send.call_args.kwargs['html']
        text = mock_send.call_args.kwargs['text']
        assert '<script>' not in html
        assert 'javascript:' not in html
        assert 'onclick' not in html
        assert 'bAda/b' in text


class TestMethodAndConfiguration:
    """Test the checks that run before the body is read."""

    def test_get_not_allowed(self, api_client, relay_settings):
        response = api_client.get(URL)

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED
        assert response.data == {'status': 'error', 'message': 'Method not allowed'}

    def test_put_not_allowed(self, api_client, relay_settings, valid_payload):
        response = api_client.put(URL, valid_payload, format='json')

        assert response.status_code == status.HTTP_405_METHOD_NOT_ALLOWED

    @pytest.mark.parametrize('missing', ['RESEND_API_KEY', 'CONTACT_TO_EMAIL'])
    def test_missing_configuration(self, api_client, relay_settings, valid_payload, mock_send, missing):
        setattr(relay_settings, missing, '')

        response = post_json(api_client, valid_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {'status': 'error', 'message': 'Server configuration error'}
        mock_send.assert_not_called()

    def test_provider_failure(self, api_client, relay_settings, valid_payload):
        with patch.object(ResendService, 'send_email', side_effect=ResendError('invalid from', status_code=422)):
            response = post_json(api_client, valid_payload)

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data == {
            'status': 'error',
            'message': 'Failed to send message. Please try again later.',
        }


class TestOriginCheck:
    """Origin allow-list, enforced only in production."""

    @pytest.fixture
    def production(self, relay_settings):
        relay_settings.IS_PRODUCTION = True
        relay_settings.SITE_URL = 'https://portfolio.example.com'
        relay_settings.CONTACT_DEV_ORIGINS = ['http://localhost:8888']
        return relay_settings

    def test_foreign_origin_forbidden(self, api_client, production, valid_payload, mock_send):
        response = post_json(api_client, valid_payload, HTTP_ORIGIN='https://evil.example.net')

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data == {'status': 'error', 'message': 'Forbidden'}
        mock_send.assert_not_called()

    def test_site_origin_allowed(self, api_client, production, valid_payload, mock_send):
        response = post_json(api_client, valid_payload, HTTP_ORIGIN='https://portfolio.example.com')

        assert response.status_code == status.HTTP_200_OK

    def test_referer_allowed(self, api_client, production, valid_payload, mock_send):
        response = post_json(api_client, valid_payload, HTTP_REFERER='http://localhost:8888/contact')

        assert response.status_code == status.HTTP_200_OK

    def test_no_site_url_disables_check(self, api_client, production, valid_payload, mock_send):
        production.SITE_URL = ''

        response = post_json(api_client, valid_payload, HTTP_ORIGIN='https://evil.example.net')

        assert response.status_code == status.HTTP_200_OK

    def test_skipped_outside_production(self, api_client, production, valid_payload, mock_send):
        production.IS_PRODUCTION = False

        response = post_json(api_client, valid_payload, HTTP_ORIGIN='https://evil.example.net')

        assert response.status_code == status.HTTP_200_OK


class TestSpamFilters:
    """Honeypot, fill time and reCAPTCHA."""

    def test_honeypot_camouflaged_as_success(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(_gotcha='http://spam.example.com'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'success'
        mock_send.assert_not_called()
        assert get_rate_store().get('ada@example.com') is None

    def test_whitespace_honeypot_is_ignored(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(_gotcha='   '))

        assert response.status_code == status.HTTP_200_OK
        assert mock_send.call_count == 1

    def test_too_fast(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(seconds_ago=1))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Please take your time filling out the form.'
        mock_send.assert_not_called()

    def test_too_fast_wins_over_invalid_fields(self, api_client, relay_settings, make_payload, mock_send):
        response = post_json(api_client, make_payload(seconds_ago=0.5, email='nope', subject=''))

        assert response.data['message'] == 'Please take your time filling out the form.'

    def test_missing_timestamp_passes_through(self, api_client, relay_settings, make_payload, mock_send):
        payload = make_payload()
        del payload['_timestamp']

        response = post_json(api_client, payload)

        assert response.status_code == status.HTTP_200_OK

    def test_low_recaptcha_score(self, api_client, relay_settings, make_payload, mock_send):
        relay_settings.RECAPTCHA_SECRET_KEY = 'recaptcha-secret'
        response_body = {'success': True, 'score': 0.1}

        with patch('portfolio_relay.recaptcha_service.requests.post') as mock_post:
            mock_post.return_value.status_code = 200
            mock_post.return_value.json.return_value = response_body
            response = post_json(api_client, make_payload(recaptchaToken='token-abc'))

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data['message'] == 'Security verification failed. Please try again.'
        mock_send.assert_not_called()

    def test_recaptcha_outage_fails_open(self, api_client, relay_settings, make_payload, mock_send):
        relay_settings.RECAPTCHA_SECRET_KEY = 'recaptcha-secret'

        with patch.object(RecaptchaService, 'verify_token', side_effect=RecaptchaVerificationError('timeout')):
            response = post_json(api_client, make_payload(recaptchaToken='token-abc'))

        assert response.status_code == status.HTTP_200_OK
        assert mock_send.call_count == 1

    def test_recaptcha_non_object_body_fails_open(self, api_client, relay_settings, make_payload, mock_send):
        relay_settings.RECAPTCHA_SECRET_KEY = 'recaptcha-secret'

        with patch('portfolio_relay.recaptcha_service.requests.post') as mock_post:
            mock_post.return_value.status_code = 200
            mock_post.return_value.json.return_value = ['unexpected']
            response = post_json(api_client, make_payload(recaptchaToken='token-abc'))

        assert response.status_code == status.HTTP_200_OK
        assert response.data['status'] == 'success'
        assert mock_send.call_count == 1

    def test_no_token_skips_recaptcha(self, api_client, relay_settings, valid_payload, mock_send):
        relay_settings.RECAPTCHA_SECRET_KEY = 'recaptcha-secret'

        with patch.object(RecaptchaService, 'verify_token') as verify:
            response = post_json(api_client, valid_payload)

        verify.assert_not_called()
        assert response.status_code == status.HTTP_200_OK


class TestRateLimiting:
    """Test per-address rate limiting."""

    def test_fourth_message_in_an_hour(self, api_client, relay_settings, make_payload, mock_send):
        for i in range(3):
            response = post_json(api_client, make_payload(message=f'Test message number {i}'))
            assert response.status_code == status.HTTP_200_OK

        response = post_json(api_client, make_payload(message='Test message number 4'))

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response.data == {'status': 'error', 'message': 'Too many messages. Please try again later.'}
        assert 0 < int(response['Retry-After']) <= 3600
        assert mock_send.call_count == 3

    def test_retry_after_header_with_last_second_left(self, api_client, relay_settings, valid_payload):
        outcome = Outcome('error', 'Too many messages. Please try again later.', 429, retry_after=1)

        with patch.object(ContactRelayView, 'gate') as gate:
            gate.handle.return_value = outcome
            response = post_json(api_client, valid_payload)

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert response['Retry-After'] == '1'

    def test_limit_is_case_insensitive(self, api_client, relay_settings, make_payload, mock_send):
        for email in ('ada@example.com', 'ADA@example.com', 'Ada@Example.com'):
            post_json(api_client, make_payload(email=email))

        response = post_json(api_client, make_payload(email='ada@EXAMPLE.com'))

        assert response.status_code == status.HTTP_429_TOO_MANY_REQUESTS

    def test_other_addresses_unaffected(self, api_client, relay_settings, make_payload, mock_send):
        for _ in range(3):
            post_json(api_client, make_payload())

        response = post_json(api_client, make_payload(email='grace@example.com'))

        assert response.status_code == status.HTTP_200_OK
