"""
Relay gate tests

Drive RelayGate directly with Django's RequestFactory and a controllable clock.
"""
import json
from unittest.mock import MagicMock

import pytest
from django.test import RequestFactory

from contact.gate import Outcome, RelayGate, parse_epoch_ms
from contact.rate_limiting import InMemoryRateStore, RateLimiter
from portfolio_relay.recaptcha_service import RecaptchaResult, RecaptchaVerificationError
from portfolio_relay.resend_service import ResendError

NOW_MS = 1_700_000_000_000


class FakeClock:
    def __init__(self, now_ms=NOW_MS):
        self.now_ms = now_ms

    def __call__(self):
        return self.now_ms / 1000

    def advance(self, seconds):
        self.now_ms += int(seconds * 1000)


def form_body(clock, seconds_ago=10, **overrides):
    data = {
        'name': 'Ada Lovelace',
        'email': 'ada@example.com',
        'subject': 'Hello',
        'message': 'A message long enough to be real.',
        '_gotcha': '',
        '_timestamp': str(clock.now_ms - int(seconds_ago * 1000)),
    }
    data.update(overrides)
    return data


def post(data, **extra):
    body = data if isinstance(data, (str, bytes)) else json.dumps(data)
    return RequestFactory().post('/api/send-email', data=body, content_type='application/json', **extra)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def email_service():
    service = MagicMock()
    service.send_email.return_value = 'email_123'
    return service


@pytest.fixture
def recaptcha_service():
    service = MagicMock()
    service.enabled = True
    service.min_score = 0.5
    return service


@pytest.fixture
def limiter():
    return RateLimiter(InMemoryRateStore(), max_count=3, window_seconds=3600)


@pytest.fixture
def gate(relay_settings, limiter, email_service, clock):
    return RelayGate(rate_limiter=limiter, email_service=email_service, clock=clock)


class TestOutcome:

    def test_as_dict_has_only_status_and_message(self):
        outcome = Outcome('error', 'Too many messages. Please try again later.', 429, retry_after=60)
        assert outcome.as_dict() == {'status': 'error', 'message': 'Too many messages. Please try again later.'}
        assert not outcome.ok


class TestParseEpochMs:

    @pytest.mark.parametrize('value, expected', [
        ('1700000000000', 1700000000000),
        (' 1700000000000', 1700000000000),
        ('1700000000000abc', 1700000000000),
        ('1700000000000.0', 1700000000000),
        (1700000000000, 1700000000000),
        ('', None),
        (None, None),
        ('abc', None),
        ('0', None),
    ])
    def test_values(self, value, expected):
        assert parse_epoch_ms(value) == expected


class TestScenarios:

    def test_first_valid_submission(self, gate, clock, limiter, email_service):
        outcome = gate.handle(post(form_body(clock, seconds_ago=10)))

        assert outcome == Outcome('success', "Message sent successfully! I'll get back to you soon.", 200)
        assert limiter.store.get('ada@example.com').count == 1
        email_service.send_email.assert_called_once()

    def test_fourth_submission_within_window(self, gate, clock):
        for _ in range(3):
            assert gate.handle(post(form_body(clock))).ok
            clock.advance(60)

        outcome = gate.handle(post(form_body(clock)))

        assert outcome.status_code == 429
        assert outcome.status == 'error'
        assert outcome.retry_after == 3600 - 180

    def test_retry_after_near_window_end(self, gate, clock):
        for _ in range(3):
            gate.handle(post(form_body(clock)))
        clock.advance(3599.6)

        outcome = gate.handle(post(form_body(clock)))

        assert outcome.status_code == 429
        assert outcome.retry_after == 1

    def test_counter_resets_after_window(self, gate, clock, limiter):
        for _ in range(3):
            gate.handle(post(form_body(clock)))
        assert gate.handle(post(form_body(clock))).status_code == 429

        clock.advance(3601)
        outcome = gate.handle(post(form_body(clock)))

        assert outcome.ok
        assert limiter.store.get('ada@example.com').count == 1

    def test_missing_subject(self, gate, clock, limiter, email_service):
        body = form_body(clock)
        del body['subject']

        outcome = gate.handle(post(body))

        assert outcome.status_code == 400
        assert outcome.message == 'All fields are required.'
        email_service.send_email.assert_not_called()
        assert limiter.store.get('ada@example.com') is None

    def test_verifier_timeout_fails_open(self, relay_settings, limiter, email_service, recaptcha_service, clock):
        recaptcha_service.verify_token.side_effect = RecaptchaVerificationError('timed out')
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        outcome = gate.handle(post(form_body(clock, recaptchaToken='tok')))

        assert outcome.ok
        recaptcha_service.verify_token.assert_called_once_with('tok', user_ip='127.0.0.1')

    def test_verifier_timeout_then_later_check_fails(self, relay_settings, limiter, email_service,
                                                     recaptcha_service, clock):
        recaptcha_service.verify_token.side_effect = RecaptchaVerificationError('timed out')
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        outcome = gate.handle(post(form_body(clock, recaptchaToken='tok', email='bad')))

        assert outcome.message == 'Invalid email address.'


class TestCheckOrder:

    def test_method_before_configuration(self, gate, relay_settings):
        relay_settings.RESEND_API_KEY = ''

        outcome = gate.handle(RequestFactory().get('/api/send-email'))

        assert outcome.status_code == 405

    def test_configuration_before_body(self, gate, relay_settings):
        relay_settings.CONTACT_TO_EMAIL = ''

        outcome = gate.handle(post('not json'))

        assert outcome.status_code == 500
        assert outcome.message == 'Server configuration error'

    def test_origin_before_body(self, gate, relay_settings):
        relay_settings.IS_PRODUCTION = True
        relay_settings.SITE_URL = 'https://portfolio.example.com'

        outcome = gate.handle(post('not json', HTTP_ORIGIN='https://elsewhere.example'))

        assert outcome.status_code == 403

    def test_honeypot_before_timing(self, gate, clock, email_service):
        outcome = gate.handle(post(form_body(clock, seconds_ago=0, _gotcha='bot')))

        assert outcome == Outcome('success', 'Message sent successfully!', 200)
        email_service.send_email.assert_not_called()

    def test_timing_before_recaptcha(self, relay_settings, limiter, email_service, recaptcha_service, clock):
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        outcome = gate.handle(post(form_body(clock, seconds_ago=2, recaptchaToken='tok')))

        assert outcome.message == 'Please take your time filling out the form.'
        recaptcha_service.verify_token.assert_not_called()

    def test_recaptcha_before_required_fields(self, relay_settings, limiter, email_service,
                                              recaptcha_service, clock):
        recaptcha_service.verify_token.return_value = RecaptchaResult(success=False, error_codes=['invalid-input-response'])
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        outcome = gate.handle(post(form_body(clock, recaptchaToken='tok', name='')))

        assert outcome.status_code == 400
        assert outcome.message == 'Security verification failed. Please try again.'

    def test_rate_limit_before_dispatch(self, gate, clock, limiter, email_service):
        for _ in range(3):
            limiter.check_and_increment('ada@example.com', clock.now_ms)

        outcome = gate.handle(post(form_body(clock)))

        assert outcome.status_code == 429
        email_service.send_email.assert_not_called()


class TestTiming:

    def test_exactly_minimum_passes(self, gate, clock):
        assert gate.handle(post(form_body(clock, seconds_ago=3))).ok

    def test_just_under_minimum(self, gate, clock):
        outcome = gate.handle(post(form_body(clock, seconds_ago=2.999)))
        assert outcome.status_code == 400

    def test_future_timestamp_rejected(self, gate, clock):
        outcome = gate.handle(post(form_body(clock, seconds_ago=-60)))
        assert outcome.message == 'Please take your time filling out the form.'

    @pytest.mark.parametrize('timestamp', ['', 'not-a-number', '0'])
    def test_unusable_timestamp_passes_through(self, gate, clock, timestamp):
        assert gate.handle(post(form_body(clock, _timestamp=timestamp))).ok


class TestRecaptcha:

    def test_score_below_threshold(self, relay_settings, limiter, email_service, recaptcha_service, clock):
        recaptcha_service.verify_token.return_value = RecaptchaResult(success=True, score=0.3)
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        outcome = gate.handle(post(form_body(clock, recaptchaToken='tok')))

        assert outcome.status_code == 400
        assert limiter.store.get('ada@example.com') is None

    def test_score_at_threshold(self, relay_settings, limiter, email_service, recaptcha_service, clock):
        recaptcha_service.verify_token.return_value = RecaptchaResult(success=True, score=0.5)
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        assert gate.handle(post(form_body(clock, recaptchaToken='tok'))).ok

    def test_disabled_without_secret(self, relay_settings, limiter, email_service, recaptcha_service, clock):
        recaptcha_service.enabled = False
        gate = RelayGate(limiter, email_service, recaptcha_service, clock=clock)

        assert gate.handle(post(form_body(clock, recaptchaToken='tok'))).ok
        recaptcha_service.verify_token.assert_not_called()


class TestDispatch:

    def test_email_contents(self, gate, clock, email_service):
        body = form_body(clock, name='  <i>Ada</i>  ', subject='Work <> together')
        gate.handle(post(body, HTTP_X_FORWARDED_FOR='198.51.100.9'))

        kwargs = email_service.send_email.call_args.kwargs
        assert kwargs['to'] == 'owner@example.com'
        assert kwargs['reply_to'] == 'ada@example.com'
        assert kwargs['subject'] == 'Portfolio Contact: Work  together'
        assert 'From: iAda/i' in kwargs['text']
        assert 'IP Address: 198.51.100.9' in kwargs['text']
        assert 'Timestamp: 2023-11-14T22:13:20.000+00:00' in kwargs['text']
        assert 'Source: portfolio.example.com' in kwargs['text']

    def test_message_capped(self, gate, clock, email_service):
        gate.handle(post(form_body(clock, message='m' * 7000)))

        text = email_service.send_email.call_args.kwargs['text']
        assert 'm' * 5000 in text
        assert 'm' * 5001 not in text

    def test_provider_error(self, gate, clock, email_service):
        email_service.send_email.side_effect = ResendError('rate limited', status_code=429)

        outcome = gate.handle(post(form_body(clock)))

        assert outcome == Outcome('error', 'Failed to send message. Please try again later.', 500)
