"""
Sanitization and escaping tests
"""
import pytest
from django.utils.html import escape

from contact.emails import build_contact_email
from contact.sanitization import (
    MAX_MESSAGE_LENGTH,
    MAX_NAME_LENGTH,
    is_valid_email,
    sanitize_text,
    strip_dangerous,
)

HOSTILE_INPUTS = [
    '<script>alert("x")</script>',
    'click <a href="javascript:alert(1)">here</a>',
    '<img src=x onerror=alert(1)>',
    'Button onclick = "steal()"',
    'data:text/html;base64,PHNjcmlwdD4=',
    'javajavascript:script:alert(1)',
    'o<nclick=run()',
    'JavaScript:void(0) DATA:image/png',
    '   padded with <b>tags</b>   ',
]


class TestSanitizeText:

    @pytest.mark.parametrize('text', HOSTILE_INPUTS)
    def test_idempotent(self, text):
        once = sanitize_text(text)
        assert sanitize_text(once) == once

    @pytest.mark.parametrize('text', HOSTILE_INPUTS)
    def test_no_dangerous_fragments_left(self, text):
        cleaned = sanitize_text(text).lower()
        assert '<' not in cleaned
        assert '>' not in cleaned
        assert 'javascript:' not in cleaned
        assert 'data:' not in cleaned
        assert 'onclick' not in cleaned and 'onerror' not in cleaned

    def test_script_tag(self):
        assert sanitize_text('<script>alert(1)</script>') == 'scriptalert(1)/script'

    def test_reassembled_scheme(self):
        assert strip_dangerous('javajavascript:script:x') == 'x'

    def test_clean_text_unchanged(self):
        text = "Hi! I'd like to discuss a project: budget $5k & timeline."
        assert sanitize_text(text) == text

    def test_trims(self):
        assert sanitize_text('  hello  ') == 'hello'

    def test_empty(self):
        assert sanitize_text('') == ''
        assert sanitize_text(None) == ''

    def test_truncates_name(self):
        assert len(sanitize_text('a' * 1500, MAX_NAME_LENGTH)) == 1000

    def test_truncates_message(self):
        assert len(sanitize_text('b' * 6000, MAX_MESSAGE_LENGTH)) == 5000

    def test_truncation_stays_idempotent(self):
        text = 'x' * 998 + '   tail'
        once = sanitize_text(text, 1000)
        assert sanitize_text(once, 1000) == once
        assert not once.endswith(' ')


class TestEmailFormat:

    @pytest.mark.parametrize('email', ['ada@example.com', 'a.b+c@sub.example.co.uk', 'x@y.z'])
    def test_valid(self, email):
        assert is_valid_email(email)

    @pytest.mark.parametrize('email', ['', 'invalid-email', 'a@b', '@b.com', 'a b@c.com', 'a@b.com\n', 'a@@b.com'])
    def test_invalid(self, email):
        assert not is_valid_email(email)


class TestHtmlEscaping:

    @pytest.mark.parametrize('text', ['<b>"quoted" & \'single\'</b>', 'Tom & Jerry', '"><svg onload=1>'])
    def test_escape_leaves_no_special_characters(self, text):
        escaped = str(escape(text))
        assert '<' not in escaped
        assert '>' not in escaped
        assert '"' not in escaped
        assert "'" not in escaped
        assert '&' not in escaped.replace('&amp;', '').replace('&lt;', '').replace('&gt;', '') \
            .replace('&quot;', '').replace('&#x27;', '')

    def test_rendered_html_escapes_values(self):
        email = build_contact_email(
            name='Tom "T" O\'Neil',
            email='tom@example.com',
            subject='Rock & Roll',
            message='5 > 3',
            timestamp='2026-01-01T00:00:00.000+00:00',
            client_ip='203.0.113.7',
        )

        assert 'Tom &quot;T&quot; O&#x27;Neil' in email.html
        assert 'Rock &amp; Roll' in email.html
        assert '5 &gt; 3' in email.html
        assert 'Rock%20%26%20Roll' in email.html

    def test_plain_text_is_not_escaped(self):
        email = build_contact_email(
            name='Tom & Jerry',
            email='tom@example.com',
            subject='Rock & Roll',
            message='He said "hi"',
            timestamp='2026-01-01T00:00:00.000+00:00',
            client_ip='unknown',
        )

        assert 'From: Tom & Jerry' in email.text
        assert 'He said "hi"' in email.text
        assert email.subject == 'Portfolio Contact: Rock & Roll'
