"""
Management command to send a message through the contact relay.
"""
import time

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from contact.client import SubmissionClient


class Command(BaseCommand):
    help = 'Submit a contact form message to the relay endpoint'

    def add_arguments(self, parser):
        parser.add_argument('--name', type=str, help='Sender name')
        parser.add_argument('--email', type=str, help='Sender email address')
        parser.add_argument('--subject', type=str, help='Message subject')
        parser.add_argument('--message', type=str, help='Message body')
        parser.add_argument(
            '--url',
            type=str,
            default=None,
            help='Relay endpoint (defaults to CONTACT_RELAY_URL)',
        )
        parser.add_argument(
            '--token',
            type=str,
            default=None,
            help='reCAPTCHA token to attach to the submission',
        )
        parser.add_argument(
            '--show-config',
            action='store_true',
            help='Show relay configuration and exit',
        )

    def handle(self, *args, **options):
        if options['show_config']:
            self.show_configuration()
            return

        missing = [field for field in ('name', 'email', 'subject', 'message') if not options.get(field)]
        if missing:
            raise CommandError(f"Missing required options: {', '.join('--' + field for field in missing)}")

        endpoint = options['url'] or settings.CONTACT_RELAY_URL
        token = options['token']

        client = SubmissionClient(
            endpoint,
            site_key='cli' if token else '',
            token_provider=(lambda site_key, action: token) if token else None,
            timeout=settings.OUTBOUND_REQUEST_TIMEOUT,
        )
        # The relay rejects forms submitted faster than a person could fill them
        time.sleep(settings.CONTACT_MIN_FILL_SECONDS)
        client.fill(
            name=options['name'],
            email=options['email'],
            subject=options['subject'],
            message=options['message'],
        )

        self.stdout.write(f'Sending to {endpoint} ...')
        result = client.submit()

        if result.ok:
            self.stdout.write(self.style.SUCCESS(result.message))
        else:
            self.stdout.write(self.style.ERROR(result.message))

    def show_configuration(self):
        """Display current relay configuration (secrets masked)."""
        self.stdout.write(self.style.NOTICE('Configuration:'))

        self.stdout.write(f'  Environment: {settings.ENVIRONMENT}')
        self.stdout.write(f'  Site URL: {settings.SITE_URL or "(not set - origin check disabled)"}')

        api_key = settings.RESEND_API_KEY
        if api_key:
            self.stdout.write(f'  Resend API key: {api_key[:6]}...')
        else:
            self.stdout.write(self.style.WARNING('  Resend API key: Not configured'))

        if settings.CONTACT_TO_EMAIL:
            self.stdout.write(f'  Destination: {settings.CONTACT_TO_EMAIL}')
        else:
            self.stdout.write(self.style.WARNING('  Destination: Not configured'))

        if settings.RECAPTCHA_SECRET_KEY:
            self.stdout.write(f'  reCAPTCHA: enabled (min score {settings.RECAPTCHA_MIN_SCORE})')
        else:
            self.stdout.write(self.style.WARNING('  reCAPTCHA: disabled'))

        self.stdout.write(
            f'  Rate limit: {settings.CONTACT_RATE_LIMIT_MAX} per '
            f'{settings.CONTACT_RATE_LIMIT_WINDOW_SECONDS}s ({settings.CONTACT_RATE_STORE} store)'
        )

        if not api_key or not settings.CONTACT_TO_EMAIL:
            self.stdout.write(self.style.WARNING('\n⚠ Relay is not fully configured. Submissions will fail.\n'))
