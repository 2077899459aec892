"""
Contact Relay Email Rendering

Builds the plain-text and HTML versions of a relayed message. The HTML
template relies on Django autoescaping for every interpolated value.
"""
from dataclasses import dataclass

from django.conf import settings
from django.template.loader import render_to_string


@dataclass
class RenderedEmail:
    subject: str
    text: str
    html: str


def build_contact_email(name, email, subject, message, timestamp, client_ip) -> RenderedEmail:
    """
    Render the notification sent to the site owner.

    Values are expected to be sanitized already; HTML escaping happens here.
    """
    context = {
        'name': name,
        'email': email,
        'subject': subject,
        'message': message,
        'timestamp': timestamp,
        'client_ip': client_ip,
        'site_name': getattr(settings, 'SITE_NAME', 'portfolio'),
        'reply_subject': f'Re: {subject}',
    }

    return RenderedEmail(
        subject=f'Portfolio Contact: {subject}',
        text=render_to_string('contact/emails/submission.txt', context),
        html=render_to_string('contact/emails/submission.html', context),
    )
