"""
Contact Relay App

Relays portfolio contact form submissions to the site owner's inbox:
- Spam filtering (honeypot, fill-time check, reCAPTCHA v3 score)
- Origin allow-listing in production
- Per-address rate limiting
- Input sanitization and HTML email rendering
- Delivery through the Resend email API
"""
