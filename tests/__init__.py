"""
Centralized test suite for the Portfolio Contact Relay.

Test Organization:
- unit/ - Sanitization, rate limiting, gate steps, provider services, client
- integration/ - Submission client talking to the relay end to end
- App endpoint tests remain in their app directory (contact/tests.py)
"""
