"""
Contact Relay Views

Public endpoint the portfolio contact form posts to.
"""
from rest_framework.negotiation import BaseContentNegotiation
from rest_framework.permissions import AllowAny
from rest_framework.renderers import JSONRenderer
from rest_framework.response import Response
from rest_framework.views import APIView

from .gate import relay_gate


class JSONOnlyContentNegotiation(BaseContentNegotiation):
    """Always answer with the first renderer, whatever the Accept header says."""

    def select_parser(self, request, parsers):
        return parsers[0]

    def select_renderer(self, request, renderers, format_suffix=None):
        return (renderers[0], renderers[0].media_type)


class ContactRelayView(APIView):
    """
    Public endpoint for contact form submissions.

    POST /api/send-email

    No authentication required. Every method reaches the gate so that
    non-POST requests get the same JSON error shape as everything else.
    """

    authentication_classes = []
    permission_classes = [AllowAny]
    renderer_classes = [JSONRenderer]
    content_negotiation_class = JSONOnlyContentNegotiation

    gate = relay_gate

    def post(self, request):
        """Relay a contact form submission."""
        return self.relay(request)

    def http_method_not_allowed(self, request, *args, **kwargs):
        return self.relay(request)

    def options(self, request, *args, **kwargs):
        # CORS preflight is answered by corsheaders before reaching here
        return self.relay(request)

    def relay(self, request):
        outcome = self.gate.handle(request)

        headers = {}
        if outcome.retry_after is not None:
            headers['Retry-After'] = str(outcome.retry_after)

        return Response(outcome.as_dict(), status=outcome.status_code, headers=headers)
