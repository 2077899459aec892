"""
Contact Relay URL Configuration
"""
from django.urls import path
from .views import ContactRelayView

app_name = 'contact'

# Public URLs (no auth required)
urlpatterns = [
    path('send-email', ContactRelayView.as_view(), name='send-email'),
]
