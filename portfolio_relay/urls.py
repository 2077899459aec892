"""
URL configuration for the Portfolio Contact Relay.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
"""
from django.urls import path, include

urlpatterns = [
    path('api/', include('contact.urls')),  # Contact form relay (public)
]
