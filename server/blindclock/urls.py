"""
Main URL configuration.

All routes are prefixed with BASE_PATH (e.g. "" or "blindclock").
Static files are served by WhiteNoise; websockets are routed in asgi.py.
"""
from django.conf import settings
from django.urls import include, path


def _build_patterns():
    from clock.urls import urlpatterns as clock_urls

    base = settings.BASE_PATH.strip("/")  # e.g. "" or "blindclock"
    prefix = f"{base}/" if base else ""

    return [
        path(prefix, include(clock_urls)),
    ]


urlpatterns = _build_patterns()
