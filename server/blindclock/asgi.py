"""
ASGI entrypoint: HTTP goes to Django, /ws/clock/<session_id>/ to ClockConsumer.
Run with `daphne blindclock.asgi:application`.
"""
import os

import django
from channels.routing import ProtocolTypeRouter, URLRouter
from channels.security.websocket import AllowedHostsOriginValidator
from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "blindclock.settings")
django.setup()

from clock.routing import websocket_urlpatterns  # noqa: E402  (needs setup() first)

application = ProtocolTypeRouter(
    {
        "http": get_asgi_application(),
        "websocket": AllowedHostsOriginValidator(URLRouter(websocket_urlpatterns)),
    }
)
