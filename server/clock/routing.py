from django.urls import re_path
from .consumers import ClockConsumer

websocket_urlpatterns = [
    re_path(r"^(?:.+/)?ws/clock/(?P<session_id>[0-9]+)/$", ClockConsumer.as_asgi()),
]
