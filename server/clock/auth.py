"""
Bearer-token helpers.

Tokens are issued elsewhere; here they are only decoded. A payload with
role == "admin" is a privileged operator.
"""
import jwt as pyjwt
from django.conf import settings
from django.http import HttpRequest

from .errors import NotAuthorized


def verify_token(token: str) -> dict | None:
    """Returns the JWT payload dict or None on failure."""
    secret = settings.CONFIG.get("jwtSecret", "")
    try:
        return pyjwt.decode(token, secret, algorithms=["HS256"])
    except pyjwt.PyJWTError:
        return None


def decode_request(request: HttpRequest) -> dict | None:
    auth = request.META.get("HTTP_AUTHORIZATION", "")
    if not auth.startswith("Bearer "):
        return None
    return verify_token(auth[7:].strip())


def is_privileged(payload: dict | None) -> bool:
    return bool(payload) and payload.get("role") == "admin"


def require_admin(request: HttpRequest) -> dict:
    """Return the payload for admins; raise 401 without a token, 403 otherwise."""
    payload = decode_request(request)
    if not payload:
        raise NotAuthorized.missing_token()
    if not is_privileged(payload):
        raise NotAuthorized("Admin role required")
    return payload
