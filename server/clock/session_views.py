"""
REST views for tournament sessions and their blind clock.

Endpoints:
  GET      /clock/api/sessions/                            list sessions (?status=)
  GET      /clock/api/sessions/<id>/                       session details
  GET      /clock/api/sessions/<id>/blinds/                clock snapshot (polled by viewers)
  PUT/POST /clock/api/sessions/<id>/level/                 admin: set level {levelIndex}
  POST     /clock/api/sessions/<id>/transition/            admin: change status {status}
  POST     /clock/api/sessions/<id>/stop-registration/     admin: close registration
  GET      /clock/api/sessions/<id>/payouts/               payout table (gated)
"""
import json
import logging

from django.http import HttpRequest, JsonResponse
from django.views import View

from . import advancement
from . import state as cs
from .auth import decode_request, is_privileged, require_admin
from .errors import ClockError, InvalidRequest, SessionNotFound
from .models import TournamentSession
from .payouts import payout_summary
from .schedule import load_schedule

logger = logging.getLogger(__name__)


def _error(exc: ClockError) -> JsonResponse:
    return JsonResponse(exc.to_dict(), status=exc.status)


def _json_body(request: HttpRequest) -> dict:
    try:
        body = json.loads(request.body or "{}")
    except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
        raise InvalidRequest("Invalid JSON")
    if not isinstance(body, dict):
        raise InvalidRequest("Request body must be a JSON object")
    return body


def _get_session(pk: int) -> TournamentSession:
    try:
        return TournamentSession.objects.get(pk=pk)
    except TournamentSession.DoesNotExist:
        raise SessionNotFound("Session not found")


class ClockView(View):
    """Turns ClockError raised by a handler into its JSON error response."""

    def dispatch(self, request, *args, **kwargs):
        try:
            return super().dispatch(request, *args, **kwargs)
        except ClockError as exc:
            return _error(exc)


#  Collection view

class SessionListView(ClockView):

    def get(self, request: HttpRequest) -> JsonResponse:
        """List all sessions (optionally filtered by ?status=ACTIVE etc.)."""
        qs = TournamentSession.objects.all()
        status_filter = request.GET.get("status")
        if status_filter in dict(TournamentSession.STATUS_CHOICES):
            qs = qs.filter(status=status_filter)
        return JsonResponse([s.to_dict() for s in qs], safe=False)


#  Detail views

class SessionDetailView(ClockView):

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        session = _get_session(pk)
        data = session.to_dict()
        data["snapshot"] = cs.clock_snapshot(session, load_schedule())
        return JsonResponse(data)


class SessionBlindsView(ClockView):
    """Read-only clock snapshot. Safe to poll."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        session = _get_session(pk)
        snap = cs.clock_snapshot(session, load_schedule())
        return JsonResponse({"success": True, **snap})


class SessionLevelView(ClockView):
    """PUT/POST {levelIndex}: admin sets the authoritative level."""

    def put(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_admin(request)
        body = _json_body(request)
        if "levelIndex" not in body:
            raise InvalidRequest("Missing required field: levelIndex")

        session = advancement.advance_level(pk, body["levelIndex"], privileged=True)
        return JsonResponse({
            "success": True,
            "message": "Current blind level updated successfully",
            "currentLevelIndex": session.current_level_index,
            "levelStartTime": session.level_start_time.isoformat(),
            "session": session.to_dict(),
        })

    post = put


class SessionTransitionView(ClockView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_admin(request)
        body = _json_body(request)
        status = body.get("status")
        if not isinstance(status, str) or not status:
            raise InvalidRequest("Missing required field: status")
        session = advancement.set_session_status(pk, status, privileged=True)
        return JsonResponse({"success": True, "session": session.to_dict()})


class StopRegistrationView(ClockView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_admin(request)
        session = advancement.close_registration(pk, privileged=True)
        return JsonResponse({
            "success": True,
            "message": "Session registration has been closed",
            "session": session.to_dict(),
        })


class SessionPayoutsView(ClockView):
    """Payout table; amounts are hidden from viewers until the level gate opens."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        session = _get_session(pk)
        privileged = is_privileged(decode_request(request))
        return JsonResponse(payout_summary(session, load_schedule(), privileged=privileged))
