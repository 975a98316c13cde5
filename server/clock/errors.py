"""
Error taxonomy for the clock.

Every error that can reach a caller carries an HTTP status and a short
machine code, so views and the viewer-side API client agree on meaning.
"""


class ClockError(Exception):
    status = 500
    code = "clock_error"

    def __init__(self, message: str = "", *, status: int | None = None, code: str | None = None):
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__
        if status is not None:
            self.status = status
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"success": False, "error": self.code, "message": self.message}


class NotAuthorized(ClockError):
    status = 403
    code = "not_authorized"

    @classmethod
    def missing_token(cls) -> "NotAuthorized":
        return cls("Authentication required", status=401, code="authentication_required")


class SessionNotFound(ClockError):
    status = 404
    code = "session_not_found"


class InvalidRequest(ClockError):
    status = 400
    code = "invalid_request"


class InvalidLevelIndex(InvalidRequest):
    code = "invalid_level_index"


class InvalidTransition(InvalidRequest):
    code = "invalid_transition"


class SessionNotActive(ClockError):
    status = 409
    code = "session_not_active"


class SnapshotUnavailable(ClockError):
    """Transient: the snapshot could not be fetched. Retry on the next poll."""
    status = 503
    code = "snapshot_unavailable"


_BY_CODE = {
    cls.code: cls
    for cls in (NotAuthorized, SessionNotFound, InvalidRequest, InvalidLevelIndex,
                InvalidTransition, SessionNotActive, SnapshotUnavailable)
}


def error_from_payload(status: int, payload: dict | None) -> ClockError:
    """Rebuild the matching ClockError from an error response body."""
    payload = payload if isinstance(payload, dict) else {}
    code = payload.get("error") or ""
    message = payload.get("message") or f"HTTP {status}"
    cls = _BY_CODE.get(code)
    if cls is None:
        if status in (401, 403):
            cls = NotAuthorized
        elif status == 404:
            cls = SessionNotFound
        elif status == 409:
            cls = SessionNotActive
        elif status == 400:
            cls = InvalidRequest
        else:
            cls = SnapshotUnavailable
    return cls(message, status=status, code=code or None)
