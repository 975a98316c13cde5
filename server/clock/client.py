"""
HTTP client used by a viewer to read the clock snapshot and, for admins,
to write a new level.

Both calls are blocking (requests); the viewer runtime runs them off the
event loop with asgiref's sync_to_async.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

import requests
from django.utils.dateparse import parse_datetime

from .conf import clock_setting
from .errors import ClockError, InvalidRequest, SnapshotUnavailable, error_from_payload
from .schedule import LevelSchedule

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "ACTIVE"


def _parse_dt(value) -> datetime | None:
    if not value:
        return None
    try:
        return parse_datetime(str(value))
    except ValueError:
        return None


@dataclass(frozen=True)
class ClockSnapshot:
    """What the server said at one poll."""

    schedule: LevelSchedule
    current_level_index: int
    level_start_time: datetime | None
    session_status: str
    registration_closed: bool = False
    server_now: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.session_status == STATUS_ACTIVE

    @classmethod
    def from_payload(cls, data: dict) -> "ClockSnapshot":
        if not isinstance(data, dict):
            raise InvalidRequest("snapshot payload must be an object")
        try:
            schedule = LevelSchedule.from_records(data.get("levels") or [])
            index = int(data.get("currentLevelIndex") or 0)
        except (TypeError, ValueError) as exc:
            raise InvalidRequest(f"malformed snapshot: {exc}")
        return cls(
            schedule=schedule,
            current_level_index=max(0, index),
            level_start_time=_parse_dt(data.get("levelStartTime")),
            session_status=str(data.get("sessionStatus") or ""),
            registration_closed=bool(data.get("registrationClosed")),
            server_now=_parse_dt(data.get("serverNow")),
        )


@dataclass(frozen=True)
class AdvanceResult:
    current_level_index: int
    level_start_time: datetime | None
    message: str = ""


class ClockApiClient:

    def __init__(self, base_url: str, session_id: int, token: str | None = None,
                 timeout: float | None = None, http: requests.Session | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.session_id = session_id
        self.timeout = timeout if timeout is not None else float(clock_setting("requestTimeoutSeconds"))
        self.http = http or requests.Session()
        if token:
            self.http.headers["Authorization"] = f"Bearer {token}"

    def _url(self, suffix: str) -> str:
        return f"{self.base_url}/clock/api/sessions/{self.session_id}/{suffix}/"

    def _json(self, resp: requests.Response) -> dict:
        try:
            return resp.json()
        except ValueError:
            return {}

    def fetch_snapshot(self) -> ClockSnapshot:
        """GET the snapshot. Side-effect free; safe to call any number of times."""
        try:
            resp = self.http.get(self._url("blinds"), timeout=self.timeout)
        except requests.RequestException as exc:
            raise SnapshotUnavailable(f"snapshot fetch failed: {exc}")
        data = self._json(resp)
        if not resp.ok:
            raise error_from_payload(resp.status_code, data)
        return ClockSnapshot.from_payload(data)

    def advance_level(self, level_index: int) -> AdvanceResult:
        try:
            resp = self.http.put(self._url("level"), json={"levelIndex": level_index}, timeout=self.timeout)
        except requests.RequestException as exc:
            raise SnapshotUnavailable(f"level update failed: {exc}")
        data = self._json(resp)
        if not resp.ok:
            err = error_from_payload(resp.status_code, data)
            logger.info("level update to %s rejected: %s", level_index, err.message)
            raise err
        try:
            return AdvanceResult(
                current_level_index=int(data["currentLevelIndex"]),
                level_start_time=_parse_dt(data.get("levelStartTime")),
                message=data.get("message") or "",
            )
        except (KeyError, TypeError, ValueError):
            raise ClockError("malformed level update response")
