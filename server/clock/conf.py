"""Clock settings, read from settings.CONFIG["clock"] with defaults."""
from pathlib import Path

from django.conf import settings

DEFAULTS: dict = {
    "scheduleFile": "data/blind_structure.json",
    "payoutFile": "data/payout_structures.json",
    "pollIntervalSeconds": 10,
    "tickIntervalSeconds": 1,
    # Payouts show from this index when the schedule marks no registration close.
    "payoutFallbackLevel": 6,
    "requestTimeoutSeconds": 10,
}


def clock_setting(name: str):
    cfg = (getattr(settings, "CONFIG", None) or {}).get("clock") or {}
    if name in cfg:
        return cfg[name]
    return DEFAULTS[name]


def data_path(name: str) -> Path:
    """Resolve a configured file setting against BASE_DIR."""
    p = Path(clock_setting(name))
    if not p.is_absolute():
        p = Path(settings.BASE_DIR) / p
    return p
