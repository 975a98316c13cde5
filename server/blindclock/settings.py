"""
Django settings for blindclock.
Reads config.json (falls back to config.example.json).
"""
import json
import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent


# ── Config ────────────────────────────────────────────────────────────────────

def _load_config() -> dict:
    for name in ("config.json", "config.example.json"):
        p = BASE_DIR / name
        if p.exists():
            return json.loads(p.read_text())
    return {}


CONFIG: dict = _load_config()


def _normalize_base_path(value: str) -> str:
    base = str(value or "").strip()
    if not base:
        return ""
    if not base.startswith("/"):
        base = f"/{base}"
    if len(base) > 1 and base.endswith("/"):
        base = base[:-1]
    return base


BASE_PATH: str = _normalize_base_path(
    os.environ.get("BASE_PATH") or CONFIG.get("basePath", "")
)

# ── Core ──────────────────────────────────────────────────────────────────────

SECRET_KEY = CONFIG.get("djangoSecret") or CONFIG.get("jwtSecret", "change-me-in-config-json")
DEBUG = os.environ.get("DEBUG", "false").lower() == "true"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    "daphne",                          # must be first for ASGI
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "corsheaders",
    "channels",
    "clock.apps.ClockConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.middleware.common.CommonMiddleware",
]

ROOT_URLCONF = "blindclock.urls"
ASGI_APPLICATION = "blindclock.asgi.application"

USE_TZ = True
TIME_ZONE = CONFIG.get("timeZone", "UTC")

# ── Database ──────────────────────────────────────────────────────────────────

_sqlite_file = os.environ.get("SQLITE_FILE") or CONFIG.get("sqlite_file", "./data/blindclock.sqlite")
# Resolve relative path against BASE_DIR
_sqlite_path = Path(_sqlite_file)
if not _sqlite_path.is_absolute():
    _sqlite_path = BASE_DIR / _sqlite_path

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": _sqlite_path,
    }
}

# ── Channels ──────────────────────────────────────────────────────────────────

CHANNEL_LAYERS = {
    "default": {
        "BACKEND": "channels.layers.InMemoryChannelLayer",
    }
}

# ── CORS ──────────────────────────────────────────────────────────────────────

if DEBUG:
    CORS_ALLOW_ALL_ORIGINS = True
else:
    _client_origin = CONFIG.get("clientOrigin", "")
    CORS_ALLOWED_ORIGINS = [_client_origin] if _client_origin else []
CORS_ALLOW_CREDENTIALS = True

# ── Static files ──────────────────────────────────────────────────────────────

STATIC_URL = f"{BASE_PATH}/static/" if BASE_PATH else "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
    "default": {
        "BACKEND": "django.core.files.storage.FileSystemStorage",
    },
    "staticfiles": {
        "BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage",
    },
}

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ── Logging ───────────────────────────────────────────────────────────────────

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "plain": {"format": "%(asctime)s %(levelname)s [%(name)s] %(message)s"},
    },
    "handlers": {
        "console": {"class": "logging.StreamHandler", "formatter": "plain"},
    },
    "loggers": {
        "clock": {
            "handlers": ["console"],
            "level": CONFIG.get("logLevel", "INFO"),
            "propagate": False,
        },
    },
}
