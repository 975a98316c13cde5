"""
Minimal Django settings used only during testing.
Engine/schedule tests don't touch the DB; API tests use an in-memory SQLite.
"""
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent

SECRET_KEY = "test-secret-key"
DEBUG = True
INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.auth",
    "channels",
    "clock",
]
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}
CHANNEL_LAYERS = {"default": {"BACKEND": "channels.layers.InMemoryChannelLayer"}}
BASE_PATH = ""
USE_TZ = True
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"
ROOT_URLCONF = "clock.urls"

# Mimics the real config.json structure so auth helpers work during tests
CONFIG: dict = {
    "jwtSecret": "test-jwt-secret",
    "clock": {
        "scheduleFile": "tests/data/schedule.json",
        "payoutFile": "tests/data/payouts.json",
        "payoutFallbackLevel": 6,
    },
}
