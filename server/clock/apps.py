import logging
import sys

from django.apps import AppConfig

logger = logging.getLogger(__name__)


class ClockConfig(AppConfig):
    name = "clock"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self) -> None:
        argv = sys.argv

        # Skip during management commands that don't serve requests
        _skip = {"migrate", "makemigrations", "test", "shell", "check", "collectstatic", "showmigrations"}
        if len(argv) > 1 and argv[1] in _skip:
            return
        if "pytest" in argv[0]:
            return

        _boot()


def _boot() -> None:
    """Load the blind schedule once so a broken file shows up at startup."""
    from .schedule import load_schedule

    try:
        schedule = load_schedule()
    except (OSError, ValueError) as exc:
        logger.error("blind schedule could not be loaded: %s", exc)
        return
    if len(schedule) == 0:
        logger.warning("blind schedule is empty; clocks will not run")
