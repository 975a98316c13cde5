import pytest

from clock.payouts import load_payout_structures
from clock.schedule import load_schedule


@pytest.fixture(autouse=True)
def _fresh_file_caches():
    """Schedule and payout files are cached per process; start each test clean."""
    load_schedule.cache_clear()
    load_payout_structures.cache_clear()
    yield
    load_schedule.cache_clear()
    load_payout_structures.cache_clear()
