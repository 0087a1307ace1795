import pytest
from django.core.cache import cache


@pytest.fixture(autouse=True)
def clear_cache():
    # rate limit counters and cached preferences live in the default cache
    cache.clear()
    yield
    cache.clear()
