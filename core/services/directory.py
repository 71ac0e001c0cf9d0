import time

from django.core.cache import cache

VERSION_KEY = 'doctors:version'


def _fresh_version() -> int:
    # never reuse a number an evicted key may have handed out before
    return time.time_ns()


def directory_version() -> int:
    return cache.get_or_set(VERSION_KEY, _fresh_version, None)


def invalidate_directory() -> None:
    """Bump the version so every cached doctor listing goes stale."""
    try:
        cache.incr(VERSION_KEY)
    except ValueError:
        cache.set(VERSION_KEY, _fresh_version(), None)
