from datetime import timedelta

from django.utils import timezone


class SystemClock:
    def now(self):
        return timezone.now()


class FixedClock:
    """A clock that only moves when told to. Used to time-travel in tests."""

    def __init__(self, at=None):
        self._now = at or timezone.now()

    def now(self):
        return self._now

    def set(self, at):
        self._now = at

    def advance(self, **kwargs):
        self._now = self._now + timedelta(**kwargs)
        return self._now


_clock = SystemClock()


def get_clock():
    return _clock


def set_clock(clock):
    """Swap the process-wide clock; returns the previous one so callers can restore it."""
    global _clock
    previous, _clock = _clock, clock
    return previous


def now():
    return _clock.now()
