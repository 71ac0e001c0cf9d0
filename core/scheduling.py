"""
Slot parsing and booking-window arithmetic.

Everything in this module is pure: callers fetch slot strings and booked
start times from the database and pass them in.  Booking windows are
half-open, ``[start, start + BOOKING_DURATION)``, so an appointment that
ends at 10:00 does not collide with one that starts at 10:00.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Iterable, Optional

from django.conf import settings
from django.utils import timezone

from core.exceptions import ValidationError

logger = logging.getLogger(__name__)

BOOKING_DURATION = timedelta(hours=1)

_SLOT_RE = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*-\s*(\d{1,2}):(\d{2})\s*$')


@dataclass(frozen=True, order=True)
class Slot:
    start: time
    end: time

    def __str__(self) -> str:
        return f"{self.start:%H:%M}-{self.end:%H:%M}"

    def contains(self, moment: time) -> bool:
        return self.start <= moment < self.end

    def window_on(self, day: date) -> tuple[datetime, datetime]:
        return at(day, self.start), at(day, self.end)


def at(day: date, moment: time) -> datetime:
    """Combine a date and time-of-day in the clinic's time zone."""
    value = datetime.combine(day, moment)
    if settings.USE_TZ:
        value = timezone.make_aware(value)
    return value


def to_local(value: datetime) -> datetime:
    if timezone.is_aware(value):
        return timezone.localtime(value)
    return value


def parse_slot(raw: str) -> Slot:
    """Parse ``"HH:MM-HH:MM"``; raise ValidationError when malformed."""
    match = _SLOT_RE.match(raw or '')
    if not match:
        raise ValidationError(f'invalid time slot {raw!r}, expected HH:MM-HH:MM')
    h1, m1, h2, m2 = (int(g) for g in match.groups())
    try:
        start, end = time(h1, m1), time(h2, m2)
    except ValueError:
        raise ValidationError(f'invalid time slot {raw!r}, hour or minute out of range')
    if start >= end:
        raise ValidationError(f'invalid time slot {raw!r}, start must be before end')
    return Slot(start, end)


def normalize_slot(raw: str) -> str:
    """Canonical ``HH:MM-HH:MM`` spelling, used for storage and comparison."""
    return str(parse_slot(raw))


def parse_slots(raws: Iterable[str], *, doctor_id=None) -> list[Slot]:
    """Parse stored slot strings, skipping (and logging) malformed ones."""
    slots = []
    for raw in raws:
        try:
            slots.append(parse_slot(raw))
        except ValidationError:
            logger.warning("skipping unparseable slot %r for doctor %s", raw, doctor_id)
    return sorted(set(slots))


def booking_window(start: datetime) -> tuple[datetime, datetime]:
    return start, start + BOOKING_DURATION


def overlaps(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    return a_start < b_end and b_start < a_end


def conflicts(start: datetime, booked_starts: Iterable[datetime]) -> list[datetime]:
    """Booked start times whose window intersects ``[start, start + 1h)``."""
    req_start, req_end = booking_window(start)
    return [b for b in booked_starts if overlaps(req_start, req_end, *booking_window(b))]


def free_slots(slots: Iterable[Slot], day: date, booked_starts: Iterable[datetime]) -> list[Slot]:
    """Slots on ``day`` not touched by any booking, ordered by start.

    Declared slots may overlap each other; the earlier one wins so the
    result never contains two intersecting slots.

    A slot is reported whole: one booking anywhere inside it marks it busy,
    even when the slot is longer than BOOKING_DURATION.  The booking check
    is finer grained; ``slot_for_start`` plus ``conflicts`` may still accept
    a later start inside such a slot (09:00-12:00 booked at 09:00 is not
    listed, yet 10:00 is bookable).
    """
    booked = [booking_window(b) for b in booked_starts]
    result: list[Slot] = []
    emitted_until: Optional[datetime] = None
    for slot in sorted(slots):
        start, end = slot.window_on(day)
        if emitted_until is not None and start < emitted_until:
            continue
        if any(overlaps(start, end, b_start, b_end) for b_start, b_end in booked):
            continue
        result.append(slot)
        emitted_until = end
    return result


def slot_for_start(slots: Iterable[Slot], start: datetime) -> Optional[Slot]:
    """The declared slot whose time range contains the requested start."""
    moment = to_local(start).time()
    for slot in sorted(slots):
        if slot.contains(moment):
            return slot
    return None
