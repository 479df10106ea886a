"""Read-side calendar projection of appointments.

Weeks start on Sunday. Nothing in this module touches the store; callers pass
the appointment list they already read.
"""
from datetime import date, datetime, timedelta
from typing import List, Literal, Optional, Sequence

from pydantic import BaseModel

from schemas import AppointmentRead


ViewMode = Literal['week', 'day']

# Colour slots of the calendar, indexed by veterinarian id
VET_PALETTE = ('blue', 'green', 'purple', 'yellow', 'red')


class DayBucket(BaseModel):
    day: date
    appointments: List[AppointmentRead] = []


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def week_of(reference) -> List[date]:
    reference = _as_date(reference)
    # date.weekday(): Monday=0 .. Sunday=6
    start = reference - timedelta(days=(reference.weekday() + 1) % 7)
    return [start + timedelta(days=i) for i in range(7)]


def appointments_on(appointments: Sequence[AppointmentRead], day) -> List[AppointmentRead]:
    """Appointments falling on ``day``, earliest first.

    sorted() is stable, so appointments at the same time keep the order in which
    they were added.
    """
    day = _as_date(day)
    same_day = [a for a in appointments if a.appointment_date.date() == day]
    return sorted(same_day, key=lambda a: a.appointment_date)


def navigate(reference, direction: int, mode: ViewMode = 'week') -> date:
    if direction not in (-1, 1):
        raise ValueError(f"direction must be -1 or 1, got {direction}")
    if mode not in ('week', 'day'):
        raise ValueError(f"unknown view mode '{mode}'")
    step = 7 if mode == 'week' else 1
    return _as_date(reference) + timedelta(days=direction * step)


def today(now: Optional[datetime] = None) -> date:
    """The date to jump to; ``now`` is the caller's clock reading, wall clock if omitted."""
    return (now or datetime.now()).date()


def project(appointments: Sequence[AppointmentRead], reference, mode: ViewMode = 'week') -> List[DayBucket]:
    if mode == 'week':
        days = week_of(reference)
    elif mode == 'day':
        days = [_as_date(reference)]
    else:
        raise ValueError(f"unknown view mode '{mode}'")
    return [DayBucket(day=d, appointments=appointments_on(appointments, d)) for d in days]


def vet_color(veterinarian_id: int) -> str:
    return VET_PALETTE[veterinarian_id % len(VET_PALETTE)]
