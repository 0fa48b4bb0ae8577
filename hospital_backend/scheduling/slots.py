"""Slot generation.

Expands a doctor's weekly availability windows into the discrete, fixed-width
start times that can be booked on one calendar date. Everything here is pure:
no session, no clock.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Sequence

from hospital_backend.core import config
from hospital_backend.models.availability import AvailabilityWindow, WeekDay
from hospital_backend.scheduling.clock import as_utc
from hospital_backend.scheduling.errors import ErrorReason, NotFoundError

SLOT_INCREMENT = timedelta(minutes=config.SLOT_INCREMENT_MINUTES)
GUARD_INTERVAL = timedelta(minutes=config.GUARD_INTERVAL_MINUTES)
SLOT_MATCH_TOLERANCE = timedelta(seconds=config.SLOT_MATCH_TOLERANCE_SECONDS)


def select_windows(windows: Sequence[AvailabilityWindow], on_date: date) -> list[AvailabilityWindow]:
    if not windows:
        raise NotFoundError(ErrorReason.NO_SCHEDULE_FOR_DOCTOR)

    week_day = WeekDay.from_date(on_date)
    matching = [window for window in windows if WeekDay(window.day_of_week) == week_day]
    if not matching:
        raise NotFoundError(ErrorReason.DOCTOR_NOT_AVAILABLE_THIS_DAY)

    return sorted(matching, key=lambda window: window.start_time)


def generate_slots(
    window: AvailabilityWindow,
    on_date: date,
    increment: timedelta = SLOT_INCREMENT,
) -> list[datetime]:
    """Start times from the window's opening, one ``increment`` apart, all before it closes."""
    current = datetime.combine(on_date, window.start_time, tzinfo=timezone.utc)
    end_time = datetime.combine(on_date, window.end_time, tzinfo=timezone.utc)

    slots: list[datetime] = []
    while current < end_time:
        slots.append(current)
        current += increment

    return slots


def generate_candidate_slots(
    windows: Sequence[AvailabilityWindow],
    on_date: date,
    increment: timedelta = SLOT_INCREMENT,
) -> list[datetime]:
    slots: set[datetime] = set()
    for window in select_windows(windows, on_date):
        slots.update(generate_slots(window, on_date, increment))
    return sorted(slots)


def is_within_guard(first: datetime, second: datetime, guard_interval: timedelta = GUARD_INTERVAL) -> bool:
    return abs(as_utc(first) - as_utc(second)) < guard_interval


def filter_available_slots(
    slots: Iterable[datetime],
    occupied_times: Iterable[datetime],
    guard_interval: timedelta = GUARD_INTERVAL,
) -> list[datetime]:
    occupied = [as_utc(occupied_time) for occupied_time in occupied_times]
    return [
        slot
        for slot in slots
        if not any(is_within_guard(slot, occupied_time, guard_interval) for occupied_time in occupied)
    ]


def match_slot(
    candidate_time: datetime,
    slots: Iterable[datetime],
    tolerance: timedelta = SLOT_MATCH_TOLERANCE,
) -> datetime | None:
    """Return the generated slot the candidate falls on, or None if it is off the grid."""
    candidate = as_utc(candidate_time)
    for slot in slots:
        if abs(slot - candidate) <= tolerance:
            return slot
    return None
