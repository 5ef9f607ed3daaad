"""Availability resolver: open windows for a date and the best slot among them.

Weekly schedule entries are *available* windows. Booked intervals are only
subtracted when the caller passes them in.

Steps for a contractor and date:
  1. Entries for the target weekday (none -> empty, not an error)
  2. Normalize: sort by start, merge overlapping or touching windows
  3. Optionally subtract booked intervals
  4. Keep windows long enough for the required duration
"""

import logging
from collections.abc import Iterable
from datetime import date, time

from contractor_match.core.schemas import Contractor, TimeSlot, hours_to_seconds, seconds_of

logger = logging.getLogger(__name__)


class MalformedScheduleError(ValueError):
    """A schedule entry for the requested day has end <= start."""


def windows_for_date(contractor: Contractor, target_date: date) -> list[TimeSlot]:
    """Raw available windows for the target date's weekday, unsorted."""
    weekday = target_date.weekday()
    windows: list[TimeSlot] = []
    for entry in contractor.weekly_schedule:
        if entry.day_of_week != weekday:
            continue
        if not entry.is_valid:
            msg = (
                f"contractor {contractor.id}: schedule entry "
                f"{entry.start_time}-{entry.end_time} has end not after start"
            )
            raise MalformedScheduleError(msg)
        windows.append(entry.to_slot())
    return windows


def normalize_windows(windows: Iterable[TimeSlot]) -> list[TimeSlot]:
    """Sort by start and merge windows that overlap or touch."""
    ordered = sorted(windows, key=lambda s: (s.start, s.end))
    if not ordered:
        return []

    merged = [ordered[0]]
    for current in ordered[1:]:
        last = merged[-1]
        if current.start <= last.end:
            if current.end > last.end:
                merged[-1] = TimeSlot(start=last.start, end=current.end)
        else:
            merged.append(current)
    return merged


def subtract_booked(windows: list[TimeSlot], booked: Iterable[TimeSlot]) -> list[TimeSlot]:
    """Remove booked intervals from the windows, splitting where needed."""
    gaps = list(windows)
    for busy in normalize_windows(booked):
        remaining: list[TimeSlot] = []
        for gap in gaps:
            if not gap.overlaps(busy):
                remaining.append(gap)
                continue
            if gap.start < busy.start:
                remaining.append(TimeSlot(start=gap.start, end=busy.start))
            if gap.end > busy.end:
                remaining.append(TimeSlot(start=busy.end, end=gap.end))
        gaps = remaining
    return gaps


def find_available_slots(
    contractor: Contractor,
    target_date: date,
    required_duration_hours: float,
    booked: Iterable[TimeSlot] = (),
) -> list[TimeSlot]:
    """Every window on the target date that can host the job, in start order.

    Raises:
        ValueError: If required_duration_hours is not positive.
        MalformedScheduleError: If a schedule entry for that day is malformed.
    """
    if required_duration_hours <= 0:
        msg = f"required duration must be positive, got {required_duration_hours}"
        raise ValueError(msg)

    windows = normalize_windows(windows_for_date(contractor, target_date))
    booked = list(booked)
    if booked:
        windows = subtract_booked(windows, booked)

    slots = [w for w in windows if w.can_accommodate(required_duration_hours)]
    logger.debug(
        "Contractor %s on %s: %d windows, %d fit %.2fh",
        contractor.id, target_date, len(windows), len(slots), required_duration_hours,
    )
    return slots


def start_mismatch_hours(
    slot: TimeSlot,
    required_duration_hours: float,
    target_time: time,
) -> float:
    """Hours between target_time and the nearest feasible job start in the slot.

    Feasible starts run from slot.start to slot.end - duration, so a job that
    can begin exactly at target_time has zero mismatch.
    """
    target = seconds_of(target_time)
    earliest = seconds_of(slot.start)
    latest = seconds_of(slot.end) - hours_to_seconds(required_duration_hours)
    if target < earliest:
        return (earliest - target) / 3600
    if target > latest:
        return (target - latest) / 3600
    return 0.0


def find_best_slot(
    slots: Iterable[TimeSlot],
    required_duration_hours: float,
    target_time: time | None = None,
) -> tuple[TimeSlot | None, float | None]:
    """Pick the best qualifying slot.

    Preference: smallest start mismatch against target_time (when given), then
    earliest start, then the most spare capacity.

    Returns:
        (slot, mismatch_hours), or (None, None) when nothing fits.
    """
    best: TimeSlot | None = None
    best_key: tuple[float, time, int] | None = None
    best_mismatch: float | None = None
    required_s = hours_to_seconds(required_duration_hours)

    for slot in slots:
        if not slot.can_accommodate(required_duration_hours):
            continue
        mismatch = (
            start_mismatch_hours(slot, required_duration_hours, target_time)
            if target_time is not None
            else 0.0
        )
        surplus = slot.duration_seconds - required_s
        key = (mismatch, slot.start, -surplus)
        if best_key is None or key < best_key:
            best, best_key, best_mismatch = slot, key, mismatch

    return best, best_mismatch
