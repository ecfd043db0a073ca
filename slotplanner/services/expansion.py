"""Expansion of recurring slots, exceptions and one-time slots into dated instances.

A week is expanded by walking its seven dates, matching every recurring slot
whose ``day_of_week`` equals the date's weekday (Sunday = 0) and applying the
exception stored for that ``(slot_id, date)`` pair, if any. One-time slots in
the window are appended as-is. The result is ordered by date, then by the
``HH:MM`` start time; ties keep their emission order.

Expansion only reads from the database, so callers may cache or recompute
weeks freely.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from sqlalchemy.orm import Session

from slotplanner.models.one_time_slot import OneTimeSlot
from slotplanner.models.recurring_slot import RecurringSlot
from slotplanner.models.slot_exception import EXCEPTION_MODIFIED, SlotException

WEEK_LENGTH_DAYS = 7


@dataclass(frozen=True)
class SlotInstance:
    id: str
    day_of_week: int
    start_time: time
    end_time: time
    date: date
    created_at: datetime | None
    updated_at: datetime | None
    is_exception: bool
    is_recurring: bool


def day_of_week_for(day: date) -> int:
    return day.isoweekday() % 7


def week_start_for(day: date) -> date:
    """Return the Sunday that opens the week containing ``day``."""
    return day - timedelta(days=day_of_week_for(day))


def week_dates(week_start: date) -> list[date]:
    return [week_start + timedelta(days=offset) for offset in range(WEEK_LENGTH_DAYS)]


def format_hhmm(value: time) -> str:
    return value.strftime('%H:%M')


def instance_sort_key(instance: SlotInstance) -> tuple[date, str]:
    return instance.date, format_hhmm(instance.start_time)


def expand_dates(first_day: date, last_day: date, db: Session) -> list[SlotInstance]:
    """Expand every slot landing on a date in ``[first_day, last_day]``."""
    if last_day < first_day:
        return []

    recurring_slots = db.query(RecurringSlot).order_by(
        RecurringSlot.created_at.asc(),
        RecurringSlot.id.asc(),
    ).all()

    exceptions = db.query(SlotException).filter(
        SlotException.exception_date >= first_day,
        SlotException.exception_date <= last_day,
    ).all()

    one_time_slots = db.query(OneTimeSlot).filter(
        OneTimeSlot.slot_date >= first_day,
        OneTimeSlot.slot_date <= last_day,
    ).order_by(
        OneTimeSlot.slot_date.asc(),
        OneTimeSlot.created_at.asc(),
        OneTimeSlot.id.asc(),
    ).all()

    exceptions_by_key = {(exception.slot_id, exception.exception_date): exception for exception in exceptions}

    slots_by_day: dict[int, list[RecurringSlot]] = {}
    for slot in recurring_slots:
        slots_by_day.setdefault(slot.day_of_week, []).append(slot)

    instances: list[SlotInstance] = []
    current_day = first_day

    while current_day <= last_day:
        day_of_week = day_of_week_for(current_day)

        for slot in slots_by_day.get(day_of_week, []):
            exception = exceptions_by_key.get((slot.id, current_day))

            if exception is None:
                start_time, end_time, is_exception = slot.start_time, slot.end_time, False
            elif exception.type == EXCEPTION_MODIFIED:
                start_time, end_time, is_exception = exception.start_time, exception.end_time, True
            else:
                continue

            instances.append(
                SlotInstance(
                    id=slot.id,
                    day_of_week=slot.day_of_week,
                    start_time=start_time,
                    end_time=end_time,
                    date=current_day,
                    created_at=slot.created_at,
                    updated_at=slot.updated_at,
                    is_exception=is_exception,
                    is_recurring=True,
                )
            )

        current_day += timedelta(days=1)

    for one_time_slot in one_time_slots:
        instances.append(
            SlotInstance(
                id=one_time_slot.id,
                day_of_week=day_of_week_for(one_time_slot.slot_date),
                start_time=one_time_slot.start_time,
                end_time=one_time_slot.end_time,
                date=one_time_slot.slot_date,
                created_at=one_time_slot.created_at,
                updated_at=one_time_slot.updated_at,
                is_exception=False,
                is_recurring=False,
            )
        )

    return sorted(instances, key=instance_sort_key)


def expand_week(week_start: date, db: Session) -> list[SlotInstance]:
    return expand_dates(week_start, week_start + timedelta(days=WEEK_LENGTH_DAYS - 1), db)


def count_instances_on(day: date, db: Session) -> int:
    return len(expand_dates(day, day, db))
