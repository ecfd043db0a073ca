"""Create, update and delete operations for recurring and one-time slots.

A slot id is resolved against one-time slots first and recurring slots
second. One-time slots are edited in place; a recurring slot is never edited
directly, instead the change is stored as an exception for one date, upserted
on ``(slot_id, exception_date)``.
"""

import logging
from datetime import date, datetime, time

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from slotplanner.models.one_time_slot import OneTimeSlot
from slotplanner.models.recurring_slot import RecurringSlot
from slotplanner.models.slot_exception import EXCEPTION_DELETED, EXCEPTION_MODIFIED, SlotException
from slotplanner.services.errors import SlotCapacityError, SlotNotFoundError
from slotplanner.services.expansion import count_instances_on

logger = logging.getLogger(__name__)

MAX_RECURRING_SLOTS_PER_DAY = 2
MAX_INSTANCES_PER_DATE = 2

_UPSERT_INSERTS = {
    'postgresql': postgresql.insert,
    'sqlite': sqlite.insert,
}


def create_slot(
    day_of_week: int | None,
    start_time: time,
    end_time: time,
    db: Session,
    is_recurring: bool = True,
    selected_date: date | None = None,
) -> RecurringSlot | OneTimeSlot:
    if is_recurring is False:
        return create_one_time_slot(selected_date or date.today(), start_time, end_time, db)

    return create_recurring_slot(day_of_week, start_time, end_time, db)


def create_one_time_slot(slot_date: date, start_time: time, end_time: time, db: Session) -> OneTimeSlot:
    one_time_slot = OneTimeSlot(slot_date=slot_date, start_time=start_time, end_time=end_time)
    db.add(one_time_slot)
    db.commit()
    db.refresh(one_time_slot)
    one_time_slot_id = one_time_slot.id
    logger.info('Created one-time slot %s on %s', one_time_slot_id, slot_date)

    # One-time slots are not capped; only flag dates that go over.
    # The insert is already committed, so a failed count must not fail the request.
    try:
        instance_count = count_instances_on(slot_date, db)
    except SQLAlchemyError:
        db.rollback()
        logger.exception('Could not count slots on %s after creating %s', slot_date, one_time_slot_id)
        return one_time_slot

    if instance_count > MAX_INSTANCES_PER_DATE:
        logger.warning(
            '%s now carries %d slots, above the per-date limit of %d',
            slot_date,
            instance_count,
            MAX_INSTANCES_PER_DATE,
        )

    return one_time_slot


def create_recurring_slot(day_of_week: int, start_time: time, end_time: time, db: Session) -> RecurringSlot:
    for _ in range(MAX_RECURRING_SLOTS_PER_DAY):
        existing_indexes = [
            capacity_index
            for (capacity_index,) in db.query(RecurringSlot.capacity_index).filter(
                RecurringSlot.day_of_week == day_of_week,
            ).all()
        ]

        if len(existing_indexes) >= MAX_RECURRING_SLOTS_PER_DAY:
            logger.warning('Rejected recurring slot for day %s: capacity reached', day_of_week)
            raise SlotCapacityError(day_of_week, MAX_RECURRING_SLOTS_PER_DAY)

        free_index = min(set(range(MAX_RECURRING_SLOTS_PER_DAY)) - set(existing_indexes))
        slot = RecurringSlot(
            day_of_week=day_of_week,
            start_time=start_time,
            end_time=end_time,
            capacity_index=free_index,
        )
        db.add(slot)

        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            logger.info('Capacity index %s for day %s was claimed concurrently, retrying', free_index, day_of_week)
            continue

        db.refresh(slot)
        logger.info('Created recurring slot %s on day %s', slot.id, day_of_week)
        return slot

    raise SlotCapacityError(day_of_week, MAX_RECURRING_SLOTS_PER_DAY)


def upsert_slot_exception(
    slot_id: str,
    exception_date: date,
    exception_type: str,
    start_time: time | None,
    end_time: time | None,
    db: Session,
) -> None:
    dialect_name = db.get_bind().dialect.name
    insert = _UPSERT_INSERTS.get(dialect_name)
    if insert is None:
        raise NotImplementedError(f'Exception upsert is not supported on {dialect_name}')

    statement = insert(SlotException).values(
        slot_id=slot_id,
        exception_date=exception_date,
        start_time=start_time,
        end_time=end_time,
        type=exception_type,
    )
    statement = statement.on_conflict_do_update(
        index_elements=['slot_id', 'exception_date'],
        set_={
            'start_time': statement.excluded.start_time,
            'end_time': statement.excluded.end_time,
            'type': statement.excluded.type,
        },
    )
    db.execute(statement)
    db.commit()


def update_slot(slot_id: str, occurrence_date: date, start_time: time, end_time: time, db: Session) -> None:
    one_time_slot = db.get(OneTimeSlot, slot_id)

    if one_time_slot is not None:
        one_time_slot.start_time = start_time
        one_time_slot.end_time = end_time
        one_time_slot.updated_at = datetime.now()
        db.commit()
        logger.info('Updated one-time slot %s', slot_id)
        return

    if db.get(RecurringSlot, slot_id) is not None:
        upsert_slot_exception(slot_id, occurrence_date, EXCEPTION_MODIFIED, start_time, end_time, db)
        logger.info('Modified recurring slot %s on %s', slot_id, occurrence_date)
        return

    raise SlotNotFoundError(slot_id)


def delete_slot(slot_id: str, occurrence_date: date, db: Session) -> None:
    one_time_slot = db.get(OneTimeSlot, slot_id)

    if one_time_slot is not None:
        db.delete(one_time_slot)
        db.commit()
        logger.info('Deleted one-time slot %s', slot_id)
        return

    if db.get(RecurringSlot, slot_id) is not None:
        upsert_slot_exception(slot_id, occurrence_date, EXCEPTION_DELETED, None, None, db)
        logger.info('Cancelled recurring slot %s on %s', slot_id, occurrence_date)
        return

    raise SlotNotFoundError(slot_id)


def delete_recurring_slot(slot_id: str, db: Session) -> None:
    try:
        db.query(SlotException).filter(SlotException.slot_id == slot_id).delete(synchronize_session=False)
        deleted_count = db.query(RecurringSlot).filter(RecurringSlot.id == slot_id).delete(synchronize_session=False)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    if deleted_count:
        logger.info('Deleted recurring slot %s and its exceptions', slot_id)
    else:
        logger.info('Recurring slot %s did not exist, nothing deleted', slot_id)
