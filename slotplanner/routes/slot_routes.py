import logging
from datetime import date, datetime, time

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_serializer, field_validator, model_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from slotplanner.database import SessionLocal, ensure_slot_schema
from slotplanner.services import slot_mutations
from slotplanner.services.errors import SlotCapacityError, SlotNotFoundError
from slotplanner.services.expansion import expand_week, format_hhmm

router = APIRouter(tags=['slots'])

logger = logging.getLogger(__name__)

INTERNAL_ERROR_DETAIL = 'Internal server error'


class SlotTimesRequest(BaseModel):
    start_time: time
    end_time: time

    @field_validator('start_time', 'end_time')
    @classmethod
    def validate_minute_granularity(cls, value: time) -> time:
        if value.second or value.microsecond:
            raise ValueError('Times must be in HH:MM format.')
        return value

    @model_validator(mode='after')
    def validate_time_order(self):
        if self.start_time >= self.end_time:
            raise ValueError('start_time must be before end_time')
        return self


class CreateSlotRequest(SlotTimesRequest):
    day_of_week: int | None = None
    is_recurring: bool = True
    selected_date: date | None = None

    @field_validator('day_of_week')
    @classmethod
    def validate_day_of_week(cls, value: int | None) -> int | None:
        if value is not None and not 0 <= value <= 6:
            raise ValueError('Invalid day_of_week. Must be 0-6.')
        return value

    @model_validator(mode='after')
    def validate_recurring_day(self):
        if self.is_recurring and self.day_of_week is None:
            raise ValueError('day_of_week is required for recurring slots')
        return self


class UpdateSlotRequest(SlotTimesRequest):
    pass


class RecurringSlotResponse(BaseModel):
    id: str
    day_of_week: int
    start_time: time
    end_time: time
    created_at: datetime | None
    updated_at: datetime | None

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class OneTimeSlotResponse(BaseModel):
    id: str
    slot_date: date
    start_time: time
    end_time: time
    created_at: datetime | None
    updated_at: datetime | None

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class SlotInstanceResponse(BaseModel):
    id: str
    day_of_week: int
    start_time: time
    end_time: time
    date: date
    created_at: datetime | None
    updated_at: datetime | None
    is_exception: bool
    is_recurring: bool

    class Config:
        from_attributes = True

    @field_serializer('start_time', 'end_time')
    def serialize_time(self, value: time) -> str:
        return format_hhmm(value)


class MessageResponse(BaseModel):
    message: str


def ensure_database_ready() -> None:
    try:
        ensure_slot_schema()
    except SQLAlchemyError as exc:
        logger.exception('Slot schema check failed.')
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR_DETAIL,
        ) from exc


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def require_occurrence_date(occurrence_date: date | None) -> date:
    if occurrence_date is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='date query parameter is required',
        )
    return occurrence_date


def raise_store_error(exc: SQLAlchemyError, db: Session, action: str):
    db.rollback()
    logger.exception('Error %s.', action)
    raise HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_ERROR_DETAIL,
    ) from exc


@router.post(
    '/slots',
    response_model=RecurringSlotResponse | OneTimeSlotResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_slot(data: CreateSlotRequest, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        slot = slot_mutations.create_slot(
            data.day_of_week,
            data.start_time,
            data.end_time,
            db,
            is_recurring=data.is_recurring,
            selected_date=data.selected_date,
        )
    except SlotCapacityError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        raise_store_error(exc, db, 'creating slot')

    if data.is_recurring is False:
        return OneTimeSlotResponse.model_validate(slot)
    return RecurringSlotResponse.model_validate(slot)


@router.get('/slots/week', response_model=list[SlotInstanceResponse])
def get_slots_for_week(
    week_start: date | None = Query(default=None, alias='weekStart'),
    db: Session = Depends(get_db),
):
    if week_start is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='weekStart query parameter is required',
        )

    ensure_database_ready()

    try:
        instances = expand_week(week_start, db)
    except SQLAlchemyError as exc:
        raise_store_error(exc, db, 'fetching slots')

    return [SlotInstanceResponse.model_validate(instance) for instance in instances]


@router.put('/slots/{slot_id}', response_model=MessageResponse)
def update_slot(
    slot_id: str,
    data: UpdateSlotRequest,
    occurrence_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    occurrence_date = require_occurrence_date(occurrence_date)
    ensure_database_ready()

    try:
        slot_mutations.update_slot(slot_id, occurrence_date, data.start_time, data.end_time, db)
    except SlotNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        raise_store_error(exc, db, 'updating slot')

    return MessageResponse(message='Slot updated successfully')


@router.delete('/slots/{slot_id}/recurring', response_model=MessageResponse)
def delete_recurring_slot(slot_id: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        slot_mutations.delete_recurring_slot(slot_id, db)
    except SQLAlchemyError as exc:
        raise_store_error(exc, db, 'deleting recurring slot')

    return MessageResponse(message='Recurring slot deleted successfully')


@router.delete('/slots/{slot_id}', response_model=MessageResponse)
def delete_slot(
    slot_id: str,
    occurrence_date: date | None = Query(default=None, alias='date'),
    db: Session = Depends(get_db),
):
    occurrence_date = require_occurrence_date(occurrence_date)
    ensure_database_ready()

    try:
        slot_mutations.delete_slot(slot_id, occurrence_date, db)
    except SlotNotFoundError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        ) from exc
    except SQLAlchemyError as exc:
        raise_store_error(exc, db, 'deleting slot')

    return MessageResponse(message='Slot deleted successfully')
